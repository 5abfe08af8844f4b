"""Tests for configuration loading and management."""

import pytest

from audiocascade.config import CascadeConfig


def test_defaults():
    config = CascadeConfig()
    assert config.recording.sample_rate == 16000
    assert config.recording.channels == 1
    assert config.recording.process_liveness_seconds == 2.0
    assert config.recording.ipc_liveness_seconds == 3.0
    assert config.recording.stop_grace_seconds == 5.0
    assert config.recording.synthetic_interval_seconds == 3.0
    assert config.backends.ffmpeg_path == "ffmpeg"
    assert config.backends.disabled == []
    assert config.storage.work_dir == ""


def test_load_missing_file(tmp_path):
    config = CascadeConfig.load(tmp_path / "nonexistent.toml")
    assert config.recording.sample_rate == 16000


def test_load_none_path():
    config = CascadeConfig.load(None)
    assert config.recording.sample_rate == 16000


def test_save_and_load_roundtrip(tmp_path):
    config = CascadeConfig()
    config.recording.sample_rate = 44100
    config.backends.disabled = ["renderer"]
    config_path = tmp_path / "config.toml"
    config.save(config_path)

    loaded = CascadeConfig.load(config_path)
    assert loaded.recording.sample_rate == 44100
    assert loaded.backends.disabled == ["renderer"]
    # Unchanged defaults preserved
    assert loaded.recording.channels == 1
    assert loaded.backends.ffmpeg_path == "ffmpeg"


def test_get_dotted_key():
    config = CascadeConfig()
    assert config.get("recording.sample_rate") == 16000
    assert config.get("backends.ffmpeg_path") == "ffmpeg"
    assert config.get("storage.data_dir") == ""


def test_get_invalid_key_format():
    config = CascadeConfig()
    with pytest.raises(KeyError, match="Invalid key format"):
        config.get("sample_rate")


def test_get_unknown_section():
    config = CascadeConfig()
    with pytest.raises(KeyError, match="Unknown config section"):
        config.get("nonexistent.key")


def test_get_method_name_is_not_a_section():
    config = CascadeConfig()
    with pytest.raises(KeyError, match="Unknown config section"):
        config.get("save.x")


def test_get_unknown_key():
    config = CascadeConfig()
    with pytest.raises(KeyError, match="Unknown config key"):
        config.get("recording.nonexistent")


def test_set_string_coercion_to_int():
    config = CascadeConfig()
    config.set("recording.sample_rate", "44100")
    assert config.recording.sample_rate == 44100


def test_set_string_coercion_to_float():
    config = CascadeConfig()
    config.set("recording.process_liveness_seconds", "1.5")
    assert config.recording.process_liveness_seconds == 1.5


def test_set_string_coercion_to_list():
    config = CascadeConfig()
    config.set("backends.disabled", "mixed, renderer")
    assert config.backends.disabled == ["mixed", "renderer"]


def test_set_unknown_backend():
    config = CascadeConfig()
    with pytest.raises(ValueError, match="Unknown backend"):
        config.set("backends.disabled", "mixed,bogus")


def test_synthetic_cannot_be_disabled():
    config = CascadeConfig()
    with pytest.raises(ValueError, match="cannot be disabled"):
        config.set("backends.disabled", "synthetic")


def test_set_negative_sample_rate():
    config = CascadeConfig()
    with pytest.raises(ValueError, match="sample_rate must be positive"):
        config.set("recording.sample_rate", -1)


def test_set_nonpositive_timeout():
    config = CascadeConfig()
    with pytest.raises(ValueError, match="stop_grace_seconds must be positive"):
        config.set("recording.stop_grace_seconds", "0")


def test_partial_toml_loads_with_defaults(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text('[recording]\nsample_rate = 48000\n')

    config = CascadeConfig.load(config_path)
    assert config.recording.sample_rate == 48000
    assert config.recording.channels == 1  # default preserved
    assert config.backends.ffmpeg_path == "ffmpeg"  # section not in file


def test_unknown_keys_in_toml_ignored(tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text('[recording]\nsample_rate = 48000\nunknown_key = "ignored"\n')

    config = CascadeConfig.load(config_path)
    assert config.recording.sample_rate == 48000


def test_to_dict():
    config = CascadeConfig()
    d = config._to_dict()
    assert d["recording"]["sample_rate"] == 16000
    assert d["backends"]["disabled"] == []
    assert "storage" in d
