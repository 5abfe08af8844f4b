"""Tests for platform cascade construction."""

from audiocascade.broadcaster import StatusBroadcaster
from audiocascade.channel import LocalChannel
from audiocascade.config import CascadeConfig
from audiocascade.recorder import (
    MicrophoneOnlyBackend,
    MixedAudioBackend,
    NativeHelperBackend,
    RendererCaptureBackend,
    SyntheticBackend,
    SystemAudioOnlyBackend,
)
from audiocascade.recorder.cascade import build_cascade, cascade_names


def test_darwin_order(tmp_path):
    cascade = build_cascade(platform="darwin", work_dir=tmp_path)
    assert [type(b) for b in cascade] == [
        NativeHelperBackend, MixedAudioBackend, SystemAudioOnlyBackend, SyntheticBackend,
    ]


def test_linux_order(tmp_path):
    cascade = build_cascade(platform="linux", work_dir=tmp_path)
    assert [type(b) for b in cascade] == [
        MixedAudioBackend, MicrophoneOnlyBackend, RendererCaptureBackend, SyntheticBackend,
    ]


def test_every_platform_ends_with_synthetic():
    for platform in ("darwin", "linux", "win32", "freebsd"):
        assert cascade_names(platform)[-1] == "synthetic"


def test_disabled_backends_skipped(tmp_path):
    config = CascadeConfig()
    config.backends.disabled = ["mixed", "renderer", "synthetic"]
    cascade = build_cascade(config, platform="linux", work_dir=tmp_path)
    assert [b.name for b in cascade] == ["microphone", "synthetic"]


def test_config_flows_into_backends(tmp_path):
    config = CascadeConfig()
    config.recording.process_liveness_seconds = 1.25
    config.recording.ipc_liveness_seconds = 4.0
    config.recording.synthetic_interval_seconds = 0.5
    config.backends.ffmpeg_path = "/opt/bin/ffmpeg"
    config.backends.helper_path = str(tmp_path / "Mixer")
    channel = LocalChannel()

    linux = build_cascade(config, platform="linux", channel=channel, work_dir=tmp_path)
    assert linux[0].liveness_timeout == 1.25
    assert linux[0].ffmpeg_path == "/opt/bin/ffmpeg"
    assert linux[2].liveness_timeout == 4.0
    assert linux[2].channel is channel
    assert linux[-1].interval == 0.5

    darwin = build_cascade(config, platform="darwin", work_dir=tmp_path)
    assert darwin[0].helper_path == tmp_path / "Mixer"
    assert darwin[0].work_dir == tmp_path


def test_default_liveness_windows(tmp_path):
    cascade = build_cascade(platform="linux", work_dir=tmp_path)
    assert cascade[0].liveness_timeout == 2.0
    assert cascade[2].liveness_timeout == 3.0


def test_broadcaster_single_observer():
    first, second = [], []
    broadcaster = StatusBroadcaster()
    broadcaster.publish({"state": "idle"})  # No observer, no error
    broadcaster.register(first.append)
    broadcaster.register(second.append)
    broadcaster.publish({"state": "starting"})
    assert first == []
    assert second == [{"state": "starting"}]
    broadcaster.unregister()
    broadcaster.publish({"state": "idle"})
    assert second == [{"state": "starting"}]
