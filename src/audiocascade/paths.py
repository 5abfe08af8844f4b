"""Cross-platform path resolution for audiocascade directories."""

import os
import tempfile
from pathlib import Path

from platformdirs import user_data_dir

from audiocascade.constants import APP_NAME, WORK_DIR_NAME


def get_data_dir(config_override: str = "") -> Path:
    """Resolve the audiocascade data directory.

    Priority: config_override > AUDIOCASCADE_DATA_DIR env var > platform default.
    """
    if config_override:
        return Path(config_override)

    env_dir = os.environ.get("AUDIOCASCADE_DATA_DIR")
    if env_dir:
        return Path(env_dir)

    return Path(user_data_dir(APP_NAME))


def get_work_dir(config_override: str = "") -> Path:
    """Directory for files written for downstream processing."""
    if config_override:
        return Path(config_override)
    return Path(tempfile.gettempdir()) / WORK_DIR_NAME


def get_helper_path(data_dir: Path, config_override: str = "") -> Path:
    if config_override:
        return Path(config_override)
    return data_dir / "helpers" / "AudioMixer"


def get_config_path(data_dir: Path) -> Path:
    return data_dir / "config.toml"
