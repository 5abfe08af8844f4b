"""Platform-specific ordering of capture backends."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from audiocascade.channel import MessageChannel
from audiocascade.config import CascadeConfig
from audiocascade.paths import get_data_dir, get_helper_path, get_work_dir
from audiocascade.recorder.base import CaptureBackend
from audiocascade.recorder.native_helper import NativeHelperBackend
from audiocascade.recorder.renderer import RendererCaptureBackend
from audiocascade.recorder.synthetic import SyntheticBackend
from audiocascade.recorder.transcoder import (
    MicrophoneOnlyBackend,
    MixedAudioBackend,
    SystemAudioOnlyBackend,
)
from audiocascade.supervisor import ProcessSupervisor

# Backend names tried in order, per platform. Synthetic is always appended.
CASCADES = {
    "darwin": ("native-helper", "mixed", "system-audio"),
    "default": ("mixed", "microphone", "renderer"),
}


def cascade_names(platform: str = sys.platform) -> tuple[str, ...]:
    return CASCADES.get(platform, CASCADES["default"]) + ("synthetic",)


def build_cascade(
    config: Optional[CascadeConfig] = None,
    platform: str = sys.platform,
    channel: Optional[MessageChannel] = None,
    supervisor: Optional[ProcessSupervisor] = None,
    work_dir: Optional[Path] = None,
) -> list[CaptureBackend]:
    """Instantiate the cascade for *platform*, skipping disabled backends.

    The result always ends with a SyntheticBackend.
    """
    config = config or CascadeConfig()
    supervisor = supervisor or ProcessSupervisor()
    rec = config.recording
    work_dir = Path(work_dir) if work_dir else get_work_dir(config.storage.work_dir)
    data_dir = get_data_dir(config.storage.data_dir)
    disabled = set(config.backends.disabled) - {"synthetic"}

    transcoder_kwargs = dict(
        ffmpeg_path=config.backends.ffmpeg_path,
        platform=platform,
        sample_rate=rec.sample_rate,
        channels=rec.channels,
        supervisor=supervisor,
        stop_grace=rec.stop_grace_seconds,
    )

    def make(name: str) -> CaptureBackend:
        if name == "native-helper":
            backend = NativeHelperBackend(
                get_helper_path(data_dir, config.backends.helper_path),
                work_dir,
                supervisor=supervisor,
                stop_grace=rec.stop_grace_seconds,
            )
        elif name == "mixed":
            backend = MixedAudioBackend(**transcoder_kwargs)
        elif name == "microphone":
            backend = MicrophoneOnlyBackend(**transcoder_kwargs)
        elif name == "system-audio":
            backend = SystemAudioOnlyBackend(**transcoder_kwargs)
        elif name == "renderer":
            backend = RendererCaptureBackend(channel, stop_grace=rec.stop_grace_seconds)
            backend.liveness_timeout = rec.ipc_liveness_seconds
            return backend
        elif name == "synthetic":
            return SyntheticBackend(interval=rec.synthetic_interval_seconds, sample_rate=rec.sample_rate)
        else:
            raise ValueError(f"Unknown backend: {name!r}")
        backend.liveness_timeout = rec.process_liveness_seconds
        return backend

    return [make(name) for name in cascade_names(platform) if name not in disabled]
