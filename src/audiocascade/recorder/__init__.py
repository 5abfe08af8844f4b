"""Capture backends."""

from audiocascade.recorder.base import AttemptOutcome, CaptureBackend, ProcessBackend, RecordingMode
from audiocascade.recorder.native_helper import NativeHelperBackend
from audiocascade.recorder.renderer import RendererCaptureBackend
from audiocascade.recorder.synthetic import SyntheticBackend
from audiocascade.recorder.transcoder import (
    MicrophoneOnlyBackend,
    MixedAudioBackend,
    SystemAudioOnlyBackend,
)

__all__ = [
    "AttemptOutcome",
    "CaptureBackend",
    "ProcessBackend",
    "RecordingMode",
    "NativeHelperBackend",
    "MixedAudioBackend",
    "MicrophoneOnlyBackend",
    "SystemAudioOnlyBackend",
    "RendererCaptureBackend",
    "SyntheticBackend",
]
