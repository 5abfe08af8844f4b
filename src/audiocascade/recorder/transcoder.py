"""ffmpeg-based capture backends streaming raw PCM on stdout.

Every stdout chunk is appended to the session buffer as it arrives, so a
caller can snapshot the audio recorded so far at any point. The session
remembers the sample format, and snapshots and the final payload are
written as WAV.
"""

from __future__ import annotations

import shutil
import sys
from typing import TYPE_CHECKING, Optional, Sequence

from audiocascade.constants import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE
from audiocascade.recorder.base import AttemptOutcome, ProcessBackend, RecordingMode

if TYPE_CHECKING:
    from audiocascade.session import RecordingSession

# Input arguments per platform and source. "mic" and "system" open a
# single device; "mixed" opens both and merges them with amix.
_INPUTS = {
    "darwin": {
        "mixed": ["-f", "avfoundation", "-i", ":0", "-f", "avfoundation", "-i", ":1"],
        "mic": ["-f", "avfoundation", "-i", ":0"],
        "system": ["-f", "avfoundation", "-i", ":1"],
    },
    "linux": {
        "mixed": ["-f", "pulse", "-i", "default", "-f", "pulse", "-i", "@DEFAULT_MONITOR@"],
        "mic": ["-f", "alsa", "-i", "default"],
        "system": ["-f", "pulse", "-i", "@DEFAULT_MONITOR@"],
    },
    "win32": {
        "mixed": ["-f", "dshow", "-i", "audio=Microphone", "-f", "dshow", "-i", "audio=Stereo Mix"],
        "mic": ["-f", "dshow", "-i", "audio=Microphone"],
        "system": ["-f", "dshow", "-i", "audio=Stereo Mix"],
    },
}

AMIX_FILTER = "[0:a][1:a]amix=inputs=2:duration=longest:dropout_transition=0[out]"


def _platform_key(platform: str) -> str:
    if platform.startswith("linux"):
        return "linux"
    if platform in ("win32", "cygwin"):
        return "win32"
    return platform if platform in _INPUTS else "linux"


def get_ffmpeg_args(
    source: str,
    platform: str = sys.platform,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
) -> list[str]:
    """Build ffmpeg arguments that stream s16le PCM to stdout.

    *source* is one of "mixed", "mic" or "system".
    """
    inputs = _INPUTS[_platform_key(platform)]
    if source not in inputs:
        raise ValueError(f"Unknown capture source: {source!r}")

    args = ["-hide_banner", "-nostdin", "-loglevel", "warning"]
    args.extend(inputs[source])
    # Two inputs are merged into one stream
    if inputs[source].count("-i") == 2:
        args.extend(["-filter_complex", AMIX_FILTER, "-map", "[out]"])
    args.extend([
        "-ac", str(channels),
        "-ar", str(sample_rate),
        "-acodec", "pcm_s16le",
        "-f", "s16le",
        "pipe:1",
    ])
    return args


class TranscoderBackend(ProcessBackend):
    """Capture through an external transcoder."""

    source = "mixed"
    container = "wav"

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        platform: str = sys.platform,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.ffmpeg_path = ffmpeg_path
        self.platform = platform
        self.sample_rate = sample_rate
        self.channels = channels

    def is_available(self) -> bool:
        return shutil.which(self.ffmpeg_path) is not None

    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        session.pcm_format = (self.sample_rate, self.channels)
        outcome = await super().attempt(session, timeout)
        if not outcome.success:
            session.pcm_format = None
        return outcome

    def command(self, session: Optional[RecordingSession] = None) -> tuple[str, Sequence[str]]:
        return self.ffmpeg_path, get_ffmpeg_args(
            self.source, self.platform, self.sample_rate, self.channels
        )


class MixedAudioBackend(TranscoderBackend):
    name = "mixed"
    mode = RecordingMode.MIXED
    source = "mixed"


class MicrophoneOnlyBackend(TranscoderBackend):
    name = "microphone"
    mode = RecordingMode.MICROPHONE_ONLY
    source = "mic"


class SystemAudioOnlyBackend(TranscoderBackend):
    name = "system-audio"
    mode = RecordingMode.SYSTEM_ONLY
    source = "system"
