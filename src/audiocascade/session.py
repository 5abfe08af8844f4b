"""Recording sessions and the in-memory store of completed ones."""

from __future__ import annotations

import base64
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from audiocascade.errors import IoError
from audiocascade.recorder.base import RecordingMode
from audiocascade.wav import wrap_pcm

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RecordingSession:
    """One start-to-stop recording lifecycle."""
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None
    duration: Optional[int] = None
    mode: Optional[RecordingMode] = None
    audio_buffer: bytes | bytearray = field(default_factory=bytearray, repr=False)
    file_path: Optional[Path] = None
    container: str = "wav"
    backend: Optional[str] = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    # (sample_rate, channels) while the buffer holds headerless s16le samples
    pcm_format: Optional[tuple[int, int]] = None

    @property
    def is_finished(self) -> bool:
        return self.end_time is not None

    @property
    def buffer_size(self) -> int:
        return len(self.audio_buffer)

    def append_audio(self, data: bytes) -> None:
        if not isinstance(self.audio_buffer, bytearray):
            self.audio_buffer = bytearray(self.audio_buffer)
        self.audio_buffer += data

    def replace_audio(self, data: bytes) -> None:
        self.audio_buffer = bytearray(data)

    def reset_audio(self) -> None:
        self.audio_buffer = bytearray()
        self.pcm_format = None

    def payload(self) -> bytes:
        """The buffer as a self-describing file; raw PCM gets a WAV header."""
        if self.pcm_format is None:
            return bytes(self.audio_buffer)
        sample_rate, channels = self.pcm_format
        return wrap_pcm(self.audio_buffer, sample_rate, channels)

    def finalize_audio(self) -> None:
        """Freeze the accumulated chunks into one immutable payload."""
        self.audio_buffer = self.payload()
        self.pcm_format = None

    def finish(self, end_time: Optional[int] = None) -> None:
        self.end_time = now_ms() if end_time is None else end_time
        self.duration = self.end_time - self.start_time

    def file_name(self, partial: bool = False) -> str:
        suffix = "-partial" if partial else ""
        return f"recording-{self.start_time}{suffix}.{self.container}"

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "mode": self.mode.value if self.mode else None,
            "backend": self.backend,
            "buffer_size": self.buffer_size,
            "file_path": str(self.file_path) if self.file_path else None,
        }


class SessionStore:
    """Holds the active session and the append-only list of completed ones.

    Files written for processing live in *work_dir*, named from each
    session's start timestamp.
    """

    def __init__(self, work_dir: Path):
        self.work_dir = Path(work_dir)
        self.active: Optional[RecordingSession] = None
        self.completed: list[RecordingSession] = []

    def ensure_work_dir(self) -> Path:
        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoError(f"Cannot create working directory {self.work_dir}: {e}") from e
        return self.work_dir

    def begin(self, session: RecordingSession) -> None:
        self.active = session

    def complete(self, session: RecordingSession) -> None:
        """Move a finished session into the completed list."""
        if self.active is session:
            self.active = None
        if not any(s is session for s in self.completed):
            self.completed.append(session)

    def discard_active(self) -> Optional[RecordingSession]:
        session, self.active = self.active, None
        return session

    @property
    def latest(self) -> Optional[RecordingSession]:
        if self.active is not None:
            return self.active
        return self.completed[-1] if self.completed else None

    def save_active_or_latest_for_processing(self) -> Optional[Path]:
        """Write audio to disk for downstream processing.

        An active session is snapshotted to a ``-partial`` file without being
        stopped; each call rewrites the file with the buffer as it is now.
        Otherwise the latest completed session is written once and the path
        remembered, so repeated calls return the same file untouched.
        Returns None when there is no audio yet.
        """
        if self.active is not None:
            session = self.active
            if not session.audio_buffer:
                logger.info("No audio accumulated yet in the current recording")
                return None
            path = self.ensure_work_dir() / session.file_name(partial=True)
            self._write(path, session.payload())
            logger.info("Saved in-progress audio snapshot (%d bytes): %s", session.buffer_size, path)
            return path

        if not self.completed:
            logger.info("No recording available for processing")
            return None
        session = self.completed[-1]
        if not session.audio_buffer:
            logger.info("Latest recording has no audio")
            return None

        if session.file_path is not None and session.file_path.exists():
            return session.file_path

        path = self.ensure_work_dir() / session.file_name()
        self._write(path, session.payload())
        session.file_path = path
        logger.info("Saved recording for processing: %s", path)
        return path

    def read_as_base64(self, path: Path | str) -> str:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise IoError(f"Cannot read audio file {path}: {e}") from e
        return base64.b64encode(data).decode("ascii")

    def cleanup_one(self, path: Path | str) -> None:
        """Delete one file; failures are logged, never raised."""
        path = Path(path)
        try:
            path.unlink(missing_ok=True)
            logger.info("Cleaned up audio file: %s", path)
        except OSError as e:
            logger.warning("Error cleaning up audio file %s: %s", path, e)
        for session in self.completed:
            if session.file_path == path:
                session.file_path = None

    def clear(self) -> None:
        """Forget all completed sessions and remove every file in the working directory."""
        self.completed.clear()
        if not self.work_dir.exists():
            return
        for entry in list(self.work_dir.iterdir()):
            try:
                if entry.is_file() or entry.is_symlink():
                    entry.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Error deleting audio file %s: %s", entry, e)
        try:
            self.work_dir.rmdir()
        except OSError:
            # Not empty or already gone
            pass
        logger.info("Cleaned up all recordings and temporary files")

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        try:
            path.write_bytes(data)
        except OSError as e:
            raise IoError(f"Cannot write audio file {path}: {e}") from e
