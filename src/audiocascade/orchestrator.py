"""Recording orchestrator: session state machine over the backend cascade.

``start()`` walks the platform cascade one backend at a time until one
proves it is producing audio. The cascade always ends with the synthetic
backend, so starting from idle never fails. Backend failures are logged
and only move the cascade along.
"""

from __future__ import annotations

import enum
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from audiocascade.broadcaster import StatusBroadcaster
from audiocascade.channel import MessageChannel
from audiocascade.config import CascadeConfig
from audiocascade.errors import AlreadyRecording, BackendUnavailable, NotRecording
from audiocascade.paths import get_work_dir
from audiocascade.recorder.base import AttemptOutcome, CaptureBackend
from audiocascade.recorder.cascade import build_cascade
from audiocascade.recorder.synthetic import SyntheticBackend
from audiocascade.session import RecordingSession, SessionStore

logger = logging.getLogger(__name__)


class RecorderState(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    RECORDING = "recording"
    STOPPING = "stopping"


def _error(exc_type: type[Exception], message: str) -> dict[str, Any]:
    return {"success": False, "error": exc_type.__name__, "message": message}


class RecordingOrchestrator:
    """Owns the single active session and the start/stop/status API."""

    def __init__(
        self,
        backends: Optional[Sequence[CaptureBackend]] = None,
        config: Optional[CascadeConfig] = None,
        broadcaster: Optional[StatusBroadcaster] = None,
        channel: Optional[MessageChannel] = None,
        work_dir: Optional[Path] = None,
        platform: str = sys.platform,
    ):
        self.config = config or CascadeConfig()
        work_dir = Path(work_dir) if work_dir else get_work_dir(self.config.storage.work_dir)
        if backends is None:
            backends = build_cascade(self.config, platform=platform, channel=channel, work_dir=work_dir)
        self.backends: list[CaptureBackend] = list(backends)
        if not self.backends or not isinstance(self.backends[-1], SyntheticBackend):
            self.backends.append(SyntheticBackend())

        self.store = SessionStore(work_dir)
        self.broadcaster = broadcaster or StatusBroadcaster()
        self._state = RecorderState.IDLE
        self._owner: Optional[CaptureBackend] = None

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def owner(self) -> Optional[CaptureBackend]:
        """The backend that won the cascade for the active session."""
        return self._owner

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    async def start(self) -> dict[str, Any]:
        if self._state is not RecorderState.IDLE:
            return _error(AlreadyRecording, "Recording already in progress")

        session = RecordingSession()
        self.store.begin(session)
        self._transition(RecorderState.STARTING)

        for backend in self.backends:
            outcome = await self._try_backend(backend, session)
            if outcome.success:
                session.mode = outcome.mode or backend.mode
                session.container = backend.container
                session.backend = backend.name
                self._owner = backend
                logger.info("Recording started with %s (%s)", backend.name, session.mode.value)
                self._transition(RecorderState.RECORDING)
                return {"success": True, "mode": session.mode.value}
            logger.info("%s failed: %s; trying next backend", backend.name, outcome.error)

        # Unreachable while the cascade ends with the synthetic backend
        self.store.discard_active()
        self._transition(RecorderState.IDLE)
        return _error(BackendUnavailable, "No capture backend could be started")

    async def _try_backend(self, backend: CaptureBackend, session: RecordingSession) -> AttemptOutcome:
        if not backend.is_available():
            logger.debug("Skipping %s: not available", backend.name)
            return AttemptOutcome.failed(f"{backend.name} not available")
        logger.info("Attempting %s...", backend.name)
        try:
            return await backend.attempt(session)
        except Exception as e:
            logger.warning("%s raised during attempt: %s", backend.name, e, exc_info=True)
            try:
                await backend.stop(session, force=True)
            except Exception:
                logger.warning("Error tearing down %s", backend.name, exc_info=True)
            session.reset_audio()
            return AttemptOutcome.failed(e)

    async def stop(self) -> dict[str, Any]:
        if self._state is not RecorderState.RECORDING:
            return _error(NotRecording, "No recording in progress")

        session = self.store.active
        owner = self._owner
        self._transition(RecorderState.STOPPING)
        try:
            await owner.stop(session)
        except Exception:
            logger.warning("Error stopping %s", owner.name, exc_info=True)
            session.finalize_audio()

        session.finish()
        self.store.complete(session)
        self._owner = None
        logger.info(
            "Recording stopped (%s, %d ms, %d bytes kept in memory)",
            session.mode.value, session.duration, session.buffer_size,
        )
        self._transition(RecorderState.IDLE, session)
        return {"success": True, "recording": session}

    def status(self) -> dict[str, Any]:
        return {
            "is_recording": self.is_recording,
            "recording": self.store.active,
            "state": self._state.value,
        }

    def latest_recording(self) -> Optional[RecordingSession]:
        return self.store.latest

    @property
    def completed(self) -> list[RecordingSession]:
        return self.store.completed

    async def save_for_processing(self) -> Optional[Path]:
        """Write the active (or latest) session's audio to the working directory."""
        if self.is_recording and self._owner is not None:
            self._owner.sync(self.store.active)
        return self.store.save_active_or_latest_for_processing()

    def read_as_base64(self, path: Path | str) -> str:
        return self.store.read_as_base64(path)

    def cleanup_one(self, path: Path | str) -> None:
        self.store.cleanup_one(path)

    async def cleanup_all(self) -> None:
        """Force-stop any active session, forget all recordings, empty the working directory."""
        if self._state is RecorderState.STARTING:
            logger.warning("Cleanup requested while a backend attempt is in progress")
        elif self._owner is not None and self.store.active is not None:
            session = self.store.active
            try:
                await self._owner.stop(session, force=True)
            except Exception:
                logger.warning("Error force-stopping %s", self._owner.name, exc_info=True)
            session.finish()
            self.store.discard_active()
            self._owner = None
            self._transition(RecorderState.IDLE, session)
        self.store.clear()

    def _transition(self, state: RecorderState, session: Optional[RecordingSession] = None) -> None:
        self._state = state
        session = session or self.store.active
        logger.debug("Recorder state -> %s", state.value)
        self.broadcaster.publish({
            "is_recording": state is RecorderState.RECORDING,
            "recording": session.to_dict() if session else None,
            "mode": session.mode.value if session and session.mode else None,
            "state": state.value,
        })
