"""Capture backend interface and shared data types."""

from __future__ import annotations

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from audiocascade.constants import PROCESS_LIVENESS_SECONDS, STOP_GRACE_SECONDS
from audiocascade.errors import BackendUnavailable, DeviceFailure
from audiocascade.supervisor import ProcessHandle, ProcessSupervisor

if TYPE_CHECKING:
    from audiocascade.session import RecordingSession

logger = logging.getLogger(__name__)


class RecordingMode(str, enum.Enum):
    """Which kind of capture ended up owning a session."""
    MIXED = "mixed"
    SYSTEM_ONLY = "system-only"
    MICROPHONE_ONLY = "microphone-only"
    MOCK = "mock"


@dataclass
class AttemptOutcome:
    """Result of one backend attempt."""
    success: bool
    mode: Optional[RecordingMode] = None
    error: Optional[str] = None
    cause: Optional[Exception] = None

    @classmethod
    def failed(cls, error: str | Exception) -> AttemptOutcome:
        if isinstance(error, Exception):
            return cls(success=False, error=str(error), cause=error)
        return cls(success=False, error=error)


class CaptureBackend(ABC):
    """One strategy for obtaining audio bytes for a session."""

    name: str = "backend"
    mode: RecordingMode = RecordingMode.MOCK
    container: str = "wav"
    liveness_timeout: float = PROCESS_LIVENESS_SECONDS

    @abstractmethod
    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        """Start capturing into *session*.

        Succeeds only once real audio has been observed. Fails if nothing
        arrives within the liveness window. A failed attempt has already
        released everything it acquired when this returns.
        """
        ...

    @abstractmethod
    async def stop(self, session: RecordingSession, force: bool = False) -> None:
        """Stop capturing and leave the final payload in the session buffer."""
        ...

    def sync(self, session: RecordingSession) -> None:
        """Bring the session buffer up to date before a mid-recording snapshot."""

    def is_available(self) -> bool:
        """Cheap pre-check; False skips the attempt entirely."""
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ProcessBackend(CaptureBackend):
    """Shared attempt/stop logic for backends driven by one external process.

    The attempt resolves through a single future settled by whichever of
    first chunk, fatal diagnostic, process exit, or liveness timer fires
    first. Later events are ignored by the future but still routed to the
    session.
    """

    def __init__(
        self,
        supervisor: Optional[ProcessSupervisor] = None,
        stop_grace: float = STOP_GRACE_SECONDS,
    ):
        self._supervisor = supervisor or ProcessSupervisor()
        self._stop_grace = stop_grace
        self._handle: Optional[ProcessHandle] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._gate: Optional[asyncio.Future] = None
        self._session: Optional[RecordingSession] = None

    @abstractmethod
    def command(self, session: RecordingSession) -> tuple[str, Sequence[str]]:
        """Executable and arguments for this attempt."""
        ...

    def on_chunk(self, session: RecordingSession, data: bytes) -> None:
        session.append_audio(data)
        self._resolve(AttemptOutcome(success=True, mode=self.mode))

    def on_diagnostic(self, session: RecordingSession, text: str, fatal: bool) -> None:
        if fatal:
            logger.warning("%s: device failure: %s", self.name, text)
            self._resolve(AttemptOutcome.failed(DeviceFailure(f"Device failure: {text}")))
        else:
            logger.debug("%s stderr: %s", self.name, text)

    def on_exit(self, code: Optional[int]) -> None:
        if self._gate is not None and not self._gate.done():
            logger.warning("%s exited with code %s before producing audio", self.name, code)
        self._resolve(AttemptOutcome.failed(f"{self.name} exited with code {code}"))

    @property
    def handle(self) -> Optional[ProcessHandle]:
        return self._handle

    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        if self._handle is not None:
            raise RuntimeError(f"{self.name} already owns a process")

        timeout = self.liveness_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        self._gate = loop.create_future()
        self._session = session

        try:
            executable, args = self.command(session)
            self._handle = await self._supervisor.spawn(
                executable,
                args,
                on_chunk=lambda data: self.on_chunk(session, data),
                on_diagnostic=lambda text, fatal: self.on_diagnostic(session, text, fatal),
                on_exit=self.on_exit,
            )
        except BackendUnavailable as e:
            logger.warning("%s unavailable: %s", self.name, e)
            self._reset()
            return AttemptOutcome.failed(e)

        self._timer = loop.call_later(
            timeout,
            self._resolve,
            AttemptOutcome.failed(f"No audio from {self.name} within {timeout:.1f}s"),
        )
        outcome = await self._gate
        self._cancel_timer()

        if not outcome.success:
            await self._teardown(force=True)
            session.reset_audio()
        return outcome

    async def stop(self, session: RecordingSession, force: bool = False) -> None:
        await self._teardown(force=force)
        session.finalize_audio()

    async def _teardown(self, force: bool = False) -> None:
        self._cancel_timer()
        handle = self._handle
        if handle is not None:
            await handle.terminate(grace=0.0 if force else self._stop_grace)
        self._reset()

    def _resolve(self, outcome: AttemptOutcome) -> None:
        if self._gate is not None and not self._gate.done():
            self._gate.set_result(outcome)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _reset(self) -> None:
        self._handle = None
        self._gate = None
        self._session = None
