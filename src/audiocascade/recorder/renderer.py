"""Capture delegated to the UI-hosted capture surface over a message channel.

The backend asks the UI to start capturing for a session id and consumes
``audio-chunk`` messages of the form ``{"session_id", "data", "final"}``.
Chunks tagged with another session id are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from audiocascade.channel import MessageChannel
from audiocascade.constants import IPC_LIVENESS_SECONDS, STOP_GRACE_SECONDS
from audiocascade.errors import DeviceFailure
from audiocascade.recorder.base import AttemptOutcome, CaptureBackend, RecordingMode

if TYPE_CHECKING:
    from audiocascade.session import RecordingSession

logger = logging.getLogger(__name__)

START_EVENT = "start-capture"
STOP_EVENT = "stop-capture"
CHUNK_EVENT = "audio-chunk"
ERROR_EVENT = "capture-error"


def _chunk_bytes(data: Any) -> bytes:
    if not data:
        return b""
    # bytes-like, or a list of ints from the UI bridge
    return bytes(data)


class RendererCaptureBackend(CaptureBackend):
    name = "renderer"
    mode = RecordingMode.MICROPHONE_ONLY
    container = "webm"
    liveness_timeout = IPC_LIVENESS_SECONDS

    def __init__(self, channel: Optional[MessageChannel] = None, stop_grace: float = STOP_GRACE_SECONDS):
        self.channel = channel
        self._stop_grace = stop_grace
        self._gate: Optional[asyncio.Future] = None
        self._final: Optional[asyncio.Event] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._session_id: Optional[str] = None

    def is_available(self) -> bool:
        return self.channel is not None and self.channel.connected

    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        if not self.is_available():
            return AttemptOutcome.failed("No UI capture surface connected")

        timeout = self.liveness_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        self._gate = loop.create_future()
        self._final = asyncio.Event()
        self._session_id = session.session_id

        self._clear_listeners()
        self.channel.on(CHUNK_EVENT, lambda payload: self._on_chunk(session, payload))
        self.channel.on(ERROR_EVENT, self._on_error)

        try:
            self.channel.send(START_EVENT, {"session_id": session.session_id})
        except ConnectionError as e:
            self._release()
            return AttemptOutcome.failed(str(e))

        self._timer = loop.call_later(
            timeout,
            self._resolve,
            AttemptOutcome.failed(f"No audio from UI capture within {timeout:.1f}s"),
        )
        outcome = await self._gate
        self._cancel_timer()

        if not outcome.success:
            self._send_stop(session.session_id)
            self._release()
            session.reset_audio()
        return outcome

    async def stop(self, session: RecordingSession, force: bool = False) -> None:
        self._cancel_timer()
        if self._session_id is not None:
            self._send_stop(self._session_id)
            if not force and self._final is not None and not self._final.is_set():
                try:
                    await asyncio.wait_for(self._final.wait(), timeout=self._stop_grace)
                except asyncio.TimeoutError:
                    logger.warning("UI capture did not deliver its final chunk within %.1fs", self._stop_grace)
        self._release()
        session.finalize_audio()

    def _on_chunk(self, session: RecordingSession, payload: Any) -> None:
        if not isinstance(payload, dict) or payload.get("session_id") != self._session_id:
            logger.debug("Dropping audio chunk for another session")
            return
        data = _chunk_bytes(payload.get("data"))
        if data:
            session.append_audio(data)
            self._resolve(AttemptOutcome(success=True, mode=self.mode))
        if payload.get("final"):
            if self._final is not None:
                self._final.set()
            self._resolve(AttemptOutcome.failed("UI capture ended before producing audio"))

    def _on_error(self, payload: Any) -> None:
        message = payload.get("error") if isinstance(payload, dict) else payload
        logger.warning("UI capture error: %s", message)
        self._resolve(AttemptOutcome.failed(DeviceFailure(f"UI capture error: {message}")))

    def _send_stop(self, session_id: str) -> None:
        try:
            self.channel.send(STOP_EVENT, {"session_id": session_id})
        except ConnectionError as e:
            logger.warning("Could not ask UI to stop capturing: %s", e)

    def _resolve(self, outcome: AttemptOutcome) -> None:
        if self._gate is not None and not self._gate.done():
            self._gate.set_result(outcome)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear_listeners(self) -> None:
        if self.channel is not None:
            self.channel.remove_all_listeners(CHUNK_EVENT)
            self.channel.remove_all_listeners(ERROR_EVENT)

    def _release(self) -> None:
        self._clear_listeners()
        self._gate = None
        self._final = None
        self._session_id = None
