"""Synthetic backend that fabricates placeholder audio and never fails."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from audiocascade.constants import (
    DEFAULT_SAMPLE_RATE,
    SYNTHETIC_INTERVAL_SECONDS,
    SYNTHETIC_MAX_SECONDS,
    SYNTHETIC_SECONDS,
)
from audiocascade.recorder.base import AttemptOutcome, CaptureBackend, RecordingMode
from audiocascade.wav import synth_wav

if TYPE_CHECKING:
    from audiocascade.session import RecordingSession

logger = logging.getLogger(__name__)


class SyntheticBackend(CaptureBackend):
    """Writes a modulated tone into the session, regrown on a fixed interval.

    Each regeneration replaces the buffer with a complete WAV one second
    longer than the last, up to *max_seconds*.
    """

    name = "synthetic"
    mode = RecordingMode.MOCK
    container = "wav"

    def __init__(
        self,
        interval: float = SYNTHETIC_INTERVAL_SECONDS,
        duration: float = SYNTHETIC_SECONDS,
        max_seconds: float = SYNTHETIC_MAX_SECONDS,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ):
        self.interval = interval
        self.duration = duration
        self.max_seconds = max_seconds
        self.sample_rate = sample_rate
        self._task: Optional[asyncio.Task] = None
        self._current_seconds = duration

    @property
    def current_seconds(self) -> float:
        return self._current_seconds

    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        await self._cancel_task()
        self._current_seconds = self.duration
        session.replace_audio(synth_wav(self._current_seconds, self.sample_rate))
        self._task = asyncio.create_task(self._regenerate(session))
        logger.info("Synthetic audio started (%.1fs placeholder)", self._current_seconds)
        return AttemptOutcome(success=True, mode=self.mode)

    async def stop(self, session: RecordingSession, force: bool = False) -> None:
        await self._cancel_task()
        session.finalize_audio()

    async def _regenerate(self, session: RecordingSession) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._current_seconds = min(self._current_seconds + 1.0, self.max_seconds)
            session.replace_audio(synth_wav(self._current_seconds, self.sample_rate))
            logger.debug("Regenerated synthetic audio (%.1fs)", self._current_seconds)

    async def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
