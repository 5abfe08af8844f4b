"""Privileged native helper that records straight to a WAV file.

The helper is invoked as ``<helper> <output-path>``. It prints ``READY`` on
stdout once audio is flowing and an ``ERROR``-prefixed line if it cannot
record. Its stdout carries log text, not audio; the audio is read back from
the output file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from audiocascade.constants import HELPER_ERROR_PREFIX, HELPER_READY_TOKEN
from audiocascade.errors import BackendUnavailable, DeviceFailure
from audiocascade.recorder.base import AttemptOutcome, ProcessBackend, RecordingMode

if TYPE_CHECKING:
    from audiocascade.session import RecordingSession

logger = logging.getLogger(__name__)


class NativeHelperBackend(ProcessBackend):
    name = "native-helper"
    mode = RecordingMode.MICROPHONE_ONLY
    container = "wav"

    def __init__(self, helper_path: Path | str, work_dir: Path | str, **kwargs):
        super().__init__(**kwargs)
        self.helper_path = Path(helper_path)
        self.work_dir = Path(work_dir)
        self._output_path: Optional[Path] = None
        self._stdout_text = ""

    def is_available(self) -> bool:
        return self.helper_path.is_file() and os.access(self.helper_path, os.X_OK)

    @property
    def output_path(self) -> Optional[Path]:
        return self._output_path

    def command(self, session: RecordingSession) -> tuple[str, Sequence[str]]:
        if not self.helper_path.exists():
            raise BackendUnavailable(f"Native helper not found at {self.helper_path}")
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self._output_path = self.work_dir / f"helper-{session.start_time}.wav"
        self._stdout_text = ""
        return str(self.helper_path), [str(self._output_path)]

    def on_chunk(self, session: RecordingSession, data: bytes) -> None:
        self._stdout_text += data.decode("utf-8", errors="replace")
        *lines, self._stdout_text = self._stdout_text.split("\n")
        for line in lines:
            self._handle_line(line.strip())
        # A token without a trailing newline still counts
        if self._stdout_text.strip() == HELPER_READY_TOKEN:
            self._handle_line(HELPER_READY_TOKEN)

    def on_diagnostic(self, session: RecordingSession, text: str, fatal: bool) -> None:
        if text.startswith(HELPER_ERROR_PREFIX):
            logger.warning("%s: %s", self.name, text)
            self._resolve(AttemptOutcome.failed(DeviceFailure(text)))
            return
        super().on_diagnostic(session, text, fatal)

    def _handle_line(self, line: str) -> None:
        if not line:
            return
        if line == HELPER_READY_TOKEN:
            logger.info("Native helper is ready and recording")
            self._resolve(AttemptOutcome(success=True, mode=self.mode))
        elif line.startswith(HELPER_ERROR_PREFIX):
            logger.warning("%s: %s", self.name, line)
            self._resolve(AttemptOutcome.failed(DeviceFailure(line)))
        else:
            logger.debug("%s: %s", self.name, line)

    async def attempt(self, session: RecordingSession, timeout: Optional[float] = None) -> AttemptOutcome:
        outcome = await super().attempt(session, timeout)
        if not outcome.success and self._output_path is not None:
            self._output_path.unlink(missing_ok=True)
            self._output_path = None
        return outcome

    def sync(self, session: RecordingSession) -> None:
        self._load_output(session)

    async def stop(self, session: RecordingSession, force: bool = False) -> None:
        await self._teardown(force=force)
        self._load_output(session)
        session.finalize_audio()

    async def _teardown(self, force: bool = False) -> None:
        output = self._output_path
        await super()._teardown(force=force)
        self._output_path = output

    def _load_output(self, session: RecordingSession) -> None:
        if self._output_path is None or not self._output_path.exists():
            return
        try:
            session.replace_audio(self._output_path.read_bytes())
        except OSError as e:
            logger.warning("Error reading native helper output %s: %s", self._output_path, e)
