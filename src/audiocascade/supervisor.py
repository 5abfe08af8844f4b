"""Async supervision of a single external capture process.

Spawns the process with ``asyncio.create_subprocess_exec`` and pumps its
streams from two reader tasks: stdout arrives as binary chunks, stderr as
decoded lines classified as fatal or benign. The exit callback fires once
both streams have drained.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from audiocascade.constants import FATAL_DIAGNOSTICS, STOP_GRACE_SECONDS
from audiocascade.errors import BackendUnavailable

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]
DiagnosticCallback = Callable[[str, bool], None]
ExitCallback = Callable[[Optional[int]], None]

READ_SIZE = 4096


def classify_diagnostic(text: str) -> bool:
    """Whether stderr text indicates the capture device is unavailable."""
    lowered = text.lower()
    return any(pattern in lowered for pattern in FATAL_DIAGNOSTICS)


class ProcessHandle:
    """A running capture process and the tasks reading its output."""

    def __init__(self, process: asyncio.subprocess.Process, command: Sequence[str]):
        self.process = process
        self.command = list(command)
        self._tasks: list[asyncio.Task] = []
        self._watcher: Optional[asyncio.Task] = None
        self._exited = asyncio.Event()
        self.returncode: Optional[int] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def has_exited(self) -> bool:
        return self._exited.is_set()

    async def wait(self) -> Optional[int]:
        await self._exited.wait()
        return self.returncode

    async def terminate(self, grace: float = STOP_GRACE_SECONDS) -> Optional[int]:
        """SIGTERM, then SIGKILL if the process outlives *grace* seconds.

        Safe to call repeatedly and after the process has exited on its own.
        """
        if self.process.returncode is None:
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self.process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning("%s ignored SIGTERM for %.1fs, killing", self.command[0], grace)
                try:
                    self.process.kill()
                except ProcessLookupError:
                    pass
                await self.process.wait()
        # Readers finish once the pipes hit EOF
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._watcher is not None:
            await self._watcher
        return self.process.returncode


class ProcessSupervisor:
    """Spawns capture processes and wires their streams to callbacks."""

    async def spawn(
        self,
        command: str,
        args: Sequence[str],
        on_chunk: Optional[ChunkCallback] = None,
        on_diagnostic: Optional[DiagnosticCallback] = None,
        on_exit: Optional[ExitCallback] = None,
    ) -> ProcessHandle:
        cmd = [command, *args]
        logger.debug("Spawning: %s", " ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BackendUnavailable(f"{command}: {e}") from e
        except OSError as e:
            raise BackendUnavailable(f"Failed to spawn {command}: {e}") from e

        handle = ProcessHandle(process, cmd)
        stdout_task = asyncio.create_task(_pump_stdout(process.stdout, on_chunk))
        stderr_task = asyncio.create_task(_pump_stderr(process.stderr, on_diagnostic))
        handle._tasks = [stdout_task, stderr_task]
        handle._watcher = asyncio.create_task(_watch_exit(handle, stdout_task, stderr_task, on_exit))
        return handle


async def _pump_stdout(stream: asyncio.StreamReader, on_chunk: Optional[ChunkCallback]) -> None:
    while True:
        try:
            data = await stream.read(READ_SIZE)
        except (OSError, ValueError):
            break
        if not data:
            break
        if on_chunk is not None:
            on_chunk(data)


async def _pump_stderr(stream: asyncio.StreamReader, on_diagnostic: Optional[DiagnosticCallback]) -> None:
    while True:
        try:
            line = await stream.readline()
        except (OSError, ValueError):
            break
        if not line:
            break
        text = line.decode("utf-8", errors="replace").rstrip()
        if not text:
            continue
        fatal = classify_diagnostic(text)
        if on_diagnostic is not None:
            on_diagnostic(text, fatal)


async def _watch_exit(
    handle: ProcessHandle,
    stdout_task: Awaitable,
    stderr_task: Awaitable,
    on_exit: Optional[ExitCallback],
) -> None:
    await asyncio.gather(stdout_task, stderr_task, return_exceptions=True)
    code = await handle.process.wait()
    handle.returncode = code
    handle._exited.set()
    logger.debug("%s exited with code %s", handle.command[0], code)
    if on_exit is not None:
        on_exit(code)
