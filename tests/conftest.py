"""Shared test fixtures."""

import asyncio
import sys

import pytest

from audiocascade.recorder.base import AttemptOutcome, CaptureBackend, RecordingMode
from audiocascade.recorder.transcoder import TranscoderBackend
from audiocascade.supervisor import ProcessSupervisor


def script(body: str) -> str:
    """Python source for a fake capture process."""
    return "import sys, time\n" + body


def chunk_after(delay: float, size: int = 1024) -> str:
    """Emit one PCM-sized chunk on stdout after *delay*, then keep running."""
    return script(
        f"time.sleep({delay})\n"
        f"sys.stdout.buffer.write(b'\\x01\\x00' * {size // 2})\n"
        "sys.stdout.flush()\n"
        "time.sleep(60)\n"
    )


def stream_chunks(count: int = 50, interval: float = 0.02) -> str:
    return script(
        f"for _ in range({count}):\n"
        "    sys.stdout.buffer.write(b'\\x01\\x00' * 256)\n"
        "    sys.stdout.flush()\n"
        f"    time.sleep({interval})\n"
        "time.sleep(60)\n"
    )


def stderr_after(delay: float, message: str) -> str:
    return script(
        f"time.sleep({delay})\n"
        f"sys.stderr.write({message!r} + '\\n')\n"
        "sys.stderr.flush()\n"
        "time.sleep(60)\n"
    )


SILENT = script("time.sleep(60)\n")
EXIT_EARLY = script("sys.exit(3)\n")


class ScriptBackend(TranscoderBackend):
    """Transcoder backend running a Python snippet in place of ffmpeg."""

    def __init__(self, name, code, mode=RecordingMode.MIXED, **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.mode = mode
        self.code = code

    def is_available(self):
        return True

    def command(self, session):
        return sys.executable, ["-u", "-c", self.code]


class RecordingSupervisor(ProcessSupervisor):
    """Supervisor that remembers every handle and what was alive at each spawn."""

    def __init__(self):
        self.handles = []
        self.alive_at_spawn = []

    async def spawn(self, command, args, **kwargs):
        self.alive_at_spawn.append(
            [h for h in self.handles if h.process.returncode is None]
        )
        handle = await super().spawn(command, args, **kwargs)
        self.handles.append(handle)
        return handle


class FakeBackend(CaptureBackend):
    """In-memory backend with scripted success or failure."""

    def __init__(self, name, mode=RecordingMode.MIXED, succeed=True, chunks=(b"\x01\x02",),
                 delay=0.0, log=None, container="webm"):
        self.name = name
        self.mode = mode
        self.container = container
        self.succeed = succeed
        self.chunks = chunks
        self.delay = delay
        self.log = log if log is not None else []
        self.attempts = 0
        self.stops = 0
        self.forced = None
        self.active = False

    async def attempt(self, session, timeout=None):
        self.attempts += 1
        self.log.append(("attempt", self.name))
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.succeed:
            self.log.append(("failed", self.name))
            return AttemptOutcome.failed(f"{self.name} scripted failure")
        for chunk in self.chunks:
            session.append_audio(chunk)
        self.active = True
        return AttemptOutcome(success=True, mode=self.mode)

    def feed(self, session, chunk):
        session.append_audio(chunk)

    async def stop(self, session, force=False):
        self.stops += 1
        self.forced = force
        self.active = False
        self.log.append(("stop", self.name))
        session.finalize_audio()


@pytest.fixture
def work_dir(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def supervisor():
    return RecordingSupervisor()
