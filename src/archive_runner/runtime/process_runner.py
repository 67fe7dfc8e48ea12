"""Process runner with subprocess isolation and reliable termination.

This module provides:
- Argument-vector spawning (no shell) in a new session/process group
- Concurrent stdout/stderr draining into one ordered chunk stream
- Termination requests (SIGTERM) that are safe to send from callbacks
- Graceful-then-forceful cleanup (SIGTERM -> timeout -> SIGKILL)
- Cancel-safe cleanup using asyncio.shield

Key design points:
- POSIX: start_new_session=True so signals reach the archiver's whole group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- read_chunks() only finishes after both pipes reached EOF; the exit status
  is awaited after that, so no buffered output is lost before settlement
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple

from .events import StreamSource

__all__ = [
    "ProcessRunner",
    "ProcessSpec",
    "StreamChunk",
    "IS_WINDOWS",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL
DEFAULT_READ_SIZE = 4096


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = inherit)
        env: Environment variables (None = inherit parent)
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None


class StreamChunk(NamedTuple):
    """Raw bytes read from one of the child's pipes."""

    source: StreamSource
    data: bytes


class _PumpFailed(NamedTuple):
    source: StreamSource
    error: BaseException


class _PumpDone(NamedTuple):
    source: StreamSource


@dataclass
class ProcessRunner:
    """Cross-platform process runner with isolation and reliable termination.

    The runner is stateless between invocations; every process handle it
    works on is passed in by the caller.

    Example:
        runner = ProcessRunner()
        process = await runner.start(ProcessSpec(argv=("7z", "l", "a.7z")))
        try:
            async for chunk in runner.read_chunks(process):
                handle(chunk)
            code = await process.wait()
        finally:
            await runner.cleanup(process)
    """

    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    read_size: int = DEFAULT_READ_SIZE

    async def start(self, spec: ProcessSpec) -> asyncio.subprocess.Process:
        """Spawn the subprocess with all three pipes attached.

        Raises:
            OSError: If the executable cannot be started
        """
        kwargs = self._build_subprocess_kwargs(spec)

        process = await asyncio.create_subprocess_exec(
            *spec.argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=spec.cwd,
            **kwargs,
        )

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} nargs={len(spec.argv) - 1} cwd={spec.cwd}"
        )
        return process

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if spec.env is not None:
            kwargs["env"] = dict(spec.env)

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        return kwargs

    async def read_chunks(
        self,
        process: asyncio.subprocess.Process,
    ) -> AsyncIterator[StreamChunk]:
        """Yield stdout/stderr chunks as they arrive until both pipes close.

        Each pipe is drained by its own task so a full stderr buffer can never
        block the child while stdout is being consumed (and vice versa).
        Per-pipe order is preserved; order across pipes follows arrival.

        Raises:
            OSError: If reading a pipe fails
        """
        queue: asyncio.Queue[StreamChunk | _PumpDone | _PumpFailed] = asyncio.Queue()
        pumps = [
            asyncio.create_task(self._pump(process.stdout, StreamSource.STDOUT, queue)),
            asyncio.create_task(self._pump(process.stderr, StreamSource.STDERR, queue)),
        ]
        open_pipes = len(pumps)

        try:
            while open_pipes:
                item = await queue.get()
                if isinstance(item, _PumpDone):
                    open_pipes -= 1
                    logger.debug(f"{item.source.value} closed pid={process.pid}")
                elif isinstance(item, _PumpFailed):
                    raise item.error
                else:
                    yield item
        finally:
            for pump in pumps:
                if not pump.done():
                    pump.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        source: StreamSource,
        queue: asyncio.Queue,
    ) -> None:
        """Copy one pipe into the shared queue until EOF."""
        try:
            if stream is not None:
                while True:
                    data = await stream.read(self.read_size)
                    if not data:
                        break
                    queue.put_nowait(StreamChunk(source, data))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            queue.put_nowait(_PumpFailed(source, e))
            return
        queue.put_nowait(_PumpDone(source))

    def request_termination(self, process: asyncio.subprocess.Process) -> None:
        """Ask the archiver to stop without waiting for it.

        Synchronous so it can be called from inside progress callbacks.
        Does nothing if the process already exited.
        """
        if process.returncode is not None:
            return
        try:
            if IS_WINDOWS:
                self._send_ctrl_break(process)
            else:
                self._signal_session(process, signal.SIGTERM)
        except ProcessLookupError:
            logger.debug(f"Archiver pid={process.pid} exited before it could be stopped")

    async def cleanup(self, process: asyncio.subprocess.Process | None) -> None:
        """Make sure the process is gone, shielded from cancellation."""
        if process is None or process.returncode is not None:
            return
        try:
            await asyncio.shield(self._terminate_process(process))
        except asyncio.CancelledError:
            # The caller was cancelled while waiting; finish stopping the child anyway
            await self._terminate_process(process)
            raise

    async def _terminate_process(
        self,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Stop the archiver, escalating to a hard kill after term_timeout."""
        pid = process.pid
        try:
            self.request_termination(process)
            if await self._reaped_within(process, self.term_timeout):
                logger.debug(f"Archiver pid={pid} stopped returncode={process.returncode}")
                return

            logger.debug(f"Archiver pid={pid} still running after {self.term_timeout}s, killing")
            self._force_kill(process)
            if not await self._reaped_within(process, self.kill_timeout):
                logger.warning(f"Archiver pid={pid} survived a hard kill")

        except ProcessLookupError:
            logger.debug(f"Archiver pid={pid} already gone")
        except OSError as e:
            logger.warning(f"Could not stop archiver pid={pid}: {e}")

    @staticmethod
    async def _reaped_within(process: asyncio.subprocess.Process, timeout: float) -> bool:
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def _force_kill(self, process: asyncio.subprocess.Process) -> None:
        if IS_WINDOWS:
            process.kill()
        else:
            self._signal_session(process, signal.SIGKILL)

    def _signal_session(self, process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
        """Signal every process in the archiver's session.

        The child leads its own session (start_new_session), so its pid is
        also the group id.
        """
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            raise
        except OSError as e:
            logger.debug(f"Group signal {sig.name} failed for pid={process.pid} ({e}), signalling child only")
            process.send_signal(sig)
            return
        logger.debug(f"Sent {sig.name} to archiver group pgid={process.pid}")

    def _send_ctrl_break(self, process: asyncio.subprocess.Process) -> None:
        """Polite stop on Windows, where the child runs in its own console group."""
        try:
            process.send_signal(signal.CTRL_BREAK_EVENT)
        except ProcessLookupError:
            raise
        except OSError as e:
            logger.debug(f"CTRL_BREAK failed for pid={process.pid} ({e}), terminating")
            process.terminate()
