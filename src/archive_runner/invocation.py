"""Archiver invocation: spawn, stream, classify, settle.

Two ways to run the archiver:

    # Callback style: progress gets every stdout chunk, the child's stdin and
    # a zero-argument cancel thunk.
    outcome = await invoke("7z", ["x", "a.7z"], {"o": "out"}, progress=on_chunk)

    # Event channel style with an explicit cancellation token.
    token = CancelToken()
    async with open_invocation("7z", ["t", "a.7z"], cancel_token=token) as run:
        async for event in run.events():
            ...
    outcome = run.outcome

Both settle exactly once: either an Outcome(code, errors, cancelled) or one
raised exception (bad arguments, bad options, spawn failure, or whatever
the progress callback raised). A non-zero exit code is not an exception.

Each Invocation owns its process, error accumulator, classifier and
cancellation token; concurrent invocations share nothing.
"""

from __future__ import annotations

import asyncio
import codecs
import inspect
import logging
from collections.abc import AsyncIterator, Callable, Iterator, Mapping, Sequence
from contextlib import aclosing
from pathlib import Path
from typing import Any

from .config import Config, get_config
from .errors import InvalidArgumentError
from .runtime.cancel import CancelToken
from .runtime.classifier import ErrorClassifier
from .runtime.events import (
    DoneEvent,
    ErrorEvent,
    Outcome,
    ProgressEvent,
    RunEvent,
    StreamSource,
)
from .runtime.process_runner import ProcessRunner, ProcessSpec
from .switches import serialize_switches

__all__ = [
    "Invocation",
    "ProgressCallback",
    "invoke",
    "open_invocation",
]

logger = logging.getLogger(__name__)

# progress(chunk, stdin, cancel); no placeholder before stdin; may return an awaitable
ProgressCallback = Callable[[str, Any, Callable[[], None]], Any]


def _validate_request(command: Any, args: Any) -> None:
    """Reject malformed call-boundary input before anything is spawned."""
    if not isinstance(command, str) or not command:
        raise InvalidArgumentError("command must be a non-empty string")
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise InvalidArgumentError("args must be a list of strings")
    for arg in args:
        if not isinstance(arg, str):
            raise InvalidArgumentError(f"args must be a list of strings, got {arg!r}")


def _redact(argv: Sequence[str]) -> str:
    """Join argv for logging with password switches masked."""
    return " ".join("-p***" if token.startswith("-p") and len(token) > 2 else token for token in argv)


def _build_runner(config: Config) -> ProcessRunner:
    return ProcessRunner(
        term_timeout=config.term_timeout,
        kill_timeout=config.kill_timeout,
        read_size=config.read_size,
    )


class Invocation:
    """One archiver run, from spawn to settled outcome.

    Attributes:
        argv: Full argument vector (command, args, then serialized switches)
        cancel_token: Cancellation token shared with the caller
        errors: Error accumulator, in detection order
        process: The running child once started
        outcome: Settled Outcome once DoneEvent was produced
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        options: Mapping[str, Any] | None = None,
        *,
        cancel_token: CancelToken | None = None,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        runner: ProcessRunner | None = None,
        config: Config | None = None,
    ) -> None:
        """Validate the request and assemble argv.

        Raises:
            InvalidArgumentError: command/args are malformed
            InvalidOptionError: options cannot be serialized
        """
        _validate_request(command, args)
        switches = serialize_switches(options)

        config = config or get_config()
        self.argv: tuple[str, ...] = (command, *args, *switches)
        self.cancel_token = cancel_token if cancel_token is not None else CancelToken()
        self.errors: list[str] = []
        self.process: asyncio.subprocess.Process | None = None
        self.outcome: Outcome | None = None

        self._cwd = Path(cwd) if cwd is not None else None
        self._env = env
        self._runner = runner if runner is not None else _build_runner(config)
        self._encoding = config.encoding
        self._classifier = ErrorClassifier()
        self._stream: AsyncIterator[RunEvent] | None = None

    @property
    def command(self) -> str:
        return self.argv[0]

    @property
    def stdin(self) -> asyncio.StreamWriter | None:
        """The child's input stream, for answering interactive prompts."""
        return self.process.stdin if self.process is not None else None

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled

    def cancel(self) -> None:
        """Request termination; safe to call any number of times."""
        self.cancel_token.cancel()

    def events(self) -> AsyncIterator[RunEvent]:
        """Start the process and return its event channel.

        The channel can only be consumed once.
        """
        if self._stream is not None:
            raise RuntimeError("invocation events can only be consumed once")
        self._stream = self._run()
        return self._stream

    async def aclose(self) -> None:
        """Stop consuming events and make sure the process is gone."""
        if self._stream is not None:
            await self._stream.aclose()

    async def __aenter__(self) -> "Invocation":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _run(self) -> AsyncIterator[RunEvent]:
        spec = ProcessSpec(argv=self.argv, cwd=self._cwd, env=self._env)
        logger.info(f"Executing: {_redact(self.argv)}")

        try:
            process = await self._runner.start(spec)
        except OSError as e:
            logger.error(f"Failed to start {self.command}: {e}")
            raise
        self.process = process
        unregister = self.cancel_token.on_cancel(self._on_cancel)

        try:
            decoders = {
                source: codecs.getincrementaldecoder(self._encoding)(errors="replace")
                for source in StreamSource
            }

            try:
                async with aclosing(self._runner.read_chunks(process)) as chunks:
                    async for chunk in chunks:
                        text = decoders[chunk.source].decode(chunk.data)
                        for event in self._classify(chunk.source, text):
                            yield event
            except OSError as e:
                if not self.cancel_token.cancelled:
                    raise
                logger.debug(f"Pipe read failed after cancel pid={process.pid}: {e}")

            for source, decoder in decoders.items():
                for event in self._classify(source, decoder.decode(b"", final=True)):
                    yield event

            # Both pipes are drained; only now is the exit status settled.
            code = await process.wait()
            self.outcome = Outcome(
                code=code,
                errors=list(self.errors),
                cancelled=self.cancel_token.cancelled,
            )
            logger.debug(
                f"Subprocess completed pid={process.pid} returncode={code} "
                f"errors={len(self.errors)} cancelled={self.outcome.cancelled}"
            )
            yield DoneEvent(
                code=code,
                errors=list(self.errors),
                cancelled=self.outcome.cancelled,
            )
        finally:
            unregister()
            self._close_stdin()
            await self._runner.cleanup(process)

    def _classify(self, source: StreamSource, text: str) -> Iterator[RunEvent]:
        """Turn one decoded chunk into events, appending detected errors.

        Stdout is forwarded before it is scanned.
        """
        if not text:
            return
        if source is StreamSource.STDOUT:
            yield ProgressEvent(text=text)
            messages = self._classifier.scan_stdout(text)
        else:
            messages = self._classifier.scan_stderr(text)
        for message in messages:
            self.errors.append(message)
            yield ErrorEvent(source=source, message=message)

    def _on_cancel(self) -> None:
        if self.process is None:
            return
        logger.info(f"Cancel requested pid={self.process.pid}")
        self._runner.request_termination(self.process)

    def _close_stdin(self) -> None:
        stdin = self.stdin
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            pass


def open_invocation(
    command: str,
    args: Sequence[str],
    options: Mapping[str, Any] | None = None,
    *,
    cancel_token: CancelToken | None = None,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    runner: ProcessRunner | None = None,
    config: Config | None = None,
) -> Invocation:
    """Create an Invocation for use as an async context manager.

    Raises:
        InvalidArgumentError: command/args are malformed
        InvalidOptionError: options cannot be serialized
    """
    return Invocation(
        command,
        args,
        options,
        cancel_token=cancel_token,
        cwd=cwd,
        env=env,
        runner=runner,
        config=config,
    )


async def invoke(
    command: str,
    args: Sequence[str],
    options: Mapping[str, Any] | None = None,
    progress: ProgressCallback | None = None,
    *,
    cancel_token: CancelToken | None = None,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    runner: ProcessRunner | None = None,
    config: Config | None = None,
) -> Outcome:
    """Run the archiver to completion.

    Args:
        command: Executable to run (e.g. "7z")
        args: Positional arguments, placed before the serialized switches
        options: Switch mapping for serialize_switches()
        progress: Called as progress(chunk, stdin, cancel) for every stdout chunk
            Handlers written for the older four-argument form
            (chunk, _, stdin, cancel) drop the unused second parameter.
            May be a coroutine function.
        cancel_token: Optional token to cancel from outside
        cwd: Working directory for the archiver
        env: Environment for the archiver (None = inherit)
        runner: ProcessRunner override
        config: Config override (defaults to get_config())

    Returns:
        Outcome with exit code, detected errors and the cancellation flag

    Raises:
        InvalidArgumentError: command/args are malformed (nothing is spawned)
        InvalidOptionError: options cannot be serialized (nothing is spawned)
        OSError: the archiver could not be started
        Exception: whatever progress raised; the archiver is terminated first
    """
    invocation = Invocation(
        command,
        args,
        options,
        cancel_token=cancel_token,
        cwd=cwd,
        env=env,
        runner=runner,
        config=config,
    )

    async with aclosing(invocation.events()) as events:
        async for event in events:
            if progress is None or not isinstance(event, ProgressEvent):
                continue
            try:
                result = progress(event.text, invocation.stdin, invocation.cancel)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                pid = invocation.process.pid if invocation.process else None
                logger.warning(f"Progress callback failed, terminating pid={pid}: {e!r}")
                raise

    if invocation.outcome is None:
        raise RuntimeError("invocation ended without an outcome")
    return invocation.outcome
