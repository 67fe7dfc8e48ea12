"""Command-line entry point.

    python -m archive_runner [--binary 7z] [--timeout S] [--password P]
                             [-s KEY=VALUE ...] COMMAND [ARGS...]

Runs the archiver through invoke(), echoes its output, prints detected errors
to stderr and exits with the archiver's exit code. SIGINT/SIGTERM and
--timeout cancel the running archiver instead of killing this process.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from collections.abc import Sequence
from typing import Any, Callable, TextIO

import anyio
from anyio.abc import TaskGroup

from .config import Config, get_config
from .errors import ArchiveRunnerError
from .invocation import invoke
from .runtime.cancel import CancelToken
from .runtime.events import Outcome

__all__ = ["main", "parse_switch", "configure_logging", "build_parser", "exit_code_for"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Exit code when the archiver could not be started (shell convention)
EXIT_NOT_FOUND = 127
EXIT_USAGE = 2

# 7-Zip asks "Enter password (will not be echoed):"
PASSWORD_PROMPT = "Enter password"


def configure_logging(config: Config) -> None:
    """Send package logs to stderr (INFO) or to a temp file (DEBUG)."""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Third-party loggers stay at WARNING
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    logging.getLogger("archive_runner").setLevel(log_level)


def parse_switch(text: str) -> tuple[str, Any]:
    """Parse ``KEY=VALUE`` / ``KEY`` / ``KEY-`` into a switch entry.

    ``KEY`` alone means True, ``KEY-`` means False. Values that look like
    integers become ints.
    """
    if "=" not in text:
        if text.endswith("-") and len(text) > 1:
            return text[:-1], False
        return text, True
    key, value = text.split("=", 1)
    if value.lstrip("-").isdigit():
        return key, int(value)
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archive-runner",
        description="Run 7-Zip and report its exit code and errors",
    )
    parser.add_argument("--binary", default=None, help="Archiver executable (default: ARUN_BINARY or 7z)")
    parser.add_argument("--timeout", type=float, default=None, help="Cancel the archiver after this many seconds")
    parser.add_argument("--password", default=None, help="Answer password prompts with this value")
    parser.add_argument(
        "-s", "--switch",
        dest="switches",
        action="append",
        default=[],
        metavar="KEY[=VALUE]",
        help="7-Zip switch without the leading dash, e.g. -s mx=9 -s y",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not echo archiver output")
    parser.add_argument("command", help="7-Zip command letter, e.g. a, x, l, t")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Archive and file arguments, passed through as-is")
    return parser


def _make_progress(
    password: str | None,
    out: TextIO,
    quiet: bool,
) -> Callable[..., None]:
    def progress(chunk: str, stdin: Any, cancel: Callable[[], None]) -> None:
        if not quiet:
            out.write(chunk)
            out.flush()
        if PASSWORD_PROMPT in chunk and stdin is not None:
            if password is None:
                logger.warning("Archiver asked for a password and none was given, cancelling")
                cancel()
            else:
                stdin.write(f"{password}\n".encode())

    return progress


async def _run(args: argparse.Namespace, config: Config, out: TextIO) -> Outcome:
    """Run the archiver alongside the signal and timeout watchers.

    Errors are carried out of the task group unwrapped so main() can map
    them to exit codes.
    """
    token = CancelToken()
    options = dict(parse_switch(s) for s in args.switches)
    result: dict[str, Any] = {}

    async def watch_signals() -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                logger.warning(f"Received {signal.Signals(signum).name}, cancelling archiver")
                token.cancel()

    async def watch_timeout(seconds: float) -> None:
        await anyio.sleep(seconds)
        logger.warning(f"Timed out after {seconds}s, cancelling archiver")
        token.cancel()

    async def run_archiver(tg: TaskGroup) -> None:
        try:
            result["outcome"] = await invoke(
                args.binary or config.binary,
                [args.command, *args.args],
                options,
                _make_progress(args.password, out, args.quiet),
                cancel_token=token,
                config=config,
            )
        except (ArchiveRunnerError, OSError) as e:
            result["error"] = e
        finally:
            tg.cancel_scope.cancel()

    async with anyio.create_task_group() as tg:
        if sys.platform != "win32":
            tg.start_soon(watch_signals)
        if args.timeout is not None:
            tg.start_soon(watch_timeout, args.timeout)
        tg.start_soon(run_archiver, tg)

    if "error" in result:
        raise result["error"]
    return result["outcome"]


def exit_code_for(outcome: Outcome) -> int:
    """Map an outcome to a shell exit status (signal deaths become 128+N)."""
    if outcome.code < 0:
        return 128 - outcome.code
    return outcome.code


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    """Run the CLI and return the process exit code."""
    config = get_config()
    configure_logging(config)
    args = build_parser().parse_args(argv)
    out = out or sys.stdout

    try:
        outcome = anyio.run(_run, args, config, out)
    except ArchiveRunnerError as e:
        print(f"archive-runner: {e}", file=sys.stderr)
        return EXIT_USAGE
    except OSError as e:
        print(f"archive-runner: cannot start archiver: {e}", file=sys.stderr)
        return EXIT_NOT_FOUND

    for message in outcome.errors:
        print(f"error: {message.rstrip()}", file=sys.stderr)
    if outcome.cancelled:
        print("archive-runner: cancelled", file=sys.stderr)
    return exit_code_for(outcome)
