"""7-Zip command facade.

Thin wrappers that only assemble the command letter and positional
arguments, then hand everything to invoke(). Output is not parsed; callers
get the same Outcome as from invoke().

Example:
    sz = SevenZip()
    outcome = await sz.add("backup.7z", ["docs/", "notes.txt"], {"mx": 9})
    if not outcome.ok:
        print(outcome.code, outcome.errors)
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from typing import Any, Union

from .config import Config, get_config
from .invocation import ProgressCallback, invoke
from .runtime.cancel import CancelToken
from .runtime.events import Outcome
from .runtime.process_runner import ProcessRunner

__all__ = ["SevenZip", "DEFAULT_SWITCHES"]

# Assume "yes" on all queries and match names case-sensitively unless overridden
DEFAULT_SWITCHES: dict[str, Any] = {"y": True, "ssc": True}

PathLike = Union[str, "os.PathLike[str]"]


def _paths(files: PathLike | Sequence[PathLike]) -> list[str]:
    """Normalize one path or a sequence of paths to a list of strings."""
    if isinstance(files, (str, os.PathLike)):
        return [os.fspath(files)]
    return [os.fspath(f) for f in files]


class SevenZip:
    """Convenience API over invoke() for the common 7-Zip commands.

    Attributes:
        binary: Archiver executable (defaults to ARUN_BINARY / "7z")
    """

    def __init__(
        self,
        binary: str | None = None,
        config: Config | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self._config = config or get_config()
        self.binary = binary or self._config.binary
        self._runner = runner

    def _options(self, options: Mapping[str, Any] | None, **extra: Any) -> dict[str, Any]:
        merged = dict(DEFAULT_SWITCHES)
        merged.update(extra)
        if options:
            merged.update(options)
        return merged

    async def run(
        self,
        letter: str,
        args: Sequence[str],
        options: Mapping[str, Any] | None = None,
        progress: ProgressCallback | None = None,
        *,
        cancel_token: CancelToken | None = None,
        **extra: Any,
    ) -> Outcome:
        """Run a 7-Zip command letter with default switches applied."""
        return await invoke(
            self.binary,
            [letter, *args],
            self._options(options, **extra),
            progress,
            cancel_token=cancel_token,
            runner=self._runner,
            config=self._config,
        )

    async def add(self, archive: PathLike, files: PathLike | Sequence[PathLike], options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Add files to an archive (``7z a``)."""
        return await self.run("a", [os.fspath(archive), *_paths(files)], options, progress, cancel_token=cancel_token)

    async def update(self, archive: PathLike, files: PathLike | Sequence[PathLike], options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Update files in an archive (``7z u``)."""
        return await self.run("u", [os.fspath(archive), *_paths(files)], options, progress, cancel_token=cancel_token)

    async def delete(self, archive: PathLike, files: PathLike | Sequence[PathLike], options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Delete entries from an archive (``7z d``)."""
        return await self.run("d", [os.fspath(archive), *_paths(files)], options, progress, cancel_token=cancel_token)

    async def extract(self, archive: PathLike, dest: PathLike | None = None, options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Extract without directory structure (``7z e``)."""
        extra = {"o": os.fspath(dest)} if dest is not None else {}
        return await self.run("e", [os.fspath(archive)], options, progress, cancel_token=cancel_token, **extra)

    async def extract_full(self, archive: PathLike, dest: PathLike | None = None, options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Extract with full paths (``7z x``)."""
        extra = {"o": os.fspath(dest)} if dest is not None else {}
        return await self.run("x", [os.fspath(archive)], options, progress, cancel_token=cancel_token, **extra)

    async def list(self, archive: PathLike, options=None, progress=None, *, cancel_token=None) -> Outcome:
        """List archive contents (``7z l``); the listing arrives through progress."""
        return await self.run("l", [os.fspath(archive)], options, progress, cancel_token=cancel_token)

    async def test(self, archive: PathLike, options=None, progress=None, *, cancel_token=None) -> Outcome:
        """Test archive integrity (``7z t``)."""
        return await self.run("t", [os.fspath(archive)], options, progress, cancel_token=cancel_token)
