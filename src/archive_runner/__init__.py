"""archive-runner - run 7-Zip, stream its output, collect its errors.

Usage:
    from archive_runner import invoke

    outcome = await invoke("7z", ["t", "backup.7z"], {"p": "secret"})
    print(outcome.code, outcome.errors)
"""

__version__ = "0.1.0"

from .commands import SevenZip
from .config import Config, get_config, load_config, reload_config
from .errors import ArchiveRunnerError, InvalidArgumentError, InvalidOptionError
from .invocation import Invocation, invoke, open_invocation
from .runtime import (
    CancelToken,
    DoneEvent,
    ErrorEvent,
    Outcome,
    ProcessRunner,
    ProgressEvent,
)
from .switches import serialize_switches

__all__ = [
    "ArchiveRunnerError",
    "CancelToken",
    "Config",
    "DoneEvent",
    "ErrorEvent",
    "InvalidArgumentError",
    "InvalidOptionError",
    "Invocation",
    "Outcome",
    "ProcessRunner",
    "ProgressEvent",
    "SevenZip",
    "__version__",
    "get_config",
    "invoke",
    "load_config",
    "open_invocation",
    "reload_config",
    "serialize_switches",
]
