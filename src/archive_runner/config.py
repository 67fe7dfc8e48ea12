"""archive-runner environment configuration.

Environment variables:
    ARUN_BINARY: archiver executable used by SevenZip and the CLI
        - default "7z"
        - e.g. "7za", "/usr/lib/p7zip/7z"

    ARUN_TERM_TIMEOUT: seconds to wait after SIGTERM before SIGKILL
        - default 2.0, clamped to 0.1-60

    ARUN_KILL_TIMEOUT: seconds to wait after SIGKILL
        - default 1.0, clamped to 0.1-60

    ARUN_READ_SIZE: bytes requested per pipe read
        - default 4096, clamped to 256-1048576

    ARUN_ENCODING: encoding used to decode archiver output
        - default "utf-8"; undecodable bytes are replaced

    ARUN_LOG_DEBUG: debug logging
        - true/1/yes = on (DEBUG logs written to a temp file)
        - false/0/no = off (default, INFO logs to stderr)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_BINARY = "7z"
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_float(value: str | None, default: float, low: float, high: float) -> float:
    """Parse a float environment variable, clamped into [low, high]."""
    if not value:
        return default
    try:
        return max(low, min(float(value), high))
    except ValueError:
        return default


def _parse_int(value: str | None, default: int, low: int, high: int) -> int:
    """Parse an int environment variable, clamped into [low, high]."""
    if not value:
        return default
    try:
        return max(low, min(int(value), high))
    except ValueError:
        return default


def _parse_encoding(value: str | None) -> str:
    """Return a known codec name, falling back to utf-8."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """archive-runner configuration.

    Attributes:
        binary: Archiver executable
        term_timeout: Grace period after SIGTERM (seconds)
        kill_timeout: Grace period after SIGKILL (seconds)
        read_size: Bytes per pipe read
        encoding: Output decoding
        log_debug: Debug logging to a temp file
        log_file: Log file path (set when log_debug is on)
    """

    binary: str = DEFAULT_BINARY
    term_timeout: float = 2.0
    kill_timeout: float = 1.0
    read_size: int = 4096
    encoding: str = DEFAULT_ENCODING
    log_debug: bool = False
    log_file: str | None = None


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "archive-runner"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"arun_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from the environment."""
    log_debug = _parse_bool(os.environ.get("ARUN_LOG_DEBUG"), default=False)
    binary = (os.environ.get("ARUN_BINARY") or "").strip() or DEFAULT_BINARY

    return Config(
        binary=binary,
        term_timeout=_parse_float(os.environ.get("ARUN_TERM_TIMEOUT"), 2.0, 0.1, 60.0),
        kill_timeout=_parse_float(os.environ.get("ARUN_KILL_TIMEOUT"), 1.0, 0.1, 60.0),
        read_size=_parse_int(os.environ.get("ARUN_READ_SIZE"), 4096, 256, 1024 * 1024),
        encoding=_parse_encoding(os.environ.get("ARUN_ENCODING")),
        log_debug=log_debug,
        log_file=_generate_log_file_path() if log_debug else None,
    )


# Global config instance (lazy)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from the environment (used by tests)."""
    global _config
    _config = load_config()
    return _config
