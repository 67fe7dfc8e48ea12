"""archive-runner exception types.

Spawn failures surface as the raw ``OSError`` from the OS layer and
exceptions raised by a progress callback are re-raised unchanged, so only
the call-boundary validation errors live here.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ArchiveRunnerError",
    "InvalidArgumentError",
    "InvalidOptionError",
]


class ArchiveRunnerError(Exception):
    """Base exception for archive-runner."""
    pass


class InvalidArgumentError(ArchiveRunnerError):
    """Malformed command or positional arguments, raised before spawning."""
    pass


class InvalidOptionError(ArchiveRunnerError):
    """An option value has a shape its switch does not support.

    Attributes:
        key: The offending switch name
        value: The rejected value
    """

    def __init__(self, key: Any, value: Any, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"invalid option {key!r}={value!r}: {reason}")
