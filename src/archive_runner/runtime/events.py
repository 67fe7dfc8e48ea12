"""Invocation event models and the settled outcome.

An invocation's event channel yields, in order of arrival:
- ProgressEvent for every decoded stdout chunk
- ErrorEvent for every error detected in stdout or stderr
- exactly one DoneEvent once the process has exited and both pipes drained
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "EventKind",
    "StreamSource",
    "ProgressEvent",
    "ErrorEvent",
    "DoneEvent",
    "RunEvent",
    "Outcome",
]


class EventKind(str, Enum):
    """Event categories."""

    PROGRESS = "progress"
    ERROR = "error"
    DONE = "done"


class StreamSource(str, Enum):
    """Which pipe a chunk came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


class RunEventBase(BaseModel):
    """Base for all invocation events.

    Attributes:
        timestamp: Unix time the event was produced
        kind: Event category
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: float = Field(default_factory=time.time)
    kind: EventKind


class ProgressEvent(RunEventBase):
    """A decoded stdout chunk, forwarded verbatim."""

    kind: Literal[EventKind.PROGRESS] = EventKind.PROGRESS
    text: str


class ErrorEvent(RunEventBase):
    """An error message appended to the accumulator."""

    kind: Literal[EventKind.ERROR] = EventKind.ERROR
    source: StreamSource
    message: str


class DoneEvent(RunEventBase):
    """Terminal event carrying the settled outcome fields."""

    kind: Literal[EventKind.DONE] = EventKind.DONE
    code: int
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False

    def to_outcome(self) -> "Outcome":
        return Outcome(code=self.code, errors=list(self.errors), cancelled=self.cancelled)


RunEvent = Union[ProgressEvent, ErrorEvent, DoneEvent]


@dataclass(frozen=True)
class Outcome:
    """Settled result of one invocation.

    ``errors`` may be non-empty with a zero exit code, and a non-zero code
    may come without errors; callers inspect both.

    Attributes:
        code: Process exit status (negative signal number when killed on POSIX)
        errors: Detected error strings in detection order
        cancelled: Whether the cancellation thunk was invoked
    """

    code: int
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """True when the archiver exited 0 and reported nothing."""
        return self.code == 0 and not self.errors
