"""Runtime module for subprocess management and output classification.

This module provides isolated process execution with concurrent pipe
draining, reliable termination, per-invocation error classification and
the event models an invocation produces.
"""

from __future__ import annotations

from .cancel import CancelToken
from .classifier import ErrorClassifier
from .events import DoneEvent, ErrorEvent, Outcome, ProgressEvent, RunEvent, StreamSource
from .process_runner import ProcessRunner, ProcessSpec, StreamChunk

__all__ = [
    "CancelToken",
    "DoneEvent",
    "ErrorClassifier",
    "ErrorEvent",
    "Outcome",
    "ProcessRunner",
    "ProcessSpec",
    "ProgressEvent",
    "RunEvent",
    "StreamChunk",
    "StreamSource",
]
