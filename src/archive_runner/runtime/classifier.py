"""Error classification for archiver output.

7-Zip reports recoverable and fatal problems alike as plain text on stdout,
in the form::

    Error:
    cannot open file

or on a single line (``Error: disk full``). Anything written to stderr is
treated as an error verbatim.

An ErrorClassifier is created per invocation and owns its compiled pattern.
Classification returns values; it never raises and never decides what to do
with the process.
"""

from __future__ import annotations

import re

__all__ = ["ErrorClassifier", "ERROR_MARKER_PATTERN"]

# Marker at line start, optional line ending, then the message up to end of line
ERROR_MARKER_PATTERN = r"^Error:(?:\r?\n)?[ \t]*(.*)$"


class ErrorClassifier:
    """Extracts error messages from decoded stdout/stderr chunks.

    Matching is per delivered chunk: a marker split across two reads is
    not recognized.
    """

    def __init__(self, pattern: str = ERROR_MARKER_PATTERN) -> None:
        self._pattern = re.compile(pattern, re.MULTILINE)

    def scan_stdout(self, text: str) -> list[str]:
        """Return every marked error message in the chunk, in order."""
        messages: list[str] = []
        for match in self._pattern.finditer(text):
            message = match.group(1).rstrip("\r")
            if message:
                messages.append(message)
        return messages

    def scan_stderr(self, text: str) -> list[str]:
        """Return the chunk itself when it carries any content."""
        return [text] if text else []
