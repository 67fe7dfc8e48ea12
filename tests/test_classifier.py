"""ErrorClassifier tests."""

from __future__ import annotations

import pytest

from archive_runner.runtime.classifier import ErrorClassifier


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


class TestScanStdout:
    """Marker detection in stdout chunks."""

    def test_same_line(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Error: disk full\n") == ["disk full"]

    def test_next_line(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Error:\nUnsupported method\n") == ["Unsupported method"]

    def test_crlf(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Error:\r\nCRC Failed\r\n") == ["CRC Failed"]

    def test_multiple_in_order(self, classifier: ErrorClassifier):
        text = "Extracting a\nError: one\nExtracting b\nError:\ntwo\n"
        assert classifier.scan_stdout(text) == ["one", "two"]

    def test_marker_must_start_line(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Header Error: ignored\n") == []

    def test_empty_message_ignored(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Error:") == []

    def test_no_errors(self, classifier: ErrorClassifier):
        assert classifier.scan_stdout("Everything is Ok\n") == []

    def test_marker_split_across_chunks_is_missed(self, classifier: ErrorClassifier):
        # Known limitation: matching is per chunk
        assert classifier.scan_stdout("Err") == []
        assert classifier.scan_stdout("or: lost\n") == []


class TestScanStderr:
    """Stderr content is taken verbatim."""

    def test_verbatim(self, classifier: ErrorClassifier):
        assert classifier.scan_stderr("boom\n") == ["boom\n"]

    def test_empty(self, classifier: ErrorClassifier):
        assert classifier.scan_stderr("") == []


def test_instances_are_independent():
    first = ErrorClassifier()
    second = ErrorClassifier(r"^WARNING: (.*)$")
    assert first.scan_stdout("WARNING: x\nError: y\n") == ["y"]
    assert second.scan_stdout("WARNING: x\nError: y\n") == ["x"]
