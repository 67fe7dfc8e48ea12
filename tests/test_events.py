"""Event model and Outcome tests."""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError

from archive_runner.runtime.events import (
    DoneEvent,
    ErrorEvent,
    EventKind,
    Outcome,
    ProgressEvent,
    StreamSource,
)


class TestEvents:
    """Pydantic event models."""

    def test_kinds(self):
        assert ProgressEvent(text="x").kind is EventKind.PROGRESS
        assert ErrorEvent(source=StreamSource.STDERR, message="m").kind is EventKind.ERROR
        assert DoneEvent(code=0).kind is EventKind.DONE

    def test_frozen(self):
        event = ProgressEvent(text="x")
        with pytest.raises(ValidationError):
            event.text = "y"  # type: ignore[misc]

    def test_source_from_string(self):
        assert ErrorEvent(source="stdout", message="m").source is StreamSource.STDOUT

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            ProgressEvent(text="x", unexpected=1)

    def test_dump(self):
        data = DoneEvent(code=2, errors=["e"], cancelled=True).model_dump(mode="json")
        assert data["kind"] == "done"
        assert data["code"] == 2
        assert data["errors"] == ["e"]
        assert data["cancelled"] is True

    def test_done_to_outcome(self):
        done = DoneEvent(code=1, errors=["a"])
        outcome = done.to_outcome()
        assert outcome == Outcome(code=1, errors=["a"], cancelled=False)
        outcome.errors.append("b")
        assert done.errors == ["a"]


class TestOutcome:
    """Outcome dataclass."""

    def test_ok(self):
        assert Outcome(code=0).ok
        assert not Outcome(code=0, errors=["warn"]).ok
        assert not Outcome(code=2).ok

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Outcome(code=0).code = 1  # type: ignore[misc]
