"""Tests for the data models - FileSet semantics and pydantic documents."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.sitecraft.models.events import Event
from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.project import ProjectState
from src.sitecraft.models.transcript import ResponseMessage


def test_file_set_later_duplicate_wins_but_keeps_first_position() -> None:
    files = FileSet(
        [
            FileRecord(name="a.css", language="css", content="1"),
            FileRecord(name="b.js", language="javascript", content="2"),
            FileRecord(name="a.css", language="css", content="3"),
        ]
    )

    assert files.names() == ["a.css", "b.js"]
    assert files.get("a.css").content == "3"


def test_file_set_with_record_returns_new_set() -> None:
    files = FileSet([FileRecord(name="a.css", language="css", content="1")])

    updated = files.with_record(FileRecord(name="b.js", language="javascript", content="2"))

    assert files.names() == ["a.css"]
    assert updated.names() == ["a.css", "b.js"]
    assert "b.js" in updated
    assert len(updated) == 2


def test_file_set_serialization_keeps_order_and_unicode() -> None:
    files = FileSet(
        [
            FileRecord(name="z.html", language="html", content="<p>أهلا</p>"),
            FileRecord(name="a.css", language="css", content="p {}"),
        ]
    )

    payload = files.serialize()

    assert "أهلا" in payload
    assert FileSet.deserialize(payload) == files


def test_file_set_equality_is_order_sensitive() -> None:
    a = FileRecord(name="a.css", language="css", content="")
    b = FileRecord(name="b.css", language="css", content="")

    assert FileSet([a, b]) != FileSet([b, a])
    assert FileSet([a, b]) == FileSet([a, b])


def test_file_record_is_immutable() -> None:
    record = FileRecord(name="a.css", language="css", content="x")

    with pytest.raises(ValidationError):
        record.content = "y"


def test_project_state_requires_a_name() -> None:
    with pytest.raises(ValidationError):
        ProjectState(name="   ")

    project = ProjectState(name="Shop")
    assert project.id.startswith("project_")
    assert len(project.history.entries) == 1


def test_response_message_transcript_content_priority() -> None:
    assert ResponseMessage(answer=" A ", summary="S").to_transcript_content("F") == "A"
    assert ResponseMessage(summary="S").to_transcript_content("F") == "S"
    assert ResponseMessage().to_transcript_content(" F ") == "F"
    assert ResponseMessage().to_transcript_content() == ""


def test_event_defaults() -> None:
    event = Event(event_type="HISTORY_CHANGED")

    assert event.project_id is None
    assert event.payload == {}
