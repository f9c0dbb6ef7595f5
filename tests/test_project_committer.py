"""Tests for ProjectCommitter - commits, rollbacks and manual edits."""

from __future__ import annotations

import pytest

from src.sitecraft.models import event_types
from src.sitecraft.models.exceptions import GenerationInProgressError, HistoryNavigationError
from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.project import LiveProject
from src.sitecraft.models.transcript import MessageRole, TranscriptMessage
from src.sitecraft.services.history_stack import HistoryStack
from src.sitecraft.services.project_committer import ProjectCommitter, language_for_name
from tests.conftest import InMemoryProjectStore, RecordingEventBus


@pytest.fixture
def committer() -> ProjectCommitter:
    project = LiveProject(
        project_id="demo-project",
        name="Demo",
        transcript=[TranscriptMessage(role=MessageRole.MODEL, content="Welcome")],
    )
    return ProjectCommitter(project, HistoryStack(), InMemoryProjectStore(), RecordingEventBus())


def _files(*names: str) -> FileSet:
    return FileSet(FileRecord(name=name, language="html", content=name) for name in names)


def test_begin_generation_appends_user_and_placeholder(committer: ProjectCommitter) -> None:
    snapshot = committer.begin_generation("Build a blog")

    assert [message.role for message in committer.project.transcript] == [
        MessageRole.MODEL,
        MessageRole.USER,
        MessageRole.MODEL,
    ]
    assert committer.placeholder().content == ""
    assert committer.placeholder().attached_files == []
    assert len(snapshot.transcript) == 1
    assert committer.generation_active

    with pytest.raises(GenerationInProgressError):
        committer.begin_generation("Again")


def test_commit_generation_replaces_placeholder(committer: ProjectCommitter) -> None:
    committer.begin_generation("Build a blog")
    final = TranscriptMessage(role=MessageRole.MODEL, content="Built.", suggestions=["Add posts"])

    state = committer.commit_generation(_files("index.html"), final)

    assert state.position == 1
    assert committer.project.transcript[-1] is final
    assert len(committer.project.transcript) == 3
    assert committer.project.files.names() == ["index.html"]
    assert not committer.generation_active
    assert len(committer.store.calls) == 1
    events = [event.event_type for event in committer.event_bus.dispatched]
    assert events == [event_types.GENERATION_COMMITTED, event_types.HISTORY_CHANGED]
    assert committer.event_bus.dispatched[0].payload == {"file_names": ["index.html"], "history_position": 1}


def test_rollback_restores_snapshot_and_records_notice(committer: ProjectCommitter) -> None:
    snapshot = committer.begin_generation("Build a blog")
    committer.placeholder().content = "partial"
    committer.project.files = _files("half.html")
    notice = TranscriptMessage(role=MessageRole.SYSTEM, content="Generation cancelled.")

    committer.rollback(snapshot, notice, "cancelled")

    assert committer.project.files == FileSet()
    assert committer.project.transcript == snapshot.transcript
    assert committer.project.notices == [notice]
    assert committer.store.calls == []
    assert committer.history.position == 0
    assert not committer.generation_active
    event = committer.event_bus.dispatched[-1]
    assert event.event_type == event_types.GENERATION_ROLLED_BACK
    assert event.payload == {"reason": "cancelled", "message": "Generation cancelled."}


def test_manual_edit_commits_and_keeps_language(committer: ProjectCommitter) -> None:
    committer.commit_manual_edit("style.css", "body {}")
    committer.commit_manual_edit("style.css", "body { margin: 0; }")

    record = committer.project.files.get("style.css")
    assert record.language == "css"
    assert record.content == "body { margin: 0; }"
    assert committer.history.position == 2
    assert len(committer.store.calls) == 2
    assert committer.event_bus.dispatched[-2].event_type == event_types.PROJECT_FILE_EDITED


def test_manual_edit_is_rejected_during_generation(committer: ProjectCommitter) -> None:
    committer.begin_generation("Build a blog")

    with pytest.raises(GenerationInProgressError):
        committer.commit_manual_edit("index.html", "<p>")
    with pytest.raises(GenerationInProgressError):
        committer.undo()


def test_undo_and_redo_update_live_files_and_persist(committer: ProjectCommitter) -> None:
    committer.commit_manual_edit("index.html", "v1")
    committer.commit_manual_edit("index.html", "v2")

    assert committer.undo().get("index.html").content == "v1"
    assert committer.project.files.get("index.html").content == "v1"
    assert committer.redo().get("index.html").content == "v2"
    assert len(committer.store.calls) == 4
    assert committer.store.calls[-1].history_state.position == 2

    history_event = committer.event_bus.dispatched[-1]
    assert history_event.event_type == event_types.HISTORY_CHANGED
    assert history_event.payload == {"position": 2, "can_undo": True, "can_redo": False}


def test_undo_at_start_raises(committer: ProjectCommitter) -> None:
    with pytest.raises(HistoryNavigationError):
        committer.undo()
    assert committer.store.calls == []


def test_failed_persist_leaves_history_and_live_view_untouched(committer: ProjectCommitter) -> None:
    committer.store.fail_with = OSError("read-only")

    with pytest.raises(OSError):
        committer.commit_manual_edit("index.html", "<p>")

    assert committer.history.position == 0
    assert len(committer.history.state.entries) == 1
    assert committer.project.files == FileSet()


@pytest.mark.parametrize(
    "name, language",
    [("index.html", "html"), ("app.JS", "javascript"), ("data.json", "json"), ("README", "plaintext")],
)
def test_language_for_name(name: str, language: str) -> None:
    assert language_for_name(name) == language


def test_commit_critique_persists_transcript_without_history_push(committer: ProjectCommitter) -> None:
    committer.commit_manual_edit("index.html", "<h1>Hi</h1>")
    history_before = committer.history.state
    request = TranscriptMessage(role=MessageRole.USER, content="[Requested Design & Accessibility Critique]")
    response = TranscriptMessage(role=MessageRole.MODEL, content="Add alt text to images.")

    committer.commit_critique(request, response)

    assert committer.project.transcript[-2:] == [request, response]
    assert committer.history.state == history_before
    last_call = committer.store.calls[-1]
    assert last_call.transcript[-2:] == [request, response]
    assert last_call.history_state == history_before
    assert last_call.files == committer.project.files
    recorded = committer.event_bus.of_type(event_types.CRITIQUE_RECORDED)
    assert recorded[0].payload == {"message": "Add alt text to images."}


def test_commit_critique_leaves_transcript_when_persist_fails(committer: ProjectCommitter) -> None:
    committer.store.fail_with = OSError("disk full")
    transcript_before = list(committer.project.transcript)

    with pytest.raises(OSError):
        committer.commit_critique(
            TranscriptMessage(role=MessageRole.USER, content="review"),
            TranscriptMessage(role=MessageRole.MODEL, content="ok"),
        )

    assert committer.project.transcript == transcript_before
