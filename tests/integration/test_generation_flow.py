"""End-to-end generation flows through the controller, committer and history."""

from __future__ import annotations

from pathlib import Path

from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.project import LiveProject
from src.sitecraft.services.generation_service import GenerationService
from src.sitecraft.services.history_stack import HistoryStack
from src.sitecraft.services.project_committer import ProjectCommitter
from src.sitecraft.services.project_store import JsonProjectStore
from src.sitecraft.services.stream_controller import OutcomeStatus, StreamController
from tests.conftest import RecordingEventBus, ScriptedProvider, file_block

END_TO_END_FRAGMENTS = [
    'Here are your files:\n```json\n{"files":[{"name":"index.html","language":"html","content":"<h1>Hi',
    '</h1>"}]}\n```\nDone.',
]


def test_end_to_end_stream_commits_index_html(harness_factory, event_bus) -> None:
    harness = harness_factory(ScriptedProvider(END_TO_END_FRAGMENTS))
    projections = []
    event_bus.subscribe(
        "STREAM_PROJECTION_UPDATED",
        lambda event: projections.append((event.payload["prose"], harness.project.files.get("index.html"))),
    )

    outcome = harness.controller.submit("Say hi")

    assert projections[0][0] == "Here are your files:\n"
    assert projections[0][1].content == "<h1>Hi"
    assert "Done." in projections[1][0]
    assert projections[1][1].content == "<h1>Hi</h1>"

    assert outcome.status == OutcomeStatus.COMMITTED
    assert harness.project.files.names() == ["index.html"]
    assert harness.project.files.get("index.html").content == "<h1>Hi</h1>"
    assert harness.project.transcript[-1].content == "Here are your files:\n\nDone."
    assert harness.history.position == 1


def test_generation_undo_then_new_generation_discards_redo(harness_factory) -> None:
    first = file_block([{"name": "index.html", "language": "html", "content": "B"}])
    harness = harness_factory(ScriptedProvider([first]))
    harness.controller.submit("B")

    harness.provider.chunks = [file_block([{"name": "index.html", "language": "html", "content": "C"}])]
    harness.controller.submit("C")
    assert harness.history.position == 2

    harness.committer.undo()
    assert harness.committer.undo() == FileSet()
    assert harness.history.position == 0

    harness.provider.chunks = [file_block([{"name": "style.css", "language": "css", "content": "D"}])]
    harness.controller.submit("D")

    state = harness.history.state
    assert state.position == 1
    assert [FileSet.deserialize(entry.serialized_file_set).names() for entry in state.entries] == [[], ["style.css"]]
    assert not harness.history.can_redo


def test_generation_persists_through_json_store(tmp_path: Path) -> None:
    store = JsonProjectStore(storage_dir=tmp_path)
    state = store.create_project("Portfolio")
    project = LiveProject.from_state(state)
    project.files = FileSet([FileRecord(name="keep.js", language="javascript", content="keep();")])
    history = HistoryStack(state.history)
    committer = ProjectCommitter(project, history, store, RecordingEventBus())
    provider = ScriptedProvider(
        [
            "### Plan\nAdd a page.\n",
            file_block([{"name": "about.html", "language": "html", "content": "<h1>About</h1>"}]),
            "\n### Summary\nAdded an about page.",
        ]
    )
    controller = StreamController(committer, GenerationService(provider), committer.event_bus)

    outcome = controller.submit("Add an about page")

    assert outcome.committed
    loaded = store.load_project_state(state.id)
    assert [record.name for record in loaded.files] == ["keep.js", "about.html"]
    assert loaded.transcript[-1].content == "Added an about page."
    assert loaded.history.position == 1
    assert loaded.name == "Portfolio"
