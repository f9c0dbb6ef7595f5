from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from src.providers.base import GenerationProvider
from src.sitecraft.models.events import Event
from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.history import HistoryState
from src.sitecraft.models.project import LiveProject, ProjectState
from src.sitecraft.models.transcript import MessageRole, TranscriptMessage
from src.sitecraft.services.generation_service import GenerationService
from src.sitecraft.services.history_stack import HistoryStack
from src.sitecraft.services.project_committer import ProjectCommitter
from src.sitecraft.services.project_store import ProjectStore
from src.sitecraft.services.stream_controller import StreamController


class RecordingEventBus:
    """Synchronous in-memory event bus used by tests."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}
        self.dispatched: List[Event] = []

    def subscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        self._subscribers.setdefault(event_type, []).append(callback)

    def dispatch(self, event: Event) -> None:
        self.dispatched.append(event)
        for callback in self._subscribers.get(event.event_type, []):
            callback(event)

    def of_type(self, event_type: str) -> List[Event]:
        return [event for event in self.dispatched if event.event_type == event_type]


@dataclass
class StoreCall:
    project_id: str
    files: FileSet
    transcript: List[TranscriptMessage]
    history_state: HistoryState


class InMemoryProjectStore(ProjectStore):
    """Records every commit; can be told to fail the next one."""

    def __init__(self) -> None:
        self.calls: List[StoreCall] = []
        self.fail_with: Optional[Exception] = None

    def commit_project_state(self, project_id, files, transcript, history_state) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append(StoreCall(project_id, files, list(transcript), history_state))

    def load_project_state(self, project_id: str) -> ProjectState:
        if not self.calls:
            raise FileNotFoundError(project_id)
        last = self.calls[-1]
        return ProjectState(
            id=project_id,
            name=project_id,
            files=last.files.records(),
            transcript=last.transcript,
            history=last.history_state,
        )


class ScriptedProvider(GenerationProvider):
    """
    Provider that replays a fixed list of chunks.

    ``on_chunk`` is called with the index of each chunk right after it is
    handed out; ``fail_after`` raises ``error`` once that many chunks were sent.
    """

    def __init__(
        self,
        chunks: Iterable[str],
        on_chunk: Optional[Callable[[int], None]] = None,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.chunks = list(chunks)
        self.on_chunk = on_chunk
        self.fail_after = fail_after
        self.error = error or RuntimeError("provider exploded")
        self.prompts: List[str] = []
        self.system_instructions: List[str] = []
        self.configs: List[dict] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "Scripted"

    def get_available_models(self) -> List[str]:
        return ["scripted-model"]

    def stream_generation(self, model_name, system_instruction, prompt, config):
        self.prompts.append(prompt)
        self.system_instructions.append(system_instruction)
        self.configs.append(dict(config))
        try:
            for index, chunk in enumerate(self.chunks):
                if self.fail_after is not None and index >= self.fail_after:
                    raise self.error
                yield chunk
                if self.on_chunk is not None:
                    self.on_chunk(index)
            if self.fail_after is not None and self.fail_after >= len(self.chunks):
                raise self.error
        finally:
            self.closed = True


def file_block(files: List[Dict[str, str]]) -> str:
    """Render the fenced JSON block a generator would emit."""
    return "```json\n" + json.dumps({"files": files}) + "\n```"


@dataclass
class ControllerHarness:
    project: LiveProject
    history: HistoryStack
    store: InMemoryProjectStore
    event_bus: RecordingEventBus
    committer: ProjectCommitter
    controller: StreamController
    provider: ScriptedProvider


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def record_factory() -> Callable[..., FileRecord]:
    def _factory(name: str = "index.html", content: str = "<h1>Hi</h1>", language: Optional[str] = None) -> FileRecord:
        if language is None:
            language = {"css": "css", "js": "javascript"}.get(name.rsplit(".", 1)[-1], "html")
        return FileRecord(name=name, language=language, content=content)

    return _factory


@pytest.fixture
def harness_factory(event_bus: RecordingEventBus) -> Callable[..., ControllerHarness]:
    """Builds a controller wired to a scripted provider and an in-memory store."""

    def _factory(
        provider: ScriptedProvider,
        files: Optional[FileSet] = None,
        transcript: Optional[List[TranscriptMessage]] = None,
    ) -> ControllerHarness:
        project = LiveProject(
            project_id="demo-project",
            name="Demo",
            files=files or FileSet(),
            transcript=transcript
            if transcript is not None
            else [TranscriptMessage(role=MessageRole.MODEL, content="Welcome")],
        )
        history = HistoryStack()
        if files:
            history.commit(files)
        store = InMemoryProjectStore()
        committer = ProjectCommitter(project, history, store, event_bus)
        service = GenerationService(provider, generation_config={"model": "scripted-model"})
        controller = StreamController(committer, service, event_bus)
        return ControllerHarness(project, history, store, event_bus, committer, controller, provider)

    return _factory
