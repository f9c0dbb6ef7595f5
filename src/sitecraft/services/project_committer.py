"""
Project Committer - the single writer of committed project state.

Every commit point goes through here: a finished generation, a manual file
edit, or an undo/redo. Each one updates the live view, moves the history and
persists through the ProjectStore. Rollbacks restore a snapshot of the live
view and touch neither history nor the store. A critique only appends to the
transcript and persists it; history is not pushed.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from src.sitecraft.models import event_types
from src.sitecraft.models.events import Event
from src.sitecraft.models.exceptions import GenerationInProgressError
from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.history import HistoryState
from src.sitecraft.models.project import LiveProject
from src.sitecraft.models.transcript import MessageRole, TranscriptMessage
from src.sitecraft.services.history_stack import HistoryStack
from src.sitecraft.services.project_store import ProjectStore

logger = logging.getLogger(__name__)

_EXTENSION_LANGUAGES = {
    "html": "html",
    "htm": "html",
    "css": "css",
    "js": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "json": "json",
    "md": "markdown",
    "svg": "xml",
}


def language_for_name(name: str) -> str:
    """Best guess of a language tag from a file name's extension."""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return _EXTENSION_LANGUAGES.get(extension, "plaintext")


@dataclass(frozen=True)
class ProjectSnapshot:
    """Pre-request copy of the live view, restored verbatim on rollback."""

    files: FileSet
    transcript: List[TranscriptMessage]


class ProjectCommitter:
    """Applies commits and rollbacks to a LiveProject."""

    def __init__(self, project: LiveProject, history: HistoryStack, store: ProjectStore, event_bus: Any) -> None:
        self.project = project
        self.history = history
        self.store = store
        self.event_bus = event_bus
        self.generation_active = False

    # ------------------- Generation lifecycle -------------------
    def snapshot(self) -> ProjectSnapshot:
        return ProjectSnapshot(
            files=self.project.files,
            transcript=[message.model_copy(deep=True) for message in self.project.transcript],
        )

    def begin_generation(self, prompt: str) -> ProjectSnapshot:
        """
        Take the rollback snapshot and append the user/placeholder message pair.

        Returns:
            The snapshot taken before the transcript was touched.
        """
        if self.generation_active:
            raise GenerationInProgressError(f"Project '{self.project.project_id}' already has an active generation.")
        snapshot = self.snapshot()
        self.generation_active = True
        self.project.transcript.append(TranscriptMessage(role=MessageRole.USER, content=prompt))
        self.project.transcript.append(TranscriptMessage(role=MessageRole.MODEL, content="", attached_files=[]))
        return snapshot

    def placeholder(self) -> TranscriptMessage:
        """The in-flight model message of the active generation."""
        return self.project.transcript[-1]

    def commit_generation(self, files: FileSet, message: TranscriptMessage) -> HistoryState:
        """Replace the placeholder with the final message, push history and persist."""
        transcript = list(self.project.transcript)
        if self.generation_active and transcript and transcript[-1].role == MessageRole.MODEL:
            transcript[-1] = message
        else:
            transcript.append(message)
        state = self._commit(files, transcript)
        self.generation_active = False

        logger.info(
            "Committed generation for project '%s': %d files, history position %d.",
            self.project.project_id,
            len(files),
            state.position,
        )
        self._dispatch(
            event_types.GENERATION_COMMITTED,
            {"file_names": files.names(), "history_position": state.position},
        )
        self._dispatch_history_changed()
        return state

    def rollback(self, snapshot: ProjectSnapshot, notice: TranscriptMessage, reason: str) -> None:
        """Restore the pre-request snapshot and record a display-only notice."""
        self.project.files = snapshot.files
        self.project.transcript = [message.model_copy(deep=True) for message in snapshot.transcript]
        self.add_notice(notice)
        self.generation_active = False
        logger.info("Rolled back generation for project '%s' (%s).", self.project.project_id, reason)
        self._dispatch(event_types.GENERATION_ROLLED_BACK, {"reason": reason, "message": notice.content})

    def add_notice(self, notice: TranscriptMessage) -> None:
        """Show a system notice; notices are never persisted."""
        self.project.notices.append(notice)

    # ------------------- Critiques -------------------
    def commit_critique(self, request: TranscriptMessage, response: TranscriptMessage) -> None:
        """
        Append a critique exchange to the transcript and persist it.

        Files and history are left as they are; the store receives the current
        history state so the persisted document stays consistent.
        """
        self._ensure_idle("record a critique")
        transcript = [*self.project.transcript, request, response]
        self.store.commit_project_state(self.project.project_id, self.project.files, transcript, self.history.state)
        self.project.transcript = transcript
        logger.info("Recorded critique for project '%s'.", self.project.project_id)
        self._dispatch(event_types.CRITIQUE_RECORDED, {"message": response.content})

    # ------------------- Direct edits -------------------
    def commit_manual_edit(self, name: str, content: str, language: Optional[str] = None) -> HistoryState:
        """Write one file by hand and commit the result."""
        self._ensure_idle("edit files")
        existing = self.project.files.get(name)
        if language is None:
            language = existing.language if existing else language_for_name(name)
        files = self.project.files.with_record(FileRecord(name=name, language=language, content=content))
        state = self._commit(files, self.project.transcript)
        logger.info("Committed manual edit of '%s' in project '%s'.", name, self.project.project_id)
        self._dispatch(event_types.PROJECT_FILE_EDITED, {"name": name})
        self._dispatch_history_changed()
        return state

    def undo(self) -> FileSet:
        self._ensure_idle("undo")
        return self._navigate(self.history.undo)

    def redo(self) -> FileSet:
        self._ensure_idle("redo")
        return self._navigate(self.history.redo)

    # ------------------- Internals -------------------
    def _commit(self, files: FileSet, transcript: List[TranscriptMessage]) -> HistoryState:
        """Push history and persist; the live view only changes once both succeeded."""
        previous = self.history.state
        state = self.history.commit(files)
        try:
            self.store.commit_project_state(self.project.project_id, files, transcript, state)
        except Exception:
            logger.error("Persisting project '%s' failed; history restored.", self.project.project_id, exc_info=True)
            self.history.restore(previous)
            raise
        self.project.files = files
        self.project.transcript = list(transcript)
        return state

    def _navigate(self, move: Callable[[], FileSet]) -> FileSet:
        previous = self.history.state
        files = move()
        try:
            self.store.commit_project_state(
                self.project.project_id, files, self.project.transcript, self.history.state
            )
        except Exception:
            logger.error("Persisting project '%s' failed; history restored.", self.project.project_id, exc_info=True)
            self.history.restore(previous)
            raise
        self.project.files = files
        self._dispatch_history_changed()
        return files

    def _ensure_idle(self, action: str) -> None:
        if self.generation_active:
            raise GenerationInProgressError(f"Cannot {action} while a generation is running.")

    def _dispatch_history_changed(self) -> None:
        self._dispatch(
            event_types.HISTORY_CHANGED,
            {
                "position": self.history.position,
                "can_undo": self.history.can_undo,
                "can_redo": self.history.can_redo,
            },
        )

    def _dispatch(self, event_type: str, payload: dict) -> None:
        try:
            self.event_bus.dispatch(Event(event_type=event_type, project_id=self.project.project_id, payload=payload))
        except Exception:  # pragma: no cover - a failing subscriber must not undo a commit
            logger.debug("Failed to dispatch '%s' event.", event_type, exc_info=True)
