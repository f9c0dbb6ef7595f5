"""
Linear undo/redo history of committed file sets.

Each entry stores a full serialized snapshot. Undo and redo only move the
position; the redo branch is discarded solely by a new commit.
"""

import logging
from typing import Optional

from src.sitecraft.models.exceptions import HistoryNavigationError
from src.sitecraft.models.file_record import FileSet
from src.sitecraft.models.history import HistoryEntry, HistoryState
from src.sitecraft.models.project import initial_history

logger = logging.getLogger(__name__)


class HistoryStack:
    """Owns a HistoryState and applies commit/undo/redo to it."""

    def __init__(self, state: Optional[HistoryState] = None) -> None:
        self._state = state.model_copy(deep=True) if state and state.entries else initial_history()

    @property
    def state(self) -> HistoryState:
        """A detached copy of the current history."""
        return self._state.model_copy(deep=True)

    @property
    def position(self) -> int:
        return self._state.position

    @property
    def can_undo(self) -> bool:
        return self._state.position > 0

    @property
    def can_redo(self) -> bool:
        return self._state.position < len(self._state.entries) - 1

    def current(self) -> FileSet:
        return FileSet.deserialize(self._state.entries[self._state.position].serialized_file_set)

    def commit(self, files: FileSet) -> HistoryState:
        entries = self._state.entries[: self._state.position + 1]
        discarded = len(self._state.entries) - len(entries)
        entries.append(HistoryEntry(serialized_file_set=files.serialize()))
        self._state = HistoryState(entries=entries, position=len(entries) - 1)
        if discarded:
            logger.debug("Commit discarded %d redo entries.", discarded)
        logger.info("History committed; position %d of %d.", self._state.position, len(entries))
        return self.state

    def restore(self, state: HistoryState) -> None:
        """Reinstate a state previously read from ``state``."""
        self._state = state.model_copy(deep=True)

    def undo(self) -> FileSet:
        if not self.can_undo:
            raise HistoryNavigationError("Nothing to undo.")
        self._state.position -= 1
        logger.info("Undo to history position %d.", self._state.position)
        return self.current()

    def redo(self) -> FileSet:
        if not self.can_redo:
            raise HistoryNavigationError("Nothing to redo.")
        self._state.position += 1
        logger.info("Redo to history position %d.", self._state.position)
        return self.current()
