import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, field_validator

from src.sitecraft.models.file_record import FileRecord, FileSet
from src.sitecraft.models.history import HistoryEntry, HistoryState
from src.sitecraft.models.transcript import MessageRole, TranscriptMessage

logger = logging.getLogger(__name__)

GREETING_MESSAGE = (
    "Welcome to SiteCraft.\n\n"
    "Describe the website you have in mind, whether it is an online store with "
    "modern animations, a personal blog or a company site, and it will be built for you."
)


def initial_history() -> HistoryState:
    """History of a brand new project: the empty file set at position 0."""
    return HistoryState(entries=[HistoryEntry(serialized_file_set=FileSet().serialize())], position=0)


class ProjectState(BaseModel):
    """Persisted document describing a project's committed state."""

    id: str = Field(default_factory=lambda: f"project_{uuid.uuid4().hex[:12]}")
    name: str = Field(..., description="Display name of the project")
    files: List[FileRecord] = Field(default_factory=list)
    transcript: List[TranscriptMessage] = Field(
        default_factory=lambda: [TranscriptMessage(role=MessageRole.MODEL, content=GREETING_MESSAGE)]
    )
    history: HistoryState = Field(default_factory=initial_history)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_active: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        """Ensure project names are non-empty."""
        if not value or not value.strip():
            logger.error("Attempted to create project with empty name.")
            raise ValueError("Project name must be a non-empty string.")
        return value


@dataclass
class LiveProject:
    """
    The mutable, in-memory view of a project that the UI renders.

    ``files`` and ``transcript`` mirror the last commit except while a
    generation is streaming. ``notices`` collects system messages (cancellation
    and failure notices) that are shown but never persisted.
    """

    project_id: str
    name: str
    files: FileSet = field(default_factory=FileSet)
    transcript: List[TranscriptMessage] = field(default_factory=list)
    notices: List[TranscriptMessage] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: ProjectState) -> "LiveProject":
        return cls(
            project_id=state.id,
            name=state.name,
            files=FileSet(state.files),
            transcript=[message.model_copy(deep=True) for message in state.transcript],
        )
