from typing import List

from pydantic import BaseModel, Field, model_validator


class HistoryEntry(BaseModel):
    """A committed file set snapshot, stored in its serialized JSON form."""
    serialized_file_set: str


class HistoryState(BaseModel):
    """
    Linear undo/redo history.

    Attributes:
        entries: Snapshots in commit order; entries after ``position`` form the redo branch.
        position: Index of the snapshot the project currently shows.
    """
    entries: List[HistoryEntry] = Field(default_factory=list)
    position: int = 0

    @model_validator(mode="after")
    def _check_position(self) -> "HistoryState":
        if self.entries and not 0 <= self.position < len(self.entries):
            raise ValueError(
                f"History position {self.position} out of range for {len(self.entries)} entries."
            )
        return self
