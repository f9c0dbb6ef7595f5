import json
from typing import Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """A single named source file of a project."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique key of the file within a project")
    language: str = Field(..., description="Free-form language tag (html, css, javascript...)")
    content: str = Field(default="", description="Raw file text")


class FileSet:
    """
    Ordered mapping from file name to FileRecord.

    Insertion order is preserved; replacing a record keeps the position of the
    name it replaces. Instances are treated as values: every operation that
    changes membership returns a new FileSet.
    """

    def __init__(self, records: Optional[Iterable[FileRecord]] = None) -> None:
        self._records: Dict[str, FileRecord] = {}
        for record in records or ():
            # Later duplicates win but keep the first position.
            self._records[record.name] = record

    @classmethod
    def from_dicts(cls, items: Iterable[dict]) -> "FileSet":
        return cls(FileRecord(**item) for item in items)

    def with_record(self, record: FileRecord) -> "FileSet":
        updated = FileSet()
        updated._records = dict(self._records)
        updated._records[record.name] = record
        return updated

    def get(self, name: str) -> Optional[FileRecord]:
        return self._records.get(name)

    def names(self) -> List[str]:
        return list(self._records)

    def records(self) -> List[FileRecord]:
        return list(self._records.values())

    def to_dicts(self) -> List[dict]:
        return [record.model_dump() for record in self._records.values()]

    def serialize(self) -> str:
        """Serialize to the JSON array format stored in history entries."""
        return json.dumps(self.to_dicts(), ensure_ascii=False)

    @classmethod
    def deserialize(cls, payload: str) -> "FileSet":
        return cls.from_dicts(json.loads(payload))

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSet):
            return NotImplemented
        return list(self._records.items()) == list(other._records.items())

    def __repr__(self) -> str:
        return f"FileSet({self.names()!r})"
