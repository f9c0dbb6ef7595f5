"""Name-keyed merging of recovered file records into a file set."""

from __future__ import annotations

from typing import Dict, Iterable

from src.sitecraft.models.file_record import FileRecord, FileSet


class FileMerger:
    """
    Combine incoming records with an existing file set.

    A record whose name already exists replaces the old one in place; new
    names are appended. Names missing from ``incoming`` are always kept, so a
    generation that touches three files out of twenty leaves the other
    seventeen alone.
    """

    def merge(self, existing: FileSet, incoming: Iterable[FileRecord]) -> FileSet:
        records: Dict[str, FileRecord] = {record.name: record for record in existing}
        for record in incoming:
            records[record.name] = record
        return FileSet(records.values())
