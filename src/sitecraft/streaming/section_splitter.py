"""Separate streamed prose from the fenced structured file block."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.sitecraft.config import FENCE_CLOSE, FENCE_OPEN


@dataclass(frozen=True)
class SplitSections:
    """Prose and structured-block text recovered from an accumulated buffer."""

    prose: str
    file_text: Optional[str] = None
    block_closed: bool = False

    @property
    def has_file_block(self) -> bool:
        return self.file_text is not None


class SectionSplitter:
    """
    Split a buffer on the first fence-open marker and the last fence-close marker.

    Text after the close marker is prose again: generators commonly finish
    with a short remark after the data block.
    """

    def __init__(self, open_marker: str = FENCE_OPEN, close_marker: str = FENCE_CLOSE) -> None:
        self.open_marker = open_marker
        self.close_marker = close_marker

    def split(self, buffer: str) -> SplitSections:
        open_at = buffer.find(self.open_marker)
        if open_at < 0:
            return SplitSections(prose=buffer)

        block_start = open_at + len(self.open_marker)
        close_at = buffer.rfind(self.close_marker, block_start)
        if close_at < 0:
            return SplitSections(prose=buffer[:open_at], file_text=buffer[block_start:])

        prose = buffer[:open_at] + buffer[close_at + len(self.close_marker):]
        return SplitSections(prose=prose, file_text=buffer[block_start:close_at], block_closed=True)
