"""Incremental best-effort reconstruction of a streamed generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from src.sitecraft.models.exceptions import InvalidStreamStateError
from src.sitecraft.models.file_record import FileSet

from .file_block_parser import FileBlockParser
from .file_merger import FileMerger
from .section_splitter import SectionSplitter


logger = logging.getLogger(__name__)


class ReconstructorState(str, Enum):
    """Lifecycle of a single reconstruction"""
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class StreamBufferState:
    """Owned buffer of one generation; discarded when the generation ends."""

    raw_text: str = ""
    last_known_files: FileSet = field(default_factory=FileSet)
    prose_text: str = ""


@dataclass(frozen=True)
class StreamProjection:
    """The tentative view published after each fragment."""

    prose: str
    files: FileSet
    has_file_block: bool
    fragment_count: int


class StreamReconstructor:
    """
    Accumulate fragments and re-derive the (prose, files) projection from scratch.

    Every fragment re-parses the whole buffer and merges the result into the
    committed base file set captured at construction time, never into the
    previous best-effort set, so heuristic errors cannot compound across
    fragments.
    """

    _TERMINAL_STATES = (ReconstructorState.COMPLETED, ReconstructorState.CANCELLED, ReconstructorState.FAILED)

    def __init__(
        self,
        base_files: FileSet,
        splitter: Optional[SectionSplitter] = None,
        parser: Optional[FileBlockParser] = None,
        merger: Optional[FileMerger] = None,
    ) -> None:
        self.base_files = base_files
        self.splitter = splitter or SectionSplitter()
        self.parser = parser or FileBlockParser()
        self.merger = merger or FileMerger()
        self.state = ReconstructorState.IDLE
        self.buffer = StreamBufferState(last_known_files=base_files)
        self.fragment_count = 0

    def feed(self, fragment: str) -> StreamProjection:
        """Append one fragment and return the refreshed projection."""
        if self.state in self._TERMINAL_STATES:
            raise InvalidStreamStateError(f"Cannot feed a reconstruction in state '{self.state.value}'.")
        self.state = ReconstructorState.STREAMING
        self.fragment_count += 1
        self.buffer.raw_text += fragment or ""

        sections = self.splitter.split(self.buffer.raw_text)
        self.buffer.prose_text = sections.prose
        if sections.has_file_block:
            records = self.parser.parse(sections.file_text)
            self.buffer.last_known_files = self.merger.merge(self.base_files, records)

        logger.debug(
            "Fragment %d processed: %d chars buffered, file block %s, %d files.",
            self.fragment_count,
            len(self.buffer.raw_text),
            "closed" if sections.block_closed else ("open" if sections.has_file_block else "absent"),
            len(self.buffer.last_known_files),
        )
        return self.projection(has_file_block=sections.has_file_block)

    def projection(self, has_file_block: Optional[bool] = None) -> StreamProjection:
        if has_file_block is None:
            has_file_block = self.splitter.split(self.buffer.raw_text).has_file_block
        return StreamProjection(
            prose=self.buffer.prose_text,
            files=self.buffer.last_known_files,
            has_file_block=has_file_block,
            fragment_count=self.fragment_count,
        )

    def complete(self) -> None:
        self._finish(ReconstructorState.COMPLETED)

    def cancel(self) -> None:
        self._finish(ReconstructorState.CANCELLED)

    def fail(self) -> None:
        self._finish(ReconstructorState.FAILED)

    @property
    def is_finished(self) -> bool:
        return self.state in self._TERMINAL_STATES

    def _finish(self, state: ReconstructorState) -> None:
        if self.is_finished:
            logger.debug("Reconstruction already finished as '%s'; ignoring '%s'.", self.state.value, state.value)
            return
        logger.debug("Reconstruction finished as '%s' after %d fragments.", state.value, self.fragment_count)
        self.state = state
