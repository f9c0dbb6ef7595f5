"""
Streaming reconstruction for SiteCraft.

Pure projection helpers that turn a growing response buffer into prose and a
best-effort file set, plus the strict parser for the complete response.
"""

from .file_block_parser import FileBlockParser
from .file_merger import FileMerger
from .reconstructor import ReconstructorState, StreamProjection, StreamReconstructor
from .response_parser import ResponseParser
from .section_splitter import SectionSplitter, SplitSections
from .terminator import EscapeAwareTerminator, TerminatedString

__all__ = [
    "EscapeAwareTerminator",
    "FileBlockParser",
    "FileMerger",
    "ReconstructorState",
    "ResponseParser",
    "SectionSplitter",
    "SplitSections",
    "StreamProjection",
    "StreamReconstructor",
    "TerminatedString",
]
