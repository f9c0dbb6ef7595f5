"""Best-effort recovery of file records from an incomplete JSON file block."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from src.sitecraft.models.file_record import FileRecord

from .terminator import EscapeAwareTerminator


logger = logging.getLogger(__name__)


class FileBlockParser:
    """
    Turn the text that follows the fence-open marker into file records.

    The text is split into object segments at every structural comma followed
    by ``{``; each segment is then scanned for its ``name``, ``language`` and
    ``content`` fields. Nothing here requires a closing brace to exist, so a
    truncated last segment simply yields no record until more text arrives.
    The parser never raises.
    """

    REQUIRED_FIELDS = ("name", "language", "content")
    _WHITESPACE = " \t\r\n"

    def __init__(self, terminator: Optional[EscapeAwareTerminator] = None) -> None:
        self.terminator = terminator or EscapeAwareTerminator()

    def parse(self, text: str) -> List[FileRecord]:
        """Return every complete-enough record in ``text``, in order."""
        records: List[FileRecord] = []
        segments = self.split_segments(text or "")
        for segment in segments:
            fields = self.extract_fields(segment)
            if all(key in fields for key in self.REQUIRED_FIELDS):
                records.append(FileRecord(**fields))
        logger.debug("Recovered %d file records from %d segments.", len(records), len(segments))
        return records

    def split_segments(self, text: str) -> List[str]:
        """Split on commas that open a new object, ignoring commas inside strings."""
        segments: List[str] = []
        start = 0
        in_string = False
        escaped = False
        for index, char in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "," and self._next_char(text, index + 1) == "{":
                segments.append(text[start:index])
                start = index + 1
        segments.append(text[start:])
        return segments

    def extract_fields(self, segment: str) -> Dict[str, str]:
        """
        Scan one segment for its string fields.

        A string followed by ``:`` is a key; the next string after it is that
        key's value. ``content`` is bounded by the terminator, because it is the
        field most likely to be cut mid-token. Scanning stops at the first
        unterminated string.
        """
        fields: Dict[str, str] = {}
        pending_key: Optional[str] = None
        index = 0
        length = len(segment)
        while index < length:
            char = segment[index]
            if char in "{[,":
                pending_key = None
                index += 1
                continue
            if char != '"':
                index += 1
                continue

            if pending_key == "content":
                terminated = self.terminator.extract(segment[index + 1:])
                fields.setdefault("content", terminated.value)
                if not terminated.is_complete:
                    break
                index += terminated.closing_index + 2
                pending_key = None
                continue

            end = self._string_end(segment, index + 1)
            if end is None:
                break
            token = segment[index + 1:end]
            after = self._skip_whitespace(segment, end + 1)
            if pending_key is None and after < length and segment[after] == ":":
                pending_key = token
                index = after + 1
                continue
            if pending_key in ("name", "language"):
                fields.setdefault(pending_key, self.terminator.unescape(token))
            pending_key = None
            index = end + 1
        return fields

    @staticmethod
    def _string_end(text: str, start: int) -> Optional[int]:
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                return index
        return None

    def _skip_whitespace(self, text: str, start: int) -> int:
        index = start
        while index < len(text) and text[index] in self._WHITESPACE:
            index += 1
        return index

    def _next_char(self, text: str, start: int) -> str:
        index = self._skip_whitespace(text, start)
        return text[index] if index < len(text) else ""
