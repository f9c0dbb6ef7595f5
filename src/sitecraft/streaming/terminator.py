"""Locate the real end of a possibly truncated JSON string literal."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminatedString:
    """Unescaped string content plus where its closing quote was found."""

    value: str
    closing_index: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return self.closing_index is not None


class EscapeAwareTerminator:
    """
    Find the closing quote of a string literal whose text may stop mid-token.

    The input starts right after the opening quote. A quote only closes the
    literal when it is not escaped and the next non-whitespace character is
    ``}`` or the text ends there. When no quote qualifies, trailing record
    punctuation (``"}``, ``"}]}`` ...) is stripped instead.
    """

    _TRAILING_NOISE_PATTERN = re.compile(r'"\s*\}\s*\]?\s*\}?\s*$')
    _UNESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", '"': '"', "\\": "\\", "/": "/"}
    _UNICODE_ESCAPE = re.compile(r"[0-9a-fA-F]{4}")
    _WHITESPACE = " \t\r\n"

    def find_closing_quote(self, fragment: str) -> Optional[int]:
        """Return the index of the closing quote, or None if the fragment is truncated."""
        escaped = False
        for index, char in enumerate(fragment):
            if escaped:
                escaped = False
                continue
            if char == "\\":
                escaped = True
            elif char == '"' and self._closes_record(fragment, index + 1):
                return index
        return None

    def strip_trailing_noise(self, fragment: str) -> str:
        """Fallback used when no closing quote qualifies."""
        return self._TRAILING_NOISE_PATTERN.sub("", fragment)

    def unescape(self, raw: str) -> str:
        """
        Decode JSON string escapes: ``\\n \\t \\r \\b \\f \\" \\\\ \\/`` and ``\\uXXXX``.

        Unknown escape sequences are kept verbatim. An escape cut off by a chunk
        boundary (a lone trailing backslash, or ``\\u`` with fewer than four hex
        digits left) is dropped until the next fragment completes it.
        """
        parts = []
        index = 0
        length = len(raw)
        while index < length:
            char = raw[index]
            if char != "\\":
                parts.append(char)
                index += 1
                continue
            if index + 1 >= length:
                break
            follower = raw[index + 1]
            if follower == "u":
                digits = raw[index + 2:index + 6]
                if self._UNICODE_ESCAPE.fullmatch(digits):
                    parts.append(chr(int(digits, 16)))
                    index += 6
                    continue
                if len(digits) < 4 and all(c in "0123456789abcdefABCDEF" for c in digits):
                    break
            parts.append(self._UNESCAPES.get(follower, char + follower))
            index += 2
        return self._join_surrogates("".join(parts))

    @staticmethod
    def _join_surrogates(text: str) -> str:
        """Combine ``\\ud83d\\ude00`` style pairs into the code point they encode."""
        if not any("\ud800" <= char <= "\udfff" for char in text):
            return text
        if "\ud800" <= text[-1] <= "\udbff":
            # Low half of the pair has not arrived yet.
            text = text[:-1]
        return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")

    def extract(self, fragment: str) -> TerminatedString:
        """Bound and unescape the string literal at the start of ``fragment``."""
        closing_index = self.find_closing_quote(fragment)
        if closing_index is not None:
            return TerminatedString(self.unescape(fragment[:closing_index]), closing_index)

        raw = self.strip_trailing_noise(fragment)
        if len(raw) != len(fragment):
            logger.debug("No closing quote found; stripped %d trailing characters.", len(fragment) - len(raw))
        return TerminatedString(self.unescape(raw), None)

    def _closes_record(self, fragment: str, start: int) -> bool:
        index = start
        length = len(fragment)
        while index < length and fragment[index] in self._WHITESPACE:
            index += 1
        return index == length or fragment[index] == "}"
