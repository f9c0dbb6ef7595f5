"""Authoritative parsing of a complete generation response."""

from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from src.sitecraft.config import FENCE_CLOSE, FENCE_OPEN
from src.sitecraft.models.exceptions import AuthoritativePayloadError
from src.sitecraft.models.file_record import FileRecord
from src.sitecraft.models.transcript import GenerationResult, ResponseMessage


logger = logging.getLogger(__name__)


class FileBlockPayload(BaseModel):
    """Schema of the fenced JSON block."""
    files: List[FileRecord] = Field(default_factory=list)


class ResponseParser:
    """
    Parse the full markdown response into files and a structured message.

    Unlike the streaming path this parser is strict about the file block: a
    block that is present but does not decode, or does not match
    ``FileBlockPayload``, raises ``AuthoritativePayloadError``. A response
    without any block is a valid answer-only response with no files.

    The block ends where its JSON object ends, and the close fence must follow
    it directly. Fences inside file content or in later prose (a shell snippet
    in the summary, say) are not taken for the end of the block.
    """

    _BOUNDARY = r"(?=\n###|\*For custom development|\*للتطوير المخصص|$)"
    _PLAN_PATTERN = re.compile(r"### (?:Plan|خطة)\s*([\s\S]*?)(?=\n###|$)")
    _SUMMARY_PATTERN = re.compile(r"### (?:Summary|ملخص)\s*([\s\S]*?)" + _BOUNDARY)
    _SUGGESTIONS_PATTERN = re.compile(r"### (?:Suggestions|اقتراحات)\s*([\s\S]*?)" + _BOUNDARY)
    _ANSWER_PATTERN = re.compile(r"### (?:Answer|إجابة)\s*([\s\S]*?)" + _BOUNDARY)
    _FOOTER_PATTERN = re.compile(r"\*(?:For custom development[^*\n]*|للتطوير المخصص[^*\n]*)\*")
    _BULLET_PATTERN = re.compile(r"^(?:- |\* )")
    _WHITESPACE = re.compile(r"\s*")

    def __init__(self, open_marker: str = FENCE_OPEN, close_marker: str = FENCE_CLOSE) -> None:
        self.open_marker = open_marker
        self.close_marker = close_marker
        self._decoder = json.JSONDecoder()

    def parse(self, raw_text: str, project_id: Optional[str] = None) -> GenerationResult:
        """
        Parse a complete response.

        Args:
            raw_text: The full aggregated response text.
            project_id: Optional project identifier attached to raised errors.

        Returns:
            The authoritative GenerationResult.

        Raises:
            AuthoritativePayloadError: If the file block is truncated, undecodable or off-schema.
        """
        raw_text = raw_text or ""
        files: List[FileRecord] = []
        open_at = raw_text.find(self.open_marker)
        if open_at < 0:
            before_block = prose = raw_text
        else:
            files, block_end = self._parse_file_block(raw_text, open_at + len(self.open_marker), project_id)
            before_block = raw_text[:open_at]
            prose = before_block + raw_text[block_end:]

        suggestions_text = self._match(self._SUGGESTIONS_PATTERN, prose)
        footer_match = self._FOOTER_PATTERN.search(prose)
        message = ResponseMessage(
            plan=self._match(self._PLAN_PATTERN, before_block),
            summary=self._match(self._SUMMARY_PATTERN, prose),
            answer=self._match(self._ANSWER_PATTERN, prose),
            suggestions=self._split_suggestions(suggestions_text),
            footer=footer_match.group(0) if footer_match else "",
            raw_text=raw_text,
        )
        logger.info(
            "Parsed authoritative response: %d files, %d suggestions.", len(files), len(message.suggestions)
        )
        return GenerationResult(files=files, message=message)

    def _parse_file_block(
        self, text: str, block_start: int, project_id: Optional[str]
    ) -> Tuple[List[FileRecord], int]:
        """Decode the JSON object after the open fence; return its files and the index past the close fence."""
        if text.find(self.close_marker, block_start) < 0:
            raise AuthoritativePayloadError("Response ended inside the file block.", project_id=project_id)

        json_start = self._WHITESPACE.match(text, block_start).end()
        try:
            data, json_end = self._decoder.raw_decode(text, json_start)
        except json.JSONDecodeError as exc:
            logger.error("File block is not valid JSON: %s", exc)
            raise AuthoritativePayloadError(
                f"File block is not valid JSON: {exc}", project_id=project_id, cause=exc
            ) from exc

        close_at = self._WHITESPACE.match(text, json_end).end()
        if not text.startswith(self.close_marker, close_at):
            logger.error("File block JSON is followed by unexpected text at index %d.", close_at)
            raise AuthoritativePayloadError(
                "File block JSON is not followed by the closing fence.", project_id=project_id
            )

        try:
            payload = FileBlockPayload.model_validate(data)
        except ValidationError as exc:
            logger.error("File block failed validation: %s", exc)
            raise AuthoritativePayloadError(
                "File block does not match the expected schema.", project_id=project_id, cause=exc
            ) from exc
        return payload.files, close_at + len(self.close_marker)

    @staticmethod
    def _match(pattern: re.Pattern, text: str) -> str:
        match = pattern.search(text)
        return match.group(1).strip() if match and match.group(1) else ""

    def _split_suggestions(self, text: str) -> List[str]:
        suggestions = []
        for line in text.split("\n"):
            cleaned = self._BULLET_PATTERN.sub("", line.strip()).strip()
            if cleaned:
                suggestions.append(cleaned)
        return suggestions
