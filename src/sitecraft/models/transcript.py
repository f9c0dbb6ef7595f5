from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.sitecraft.models.file_record import FileRecord


class MessageRole(str, Enum):
    """Author of a transcript message"""
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class TranscriptMessage(BaseModel):
    """
    One entry of a project's conversation transcript.

    The model message of an in-flight generation is mutated in place while
    streaming and replaced wholesale once the authoritative result arrives.
    """
    role: MessageRole
    content: str = ""
    attached_files: Optional[List[FileRecord]] = None  # Live streaming display only
    suggestions: Optional[List[str]] = None


class ResponseMessage(BaseModel):
    """Structured commentary recovered from a complete response."""
    plan: str = ""
    summary: str = ""
    answer: str = ""
    suggestions: List[str] = Field(default_factory=list)
    footer: str = ""
    raw_text: str = ""

    def to_transcript_content(self, fallback: str = "") -> str:
        """Pick the text shown in the transcript for this response."""
        for candidate in (self.answer, self.summary, fallback):
            if candidate and candidate.strip():
                return candidate.strip()
        return ""


class GenerationResult(BaseModel):
    """Authoritative, schema-validated outcome of a complete generation call."""
    files: List[FileRecord] = Field(default_factory=list)
    message: ResponseMessage = Field(default_factory=ResponseMessage)
