"""
Custom exceptions raised by the generation pipeline.

These errors give the controller enough context to decide between a
cancellation notice and a failure notice, while surfacing the root cause
to operators through ``__cause__``.
"""
from __future__ import annotations

from typing import Optional


class GenerationServiceError(Exception):
    """
    Base exception for failures that originate from the generation service layer.

    Args:
        message: Human-readable description of the error.
        project_id: Optional project identifier associated with the failure.
        cause: Optional underlying exception that triggered the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        project_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.project_id = project_id
        self.__cause__ = cause


class GenerationRateLimitError(GenerationServiceError):
    """
    Raised when the provider signals that the client exceeded a rate limit
    or quota threshold.
    """


class GenerationTimeoutError(GenerationServiceError):
    """
    Raised when a provider request exceeds the allotted timeout window.
    """


class GenerationConnectionError(GenerationServiceError):
    """
    Raised when the client cannot reach the provider due to network
    connectivity issues.
    """


class GenerationCancelledError(GenerationServiceError):
    """
    Raised by the service when it observes a cancelled token between chunks.
    Callers treat this as a normal terminal state, not a failure.
    """


class AuthoritativePayloadError(GenerationServiceError):
    """
    Raised when the final structured block of a complete response cannot be
    decoded or does not match the file block schema.
    """


class GenerationInProgressError(RuntimeError):
    """Raised when a submission arrives while another generation is active."""


class HistoryNavigationError(RuntimeError):
    """Raised when undo or redo is requested at the edge of the history."""


class InvalidStreamStateError(RuntimeError):
    """Raised when a reconstructor is driven outside of its streaming state."""
