import json
import logging
import socket
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, Field
from requests import exceptions as requests_exceptions

from src.providers.base import GenerationProvider
from src.sitecraft.config import (
    CRITIQUE_TEMPERATURE,
    DEFAULT_LANGUAGE,
    GENERATION_CONFIG,
    TRANSCRIPT_CONTEXT_MESSAGES,
)
from src.sitecraft.models.exceptions import (
    GenerationConnectionError,
    GenerationRateLimitError,
    GenerationServiceError,
    GenerationTimeoutError,
    InvalidStreamStateError,
)
from src.sitecraft.models.file_record import FileRecord
from src.sitecraft.models.transcript import GenerationResult, MessageRole, TranscriptMessage
from src.sitecraft.prompts.critique_prompt import CRITIQUE_PROMPT
from src.sitecraft.prompts.prompt_manager import PromptManager
from src.sitecraft.prompts.system_prompt import SYSTEM_PROMPT
from src.sitecraft.services.cancellation import CancellationToken
from src.sitecraft.streaming.response_parser import ResponseParser


logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """Everything the generation service needs for one call."""
    prompt: str
    current_files: List[FileRecord] = Field(default_factory=list)
    transcript_tail: List[TranscriptMessage] = Field(default_factory=list)
    language: str = DEFAULT_LANGUAGE


class GenerationStream:
    """
    Fragments of one generation call, followed by its authoritative result.

    Iterate to receive text fragments in arrival order. Once iteration is
    exhausted, ``result()`` parses the aggregated text into the authoritative
    GenerationResult.
    """

    def __init__(self, fragments: Iterator[str], finalize: Callable[[str], GenerationResult]) -> None:
        self._fragments = fragments
        self._finalize = finalize
        self._parts: List[str] = []
        self._exhausted = False
        self._result: Optional[GenerationResult] = None

    def __iter__(self) -> Iterator[str]:
        for fragment in self._fragments:
            self._parts.append(fragment)
            yield fragment
        self._exhausted = True

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def result(self) -> GenerationResult:
        """
        Return the authoritative result of a fully consumed stream.

        Raises:
            InvalidStreamStateError: If the fragments have not been fully consumed.
            AuthoritativePayloadError: If the final file block is malformed.
        """
        if not self._exhausted:
            raise InvalidStreamStateError("The authoritative result is only available after the stream ends.")
        if self._result is None:
            self._result = self._finalize(self.text)
        return self._result

    def close(self) -> None:
        """Release the underlying provider stream."""
        close = getattr(self._fragments, "close", None)
        if close is not None:
            close()


class GenerationService:
    """
    Adapter between the pipeline and a GenerationProvider.

    Responsibilities:
    - Render the request prompt (language, transcript tail, request, files).
    - Stream provider chunks while honouring the cancellation token.
    - Classify provider failures into GenerationServiceError subclasses.
    - Parse the complete response into the authoritative result.
    - Run design critiques, whose replies are plain markdown with no file block.

    Nothing is retried here: a retried stream would replay fragments into a
    buffer that has already consumed them.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        generation_config: Optional[Dict[str, Any]] = None,
        prompt_manager: Optional[PromptManager] = None,
        response_parser: Optional[ResponseParser] = None,
    ) -> None:
        self.provider = provider
        self.generation_config = dict(generation_config or GENERATION_CONFIG)
        self.prompt_manager = prompt_manager or PromptManager()
        self.response_parser = response_parser or ResponseParser()

    # ------------------- Prompt -------------------
    def build_prompt(self, request: GenerationRequest) -> str:
        history = [message for message in request.transcript_tail if message.role != MessageRole.SYSTEM]
        history = history[-TRANSCRIPT_CONTEXT_MESSAGES:]
        conversation_history = "\n\n".join(
            f"{'User' if message.role == MessageRole.USER else 'Assistant'}: {message.content}"
            for message in history
        )
        project_files = json.dumps(
            [record.model_dump() for record in request.current_files], indent=2, ensure_ascii=False
        )
        return self.prompt_manager.render(
            "generation_request.jinja2",
            language=request.language,
            conversation_history=conversation_history,
            prompt=request.prompt,
            project_files=project_files,
        )

    # ------------------- Streaming -------------------
    def generate(
        self,
        request: GenerationRequest,
        token: CancellationToken,
        project_id: Optional[str] = None,
    ) -> GenerationStream:
        """
        Start a generation call.

        Args:
            request: The request to send.
            token: Cancellation token checked on every provider chunk.
            project_id: Optional project identifier attached to raised errors.

        Returns:
            A GenerationStream; provider errors surface while iterating it.
        """
        model_name = self.generation_config.get("model", GENERATION_CONFIG["model"])
        prompt = self.build_prompt(request)
        logger.info(
            "Requesting generation from %s model '%s' (%d files, %d chars of prompt).",
            self.provider.provider_name,
            model_name,
            len(request.current_files),
            len(prompt),
        )
        fragments = self._stream_text(model_name, SYSTEM_PROMPT, prompt, self.generation_config, token, project_id)
        return GenerationStream(
            fragments,
            lambda text: self.response_parser.parse(text, project_id=project_id),
        )

    # ------------------- Critique -------------------
    def build_critique_prompt(self, files: Iterable[FileRecord], language: str = DEFAULT_LANGUAGE) -> str:
        project_files = json.dumps(
            [{"name": record.name, "content": record.content} for record in files], indent=2, ensure_ascii=False
        )
        return self.prompt_manager.render("critique_request.jinja2", language=language, project_files=project_files)

    def critique(
        self,
        files: Iterable[FileRecord],
        token: CancellationToken,
        language: str = DEFAULT_LANGUAGE,
        project_id: Optional[str] = None,
    ) -> str:
        """
        Ask the model for a design and accessibility review of ``files``.

        The reply is plain markdown; it is never scanned for a file block.

        Raises:
            GenerationCancelledError: If the token is cancelled before the reply is complete.
            GenerationServiceError: If the provider fails or the reply is empty.
        """
        files = list(files)
        model_name = self.generation_config.get("model", GENERATION_CONFIG["model"])
        config = dict(self.generation_config, temperature=CRITIQUE_TEMPERATURE)
        prompt = self.build_critique_prompt(files, language)
        logger.info(
            "Requesting design critique from %s model '%s' (%d files).",
            self.provider.provider_name,
            model_name,
            len(files),
        )
        text = "".join(self._stream_text(model_name, CRITIQUE_PROMPT, prompt, config, token, project_id)).strip()
        if not text:
            raise GenerationServiceError("The critique response was empty.", project_id=project_id)
        return text

    def _stream_text(
        self,
        model_name: str,
        system_instruction: str,
        prompt: str,
        config: Dict[str, Any],
        token: CancellationToken,
        project_id: Optional[str],
    ) -> Iterator[str]:
        """Yield non-empty provider chunks, checking ``token`` before the call and on every chunk."""
        token.raise_if_cancelled()
        try:
            stream = self.provider.stream_generation(model_name, system_instruction, prompt, config)
        except Exception as exc:  # noqa: BLE001 - classified below
            raise self._categorize_exception(exc, project_id) from exc
        try:
            for chunk in stream:
                token.raise_if_cancelled()
                if chunk:
                    yield str(chunk)
        except GenerationServiceError:
            raise
        except Exception as exc:  # noqa: BLE001 - classified below
            raise self._categorize_exception(exc, project_id) from exc
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()
        logger.info("Generation stream from %s completed.", self.provider.provider_name)

    # ------------------- Error classification -------------------
    def _categorize_exception(self, exc: Exception, project_id: Optional[str]) -> GenerationServiceError:
        """
        Classify a provider exception.

        Args:
            exc: The exception raised by the provider.
            project_id: The project associated with the request.

        Returns:
            The GenerationServiceError subclass describing the failure.
        """
        if isinstance(exc, GenerationServiceError):
            return exc
        if self._is_timeout_error(exc):
            error_class = GenerationTimeoutError
            message = f"Timeout while generating: {exc}"
        elif self._is_rate_limit_error(exc):
            error_class = GenerationRateLimitError
            message = f"Rate limit encountered while generating: {exc}"
        elif self._is_connection_error(exc):
            error_class = GenerationConnectionError
            message = f"Connection issue while generating: {exc}"
        else:
            error_class = GenerationServiceError
            message = f"Unhandled provider error while generating: {exc}"
        logger.warning("Generation failed (%s): %s", error_class.__name__, exc)
        return error_class(message, project_id=project_id, cause=exc)

    @staticmethod
    def _is_timeout_error(exc: Exception) -> bool:
        if isinstance(exc, (TimeoutError, socket.timeout)):
            return True
        if isinstance(exc, (requests_exceptions.Timeout, google_exceptions.DeadlineExceeded)):
            return True
        message = str(exc).lower()
        return "timeout" in message or "timed out" in message

    @staticmethod
    def _is_rate_limit_error(exc: Exception) -> bool:
        if isinstance(exc, requests_exceptions.HTTPError):
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            if status_code == 429:
                return True
        if isinstance(exc, google_exceptions.ResourceExhausted):
            return True
        message = str(exc).lower()
        return "rate limit" in message or "quota" in message

    @staticmethod
    def _is_connection_error(exc: Exception) -> bool:
        connection_indicators = (
            "connection reset",
            "connection aborted",
            "connection refused",
            "temporary failure in name resolution",
            "network unreachable",
            "connection closed",
        )
        if isinstance(exc, (ConnectionError, socket.gaierror)):
            return True
        connection_types = (
            requests_exceptions.ConnectionError,
            requests_exceptions.ChunkedEncodingError,
            google_exceptions.ServiceUnavailable,
        )
        if isinstance(exc, connection_types):
            return True
        message = str(exc).lower()
        return any(indicator in message for indicator in connection_indicators)
