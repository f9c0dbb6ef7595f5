"""
Stream Controller - drives one generation request from submit to commit or rollback.

State machine::

    IDLE -> REQUESTING -> STREAMING -> {COMMITTING, ROLLING_BACK} -> IDLE

The controller owns the per-generation StreamReconstructor and
CancellationToken. All writes to committed state go through the
ProjectCommitter. Design critiques share the same active slot and token but
never touch files or history.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from src.sitecraft.config import CRITIQUE_REQUEST_MARKER, DEFAULT_LANGUAGE
from src.sitecraft.models import event_types
from src.sitecraft.models.events import Event
from src.sitecraft.models.exceptions import (
    GenerationCancelledError,
    GenerationInProgressError,
    GenerationServiceError,
)
from src.sitecraft.models.file_record import FileSet
from src.sitecraft.models.history import HistoryState
from src.sitecraft.models.transcript import GenerationResult, MessageRole, TranscriptMessage
from src.sitecraft.services.cancellation import CancellationToken
from src.sitecraft.services.generation_service import GenerationRequest, GenerationService
from src.sitecraft.services.project_committer import ProjectCommitter, ProjectSnapshot
from src.sitecraft.streaming.file_merger import FileMerger
from src.sitecraft.streaming.reconstructor import StreamReconstructor

logger = logging.getLogger(__name__)

CANCELLED_NOTICE = "Generation cancelled. Your project was left unchanged."
FAILED_NOTICE = "Generation failed: {error} Your project was left unchanged; please try again."
CRITIQUE_CANCELLED_NOTICE = "Critique cancelled."
CRITIQUE_FAILED_MESSAGE = "Sorry, an error occurred while generating the critique."


class ControllerState(str, Enum):
    """Lifecycle of the controller's active-generation slot"""
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"


class OutcomeStatus(str, Enum):
    COMMITTED = "committed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class GenerationOutcome:
    """What a submission ended with."""

    status: OutcomeStatus
    files: FileSet
    message: Optional[TranscriptMessage] = None
    history_state: Optional[HistoryState] = None
    error: Optional[BaseException] = None

    @property
    def committed(self) -> bool:
        return self.status == OutcomeStatus.COMMITTED


class StreamController:
    """
    Runs generations for a single project, one at a time.

    ``submit`` blocks until the generation has been committed or rolled back;
    ``cancel`` may be called from any thread while it runs.
    """

    def __init__(
        self,
        committer: ProjectCommitter,
        generation_service: GenerationService,
        event_bus: Any,
        merger: Optional[FileMerger] = None,
    ) -> None:
        self.committer = committer
        self.generation_service = generation_service
        self.event_bus = event_bus
        self.merger = merger or FileMerger()
        self.state = ControllerState.IDLE
        self._token: Optional[CancellationToken] = None
        self._slot_lock = threading.Lock()

    @property
    def project_id(self) -> str:
        return self.committer.project.project_id

    @property
    def is_busy(self) -> bool:
        return self.state != ControllerState.IDLE

    def cancel(self) -> bool:
        """Request cancellation of the active generation, if there is one."""
        token = self._token
        if token is None:
            logger.debug("Cancel requested for project '%s' with no active generation.", self.project_id)
            return False
        return token.cancel()

    def submit(self, prompt: str, language: str = DEFAULT_LANGUAGE) -> GenerationOutcome:
        """
        Run one generation to completion.

        Args:
            prompt: The user's request.
            language: Response language preference ("en" or "ar").

        Returns:
            The outcome: committed, cancelled or failed.

        Raises:
            GenerationInProgressError: If a generation is already active.
        """
        with self._slot_lock:
            if self.is_busy:
                raise GenerationInProgressError(f"Project '{self.project_id}' already has an active generation.")
            self._set_state(ControllerState.REQUESTING)

        snapshot: Optional[ProjectSnapshot] = None
        token = CancellationToken(project_id=self.project_id)
        self._token = token
        try:
            snapshot = self.committer.begin_generation(prompt)
            self._dispatch(event_types.GENERATION_STARTED, {"prompt": prompt, "language": language})
            return self._run(prompt, language, snapshot, token)
        except GenerationCancelledError as exc:
            return self._roll_back(snapshot, OutcomeStatus.CANCELLED, CANCELLED_NOTICE, exc)
        except GenerationServiceError as exc:
            logger.warning("Generation for project '%s' failed: %s", self.project_id, exc)
            return self._roll_back(snapshot, OutcomeStatus.FAILED, FAILED_NOTICE.format(error=exc), exc)
        except Exception as exc:
            logger.error("Unexpected error during generation for project '%s'.", self.project_id, exc_info=True)
            self._roll_back(snapshot, OutcomeStatus.FAILED, FAILED_NOTICE.format(error="unexpected error."), exc)
            raise
        finally:
            self._token = None
            self._set_state(ControllerState.IDLE)

    def critique(self, language: str = DEFAULT_LANGUAGE) -> GenerationOutcome:
        """
        Ask for a design and accessibility review of the committed files.

        The request marker and the reply are appended to the transcript and
        persisted; files and history are left alone. A failed critique records
        an apology instead of the reply. A cancelled one records nothing but a
        notice.

        Raises:
            GenerationInProgressError: If a generation is already active.
        """
        with self._slot_lock:
            if self.is_busy:
                raise GenerationInProgressError(f"Project '{self.project_id}' already has an active generation.")
            self._set_state(ControllerState.REQUESTING)

        token = CancellationToken(project_id=self.project_id)
        self._token = token
        files = self.committer.project.files
        request = TranscriptMessage(role=MessageRole.USER, content=CRITIQUE_REQUEST_MARKER)
        try:
            self._dispatch(event_types.CRITIQUE_STARTED, {"language": language, "file_count": len(files)})
            try:
                text = self.generation_service.critique(
                    files.records(), token, language=language, project_id=self.project_id
                )
                token.raise_if_cancelled()
                status, error = OutcomeStatus.COMMITTED, None
            except GenerationCancelledError as exc:
                notice = TranscriptMessage(role=MessageRole.SYSTEM, content=CRITIQUE_CANCELLED_NOTICE)
                self.committer.add_notice(notice)
                logger.info("Critique for project '%s' cancelled.", self.project_id)
                return GenerationOutcome(status=OutcomeStatus.CANCELLED, files=files, message=notice, error=exc)
            except GenerationServiceError as exc:
                logger.warning("Critique for project '%s' failed: %s", self.project_id, exc)
                text, status, error = CRITIQUE_FAILED_MESSAGE, OutcomeStatus.FAILED, exc

            self._set_state(ControllerState.COMMITTING)
            response = TranscriptMessage(role=MessageRole.MODEL, content=text)
            self.committer.commit_critique(request, response)
            return GenerationOutcome(status=status, files=files, message=response, error=error)
        except Exception:
            logger.error("Unexpected error during critique for project '%s'.", self.project_id, exc_info=True)
            raise
        finally:
            self._token = None
            self._set_state(ControllerState.IDLE)

    # ------------------- Internals -------------------
    def _run(
        self, prompt: str, language: str, snapshot: ProjectSnapshot, token: CancellationToken
    ) -> GenerationOutcome:
        request = GenerationRequest(
            prompt=prompt,
            current_files=snapshot.files.records(),
            transcript_tail=snapshot.transcript,
            language=language,
        )
        reconstructor = StreamReconstructor(snapshot.files)
        token.raise_if_cancelled()
        stream = self.generation_service.generate(request, token, project_id=self.project_id)
        try:
            for fragment in stream:
                token.raise_if_cancelled()
                if self.state == ControllerState.REQUESTING:
                    self._set_state(ControllerState.STREAMING)
                projection = reconstructor.feed(fragment)
                self._show_projection(projection.prose, projection.files, projection.fragment_count)
                token.raise_if_cancelled()

            token.raise_if_cancelled()
            result = stream.result()
            token.raise_if_cancelled()
        except GenerationCancelledError:
            reconstructor.cancel()
            raise
        except Exception:
            reconstructor.fail()
            raise
        finally:
            stream.close()
        reconstructor.complete()

        self._set_state(ControllerState.COMMITTING)
        return self._commit(snapshot, result, reconstructor.projection().prose)

    def _show_projection(self, prose: str, files: FileSet, fragment_count: int) -> None:
        placeholder = self.committer.placeholder()
        placeholder.content = prose
        placeholder.attached_files = files.records()
        self.committer.project.files = files
        self._dispatch(
            event_types.STREAM_PROJECTION_UPDATED,
            {"prose": prose, "files": files.to_dicts(), "fragment_count": fragment_count},
        )

    def _commit(self, snapshot: ProjectSnapshot, result: GenerationResult, prose: str) -> GenerationOutcome:
        files = self.merger.merge(snapshot.files, result.files)
        message = TranscriptMessage(
            role=MessageRole.MODEL,
            content=result.message.to_transcript_content(prose),
            suggestions=list(result.message.suggestions) or None,
        )
        history_state = self.committer.commit_generation(files, message)
        return GenerationOutcome(
            status=OutcomeStatus.COMMITTED, files=files, message=message, history_state=history_state
        )

    def _roll_back(
        self,
        snapshot: Optional[ProjectSnapshot],
        status: OutcomeStatus,
        notice_text: str,
        error: BaseException,
    ) -> GenerationOutcome:
        if snapshot is None:
            # begin_generation never ran; nothing to restore.
            raise error
        self._set_state(ControllerState.ROLLING_BACK)
        notice = TranscriptMessage(role=MessageRole.SYSTEM, content=notice_text)
        self.committer.rollback(snapshot, notice, status.value)
        return GenerationOutcome(status=status, files=self.committer.project.files, message=notice, error=error)

    def _set_state(self, state: ControllerState) -> None:
        if state != self.state:
            logger.debug("Controller for project '%s': %s -> %s", self.project_id, self.state.value, state.value)
        self.state = state

    def _dispatch(self, event_type: str, payload: dict) -> None:
        try:
            self.event_bus.dispatch(Event(event_type=event_type, project_id=self.project_id, payload=payload))
        except Exception:  # pragma: no cover - a failing subscriber must not break the stream
            logger.debug("Failed to dispatch '%s' event.", event_type, exc_info=True)

