import logging
import threading
from typing import Optional

from src.sitecraft.models.exceptions import GenerationCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation flag for one in-flight generation.

    Moves from active to cancelled exactly once. Safe to set from the UI thread
    while a worker thread polls it between fragments.
    """

    def __init__(self, project_id: Optional[str] = None) -> None:
        self.project_id = project_id
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if it had already been requested."""
        if self._event.is_set():
            return False
        self._event.set()
        logger.info("Cancellation requested for project '%s'.", self.project_id)
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelledError("Generation was cancelled.", project_id=self.project_id)
