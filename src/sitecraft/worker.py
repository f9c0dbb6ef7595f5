import logging
from typing import Optional

from PySide6.QtCore import QObject, QRunnable, Signal

from src.sitecraft.config import DEFAULT_LANGUAGE
from src.sitecraft.services.stream_controller import GenerationOutcome, StreamController


logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals used by GenerationWorker to report back to the UI/main thread."""

    result = Signal(object)
    error = Signal(str)
    finished = Signal()


class GenerationWorker(QRunnable):
    """
    QRunnable that runs one StreamController submission off the main UI thread.

    Cancellation is requested through ``cancel()``, which only sets the
    controller's token; the worker keeps running until the rollback is done.
    ``outcome``, ``error_message`` and ``done`` can be read once ``finished``
    has been emitted.
    """

    def __init__(self, controller: StreamController, prompt: str, language: str = DEFAULT_LANGUAGE):
        super().__init__()
        self.controller = controller
        self.prompt = prompt
        self.language = language
        self.signals = WorkerSignals()
        self.outcome: Optional[GenerationOutcome] = None
        self.error_message: Optional[str] = None
        self.done = False

    def cancel(self) -> bool:
        return self.controller.cancel()

    def execute(self) -> GenerationOutcome:
        return self.controller.submit(self.prompt, self.language)

    def run(self):
        try:
            self.outcome = self.execute()
            self.signals.result.emit(self.outcome)
        except Exception as e:
            logger.error("Background generation error: %s", e, exc_info=True)
            self.error_message = str(e)
            self.signals.error.emit(self.error_message)
        finally:
            self.done = True
            self.signals.finished.emit()


class CritiqueWorker(GenerationWorker):
    """Runs a design critique of the committed files off the main UI thread."""

    def __init__(self, controller: StreamController, language: str = DEFAULT_LANGUAGE):
        super().__init__(controller, prompt="", language=language)

    def execute(self) -> GenerationOutcome:
        return self.controller.critique(self.language)
