import argparse
import logging
import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QThreadPool, QTimer

from src.providers.gemini_provider import GeminiProvider
from src.sitecraft.app.event_bus import EventBus
from src.sitecraft.config import PROJECTS_DIR
from src.sitecraft.models import event_types
from src.sitecraft.models.events import Event
from src.sitecraft.models.exceptions import HistoryNavigationError
from src.sitecraft.models.project import LiveProject, ProjectState
from src.sitecraft.services.generation_service import GenerationService
from src.sitecraft.services.history_stack import HistoryStack
from src.sitecraft.services.logging_service import LoggingService
from src.sitecraft.services.project_committer import ProjectCommitter
from src.sitecraft.services.project_store import JsonProjectStore
from src.sitecraft.services.stream_controller import GenerationOutcome, StreamController
from src.sitecraft.services.user_settings_manager import (
    get_generation_config,
    load_user_settings,
    normalize_language,
)
from src.sitecraft.worker import CritiqueWorker, GenerationWorker

WORKER_POLL_INTERVAL_MS = 200


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitecraft",
        description="Generate and iterate on a website from natural-language requests.",
    )
    parser.add_argument("prompt", nargs="?", help="What to build or change.")
    parser.add_argument("--project", default="default_project", help="Project id to load or create.")
    parser.add_argument("--language", help="Response language: en or ar (defaults to the saved setting).")
    parser.add_argument("--storage-dir", default=str(PROJECTS_DIR), help="Where projects are stored.")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--undo", action="store_true", help="Step the project back one commit.")
    action.add_argument("--redo", action="store_true", help="Re-apply the last undone commit.")
    action.add_argument(
        "--critique", action="store_true", help="Ask for a design and accessibility review of the current files."
    )
    return parser


class SiteCraftApp:
    """
    Command-line host for the generation pipeline.

    Wires settings, logging, the Gemini provider, the project store and the
    StreamController for one project, then runs a single action.
    """

    def __init__(self, argv: Optional[List[str]] = None):
        self.args = build_arg_parser().parse_args(argv)
        LoggingService.setup_logging()
        logging.info("Initializing SiteCraftApp...")

        self.app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
        self.app.setOrganizationName("SiteCraft")
        self.app.setApplicationName("SiteCraft")

        self.settings = load_user_settings()
        self.language = normalize_language(self.args.language, self.settings["language"])

        self.thread_pool = QThreadPool.globalInstance()
        self.event_bus = EventBus()
        self.store = JsonProjectStore(self.args.storage_dir)
        state = self._load_or_create_project(self.args.project)

        self.project = LiveProject.from_state(state)
        self.history = HistoryStack(state.history)
        self.committer = ProjectCommitter(self.project, self.history, self.store, self.event_bus)
        self._controller: Optional[StreamController] = None

        self._register_event_handlers()
        logging.info("SiteCraftApp initialized for project '%s'.", self.project.project_id)

    @property
    def controller(self) -> StreamController:
        # The provider is only needed for generations, not for undo/redo.
        if self._controller is None:
            service = GenerationService(GeminiProvider(), generation_config=get_generation_config(self.settings))
            self._controller = StreamController(self.committer, service, self.event_bus)
        return self._controller

    def _load_or_create_project(self, project_id: str) -> ProjectState:
        try:
            if self.store.project_exists(project_id):
                return self.store.load_project_state(project_id)
            project = ProjectState(id=project_id, name=project_id)
            self.store.save_project(project)
            logging.info("Created new project: %s", project_id)
            return project
        except Exception as exc:
            logging.error("Failed to initialize project '%s': %s", project_id, exc)
            raise

    def _register_event_handlers(self):
        self.event_bus.subscribe(event_types.STREAM_PROJECTION_UPDATED, self._on_projection_updated)
        self.event_bus.subscribe(event_types.GENERATION_COMMITTED, self._on_generation_committed)
        self.event_bus.subscribe(event_types.GENERATION_ROLLED_BACK, self._on_generation_rolled_back)
        self.event_bus.subscribe(event_types.HISTORY_CHANGED, self._on_history_changed)
        self.event_bus.subscribe(event_types.CRITIQUE_STARTED, self._on_critique_started)

    def _on_projection_updated(self, event: Event) -> None:
        names = [record["name"] for record in event.payload.get("files", [])]
        print(f"\r[{event.payload.get('fragment_count', 0)} fragments] files: {', '.join(names) or '-'}", end="")

    def _on_generation_committed(self, event: Event) -> None:
        print()
        print(f"Committed {len(event.payload['file_names'])} files (history position {event.payload['history_position']}).")

    def _on_generation_rolled_back(self, event: Event) -> None:
        print()
        print(event.payload.get("message", "Generation rolled back."))

    def _on_critique_started(self, event: Event) -> None:
        print(f"Requesting a design critique of {event.payload['file_count']} files...")

    def _on_history_changed(self, event: Event) -> None:
        payload = event.payload
        logging.debug(
            "History at %s (undo: %s, redo: %s)", payload["position"], payload["can_undo"], payload["can_redo"]
        )

    def run(self) -> int:
        if self.args.undo or self.args.redo:
            try:
                files = self.committer.undo() if self.args.undo else self.committer.redo()
            except HistoryNavigationError as exc:
                print(exc)
                return 1
            print(f"Project now has {len(files)} files: {', '.join(files.names()) or '-'}")
            return 0

        if self.args.critique:
            if self.args.prompt:
                print("--critique reviews the current files and does not take a prompt.")
                return 2
            worker = CritiqueWorker(self.controller, self.language)
        elif self.args.prompt:
            worker = GenerationWorker(self.controller, self.args.prompt, self.language)
        else:
            build_arg_parser().print_usage()
            return 2

        outcome = self._run_worker(worker)
        if outcome is None:
            print(f"Generation failed: {worker.error_message}")
            return 1
        if outcome.message is not None:
            print(outcome.message.content)
            for suggestion in outcome.message.suggestions or []:
                print(f"  - {suggestion}")
        return 0 if outcome.committed else 1

    def _run_worker(self, worker: GenerationWorker) -> Optional[GenerationOutcome]:
        """
        Run ``worker`` on the global thread pool and spin the event loop until it is done.

        Events dispatched from the worker thread are delivered here on the main
        thread. Ctrl+C requests cancellation instead of killing the process.
        """
        worker.setAutoDelete(False)
        worker.signals.finished.connect(self.app.quit)

        # Python only handles SIGINT while it runs bytecode; the timer gives it the chance.
        poll_timer = QTimer()
        poll_timer.timeout.connect(lambda: self.app.quit() if worker.done else None)
        poll_timer.start(WORKER_POLL_INTERVAL_MS)
        previous_handler = signal.signal(signal.SIGINT, lambda *_: worker.cancel())
        try:
            self.thread_pool.start(worker)
            while not worker.done:
                self.app.exec()
            self.thread_pool.waitForDone()
        finally:
            poll_timer.stop()
            signal.signal(signal.SIGINT, previous_handler)
        # Deliver events the worker queued right before it finished.
        self.app.processEvents()
        return worker.outcome


def cli() -> int:
    return SiteCraftApp(sys.argv[1:]).run()
