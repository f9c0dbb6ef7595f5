import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from json import JSONDecodeError
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from src.sitecraft.config import PROJECTS_DIR
from src.sitecraft.models.file_record import FileSet
from src.sitecraft.models.history import HistoryState
from src.sitecraft.models.project import ProjectState
from src.sitecraft.models.transcript import TranscriptMessage


logger = logging.getLogger(__name__)


class ProjectStore(ABC):
    """
    Persistence boundary for committed project state.

    Called only at commit points: never while a generation is streaming and
    never on rollback.
    """

    @abstractmethod
    def commit_project_state(
        self,
        project_id: str,
        files: FileSet,
        transcript: List[TranscriptMessage],
        history_state: HistoryState,
    ) -> None:
        """Persist the committed files, transcript and history of a project."""
        pass

    @abstractmethod
    def load_project_state(self, project_id: str) -> ProjectState:
        """Load a previously committed project.

        Raises:
            FileNotFoundError: If the project is unknown to the store.
        """
        pass


class JsonProjectStore(ProjectStore):
    """Stores each project as ``<storage_dir>/<project_id>/project.json``."""

    def __init__(self, storage_dir: Union[str, Path] = PROJECTS_DIR) -> None:
        """
        Initialize the store.

        Args:
            storage_dir: Directory to store all project data
        """
        self.storage_dir = Path(storage_dir).expanduser()
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Unable to initialize project storage at %s: %s", self.storage_dir, exc)
            raise

    def create_project(self, name: str) -> ProjectState:
        """Create and persist a new, empty project.

        Args:
            name: Display name of the project.

        Returns:
            The newly created ProjectState.
        """
        project = ProjectState(name=name)
        self.save_project(project)
        logger.info("Created new project '%s' (%s).", name, project.id)
        return project

    def load_project_state(self, project_id: str) -> ProjectState:
        project_path = self.get_project_path(project_id) / "project.json"
        logger.debug("Attempting to load project: %s", project_path)
        if not project_path.exists():
            logger.error("Project '%s' not found at %s", project_id, project_path)
            raise FileNotFoundError(f"Project '{project_id}' not found.")

        try:
            data = json.loads(project_path.read_text(encoding="utf-8"))
        except JSONDecodeError as exc:
            logger.error("Project '%s' has invalid JSON: %s", project_id, exc)
            raise ValueError(f"Project '{project_id}' data is corrupted.") from exc
        except OSError as exc:
            logger.error("Failed reading project '%s': %s", project_id, exc)
            raise

        try:
            project = ProjectState(**data)
        except ValidationError as exc:
            logger.error("Project '%s' failed validation: %s", project_id, exc)
            raise ValueError(f"Project '{project_id}' data is invalid.") from exc

        logger.info("Loaded project '%s' from disk.", project_id)
        return project

    def commit_project_state(
        self,
        project_id: str,
        files: FileSet,
        transcript: List[TranscriptMessage],
        history_state: HistoryState,
    ) -> None:
        try:
            project = self.load_project_state(project_id)
        except FileNotFoundError:
            project = ProjectState(id=project_id, name=project_id)
        project.files = files.records()
        project.transcript = [message.model_copy(deep=True) for message in transcript]
        project.history = history_state
        self.save_project(project)

    def save_project(self, project: ProjectState) -> None:
        """Write a project document to disk, refreshing ``last_active``."""
        project_dir = self.get_project_path(project.id)
        project_file = project_dir / "project.json"
        try:
            project_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Unable to ensure directory for project '%s': %s", project.id, exc)
            raise

        project.last_active = datetime.now(timezone.utc)
        payload = json.loads(project.model_dump_json())
        try:
            project_file.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save project '%s': %s", project.id, exc)
            raise
        logger.debug("Project '%s' saved successfully.", project.id)

    def project_exists(self, project_id: str) -> bool:
        return (self.get_project_path(project_id) / "project.json").exists()

    def get_project_path(self, project_id: str) -> Path:
        self._validate_project_id(project_id)
        return self.storage_dir / project_id

    def _validate_project_id(self, project_id: str) -> None:
        """Ensure project ids are filesystem-safe."""
        if not project_id or not project_id.strip():
            logger.error("Invalid project id: blank.")
            raise ValueError("Project id must be provided.")
        if any(char in project_id for char in r"<>:\"/\\|?*"):
            logger.error("Invalid project id '%s': illegal characters present.", project_id)
            raise ValueError("Project id contains invalid filesystem characters.")
        if project_id != Path(project_id).name:
            logger.error("Invalid project id '%s': must not contain path separators.", project_id)
            raise ValueError("Project id must not contain path separators.")
