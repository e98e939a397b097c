"""Project lookup collaborators.

The gate only reads projects; creating and editing them belongs to project
management.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from media_gate.errors import ProjectConfigError
from media_gate.types import Project, ProjectConfig
from media_gate.validators.project_validator import validate_project_definition

logger = logging.getLogger(__name__)


def project_from_dict(data: dict) -> Project:
    """Build a project from its stored JSON form, validating it first."""
    project_id = str(data.get("id", "")) if isinstance(data, dict) else ""
    errors = validate_project_definition(data)
    if not project_id:
        errors.insert(0, "id is required")
    if errors:
        raise ProjectConfigError(project_id or "<unknown>", errors)

    return Project(
        id=project_id,
        name=data["name"].strip(),
        config=ProjectConfig.from_dict(data["config"]),
        active=data.get("active", True),
    )


class InMemoryProjectStore:
    """Dictionary-backed project store."""

    def __init__(self, projects: Optional[List[Project]] = None):
        self._projects: Dict[str, Project] = {}
        self._lock = threading.Lock()
        for project in projects or []:
            self.put(project)

    def put(self, project: Project):
        with self._lock:
            self._projects[project.id] = project

    def get(self, project_id: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(project_id)

    def list(self) -> List[Project]:
        with self._lock:
            return list(self._projects.values())


class JsonFileProjectStore(InMemoryProjectStore):
    """Projects loaded from a JSON file holding a list of project definitions.

    Invalid definitions are logged and skipped so one broken project does
    not take the others down.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self.reload()

    def reload(self) -> int:
        """Re-read the file. Returns the number of projects loaded."""
        if not self.path.exists():
            logger.warning(f"Projects file not found: {self.path}")
            return 0

        with open(self.path, 'r', encoding='utf-8') as f:
            raw = json.load(f)

        entries = raw.get("projects", []) if isinstance(raw, dict) else raw
        if not isinstance(entries, list):
            logger.error(f"Projects file {self.path} does not hold a list of projects; none loaded")
            entries = []
        loaded: Dict[str, Project] = {}
        for entry in entries:
            try:
                project = project_from_dict(entry)
            except ProjectConfigError as e:
                logger.error(f"Skipping project: {e}")
                continue
            loaded[project.id] = project

        with self._lock:
            self._projects = loaded
        logger.info(f"Loaded {len(loaded)} project(s) from {self.path}")
        return len(loaded)
