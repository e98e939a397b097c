"""Submission persistence collaborators."""
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from media_gate.types import SubmissionRecord

logger = logging.getLogger(__name__)


class InMemorySubmissionStore:
    """Keeps stored submissions in a list. Useful for tests and self-hosting."""

    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def save(self, record: SubmissionRecord) -> str:
        """Persist a record and return its generated identifier."""
        submission_id = uuid.uuid4().hex
        row = {"id": submission_id, **record.to_dict()}
        with self._lock:
            self._rows.append(row)
        return submission_id

    def list(self, project_id: Optional[str] = None, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Stored submissions, newest first, optionally filtered."""
        with self._lock:
            rows = list(self._rows)
        return _filter_rows(rows, project_id, user_id)

    def count(self, project_id: Optional[str] = None) -> int:
        return len(self.list(project_id=project_id))


class JsonlSubmissionStore:
    """Appends one JSON document per submission to a JSON Lines file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def save(self, record: SubmissionRecord) -> str:
        submission_id = uuid.uuid4().hex
        line = json.dumps({"id": submission_id, **record.to_dict()}, ensure_ascii=False)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + "\n")
        logger.debug(f"Submission {submission_id} appended to {self.path}")
        return submission_id

    def list(self, project_id: Optional[str] = None, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return _filter_rows(read_submissions_file(self.path), project_id, user_id)

    def count(self, project_id: Optional[str] = None) -> int:
        return len(self.list(project_id=project_id))


def read_submissions_file(path: Path) -> List[Dict[str, Any]]:
    """Read a JSON Lines submissions file, skipping unparseable lines."""
    path = Path(path)
    if not path.exists():
        return []

    rows = []
    with open(path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping malformed line {line_number} in {path}: {e}")
    return rows


def _filter_rows(rows: List[Dict[str, Any]], project_id: Optional[str], user_id: Optional[str]) -> List[Dict[str, Any]]:
    if project_id is not None:
        rows = [r for r in rows if r.get("projectId") == project_id]
    if user_id is not None:
        rows = [r for r in rows if r.get("userId") == user_id]
    return sorted(rows, key=lambda r: r.get("submittedAt") or "", reverse=True)
