"""HTTP client for the verification API."""
import logging
from typing import Any, Dict, Optional

import requests

from media_gate.errors import VerificationRequestError
from media_gate.types import Project, ProjectConfig, SubmissionPayload

logger = logging.getLogger(__name__)


class VerificationClient:
    """Talks to the public project and verify endpoints."""

    def __init__(self, base_url: str, timeout: int = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _parse(self, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok:
            message = data.get("error") if isinstance(data, dict) else None
            raise VerificationRequestError(
                message or f"Request failed ({response.status_code})",
                status_code=response.status_code,
            )
        return data

    def get_project(self, project_id: str) -> Project:
        """Fetch the public config of a project."""
        try:
            response = self.session.get(f"{self.base_url}/api/project/{project_id}", timeout=self.timeout)
        except requests.RequestException as e:
            raise VerificationRequestError(f"Could not reach verification server: {e}") from e

        data = self._parse(response)
        return Project(
            id=str(data.get("id", project_id)),
            name=data.get("name") or "",
            config=ProjectConfig.from_dict(data),
        )

    def submit_verification(self, project_id: str, payload: SubmissionPayload) -> Dict[str, Any]:
        """POST a submission payload. Not idempotent: each call may store a record."""
        try:
            response = self.session.post(
                f"{self.base_url}/verify/{project_id}",
                json=payload.to_dict(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise VerificationRequestError(f"Could not reach verification server: {e}") from e

        data = self._parse(response)
        logger.info(f"Submission accepted: id={data.get('submissionId')}, emailSent={data.get('emailSent')}")
        return data
