"""Submission summary mails through the Resend HTTP relay."""
import html
import json
import logging
from typing import Optional

import requests

from media_gate.types import SubmissionRecord

logger = logging.getLogger(__name__)


def render_submission_html(record: SubmissionRecord) -> str:
    """Render a metadata-only HTML summary of a stored submission."""
    def esc(value) -> str:
        return html.escape(str(value)) if value else ""

    return (
        "<h2>Media Verification Submission</h2>"
        f"<p><strong>Project:</strong> {esc(record.project_name)}</p>"
        f"<p><strong>Name:</strong> {esc(record.user_name)}</p>"
        f"<p><strong>Email:</strong> {esc(record.user_email)}</p>"
        f"<p><strong>User ID:</strong> {esc(record.user_id)}</p>"
        f"<p><strong>Submitted At:</strong> {esc(record.submitted_at)}</p>"
        f"<p><strong>Files:</strong> {len(record.files)}</p>"
        '<pre style="white-space: pre-wrap; font-size: 12px;">'
        f"{esc(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))}</pre>"
    )


class ResendNotifier:
    """Fire-and-forget notifier. Failures are logged, never raised."""

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: int = 10,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send_submission_summary(self, recipient: Optional[str], record: SubmissionRecord) -> bool:
        """Send the summary mail. Returns True only when the relay accepted it."""
        if not recipient or not self.api_key:
            logger.debug("Mail notification skipped: recipient or API key not configured")
            return False

        body = {
            "from": self.sender,
            "to": recipient,
            "subject": f"Media Verification - {record.project_name} - {record.user_name}",
            "html": render_submission_html(record),
        }
        try:
            response = self.session.post(
                self.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Mail relay error: {e}")
            return False

        if not response.ok:
            logger.error(f"Mail relay rejected notification ({response.status_code}): {response.text[:500]}")
            return False

        logger.info(f"Submission summary mailed for project {record.project_id}")
        return True
