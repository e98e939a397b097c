"""Server-side admission of submission payloads."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from media_gate.config.settings import GateSettings, get_settings
from media_gate.errors import ProjectNotFound, SelfCheckProject, StorageFailure
from media_gate.notifications.mailer import ResendNotifier
from media_gate.types import AdmissionResult, ProjectMode, SubmissionRecord
from media_gate.validators.submission_validator import validate_submission_payload

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def admit_submission(
    project_id: str,
    body: Any,
    projects,
    submissions,
    settings: Optional[GateSettings] = None,
    notifier: Optional[ResendNotifier] = None
) -> AdmissionResult:
    """
    Re-check a submission and persist it.

    The project is fetched at request time; its mode, counts and allowed
    types decide admission. Raises an ``AdmissionError`` subclass on any
    rejection. A failed notification never undoes a stored submission.
    """
    settings = settings or get_settings()

    logger.info("=" * 60)
    logger.info(f"ADMISSION | Project: {project_id}")

    project = projects.get(project_id)
    if project is None or not project.active:
        logger.warning(f"  REJECT: project {project_id} not found or inactive")
        raise ProjectNotFound(project_id)

    if project.config.mode == ProjectMode.SELF_CHECK:
        logger.warning(f"  REJECT: project {project_id} is self-check only")
        raise SelfCheckProject()

    validated = validate_submission_payload(
        body,
        project.config,
        max_metadata_bytes=settings.max_metadata_bytes_per_file,
    )

    record = SubmissionRecord(
        project_id=project.id,
        project_name=project.name,
        user_name=validated.user_name,
        user_email=validated.user_email,
        user_id=validated.user_id,
        submitted_at=_utc_now_iso(),
        files=validated.files,
    )

    try:
        submission_id = submissions.save(record)
    except Exception as e:
        logger.error(f"Failed to store submission for project {project_id}: {e}", exc_info=True)
        raise StorageFailure() from e

    logger.info(f"  STORED: submission {submission_id} ({len(record.files)} file(s))")

    email_sent = False
    if notifier is not None and project.config.email_recipient and notifier.configured:
        try:
            email_sent = notifier.send_submission_summary(project.config.email_recipient, record)
        except Exception as e:
            logger.error(f"Notification failed for submission {submission_id}: {e}", exc_info=True)
            email_sent = False

    logger.info(f"ADMISSION COMPLETE | Submission: {submission_id} | Email sent: {email_sent}")
    logger.info("=" * 60)
    return AdmissionResult(success=True, submission_id=submission_id, email_sent=email_sent)
