"""Exceptions raised by the media gate."""
from typing import List, Optional


class MediaGateError(Exception):
    """Base class for all media gate errors."""


class AdmissionError(MediaGateError):
    """A submission was refused by the server-side admission gate.

    ``message`` is safe to show to the submitter; ``field`` names the
    offending payload field when there is one.
    """
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ProjectNotFound(AdmissionError):
    status_code = 404

    def __init__(self, project_id: str):
        super().__init__("Project not found")
        self.project_id = project_id


class SelfCheckProject(AdmissionError):
    status_code = 403

    def __init__(self):
        super().__init__("This project is self-check only; submissions are not stored.")


class PayloadTooLarge(AdmissionError):
    status_code = 413

    def __init__(self, max_bytes: int):
        super().__init__(f"Payload too large (max {max_bytes} bytes)")
        self.max_bytes = max_bytes


class MetadataTooLarge(AdmissionError):
    status_code = 413

    def __init__(self, byte_count: int, index: int):
        super().__init__(
            f"File metadata too large ({byte_count} bytes). "
            "Reduce captured EXIF/debug fields and try again.",
            field=f"files[{index}].metadata",
        )
        self.byte_count = byte_count


class StorageFailure(AdmissionError):
    status_code = 500

    def __init__(self):
        super().__init__("Failed to store submission")


class SubmissionNotAllowed(MediaGateError):
    """The client gate refused to build a payload."""

    def __init__(self, reasons: List[str]):
        super().__init__("; ".join(reasons) or "Submission not allowed")
        self.reasons = reasons


class ProjectConfigError(MediaGateError):
    """A project definition failed validation."""

    def __init__(self, project_id: str, errors: List[str]):
        super().__init__(f"Invalid project {project_id}: {'; '.join(errors)}")
        self.project_id = project_id
        self.errors = errors


class VerificationRequestError(MediaGateError):
    """The verification server answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
