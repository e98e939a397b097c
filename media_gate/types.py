"""Type definitions for the media gate system."""
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any


class MediaKind(str, Enum):
    """Broad media family a file was recognised as."""
    IMAGE = "image"
    VIDEO = "video"
    UNKNOWN = "unknown"


class RuleStatus(str, Enum):
    PASS = "pass"
    SOFT_FAIL = "soft_fail"
    FAIL = "fail"


class ProjectMode(str, Enum):
    AUDIT = "audit"
    SELF_CHECK = "self_check"


@dataclass(frozen=True)
class GpsPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class Resolution:
    width: int
    height: int


@dataclass(frozen=True)
class CameraInfo:
    """Camera/app identification. Informational only, never gated on."""
    make: Optional[str] = None
    model: Optional[str] = None
    software: Optional[str] = None


@dataclass(frozen=True)
class NormalizedMetadata:
    """Canonical, format-agnostic metadata record for one file."""
    kind: MediaKind = MediaKind.UNKNOWN
    gps: Optional[GpsPoint] = None
    timestamp: Optional[str] = None
    resolution: Optional[Resolution] = None
    orientation_code: Optional[int] = None
    orientation_label: Optional[str] = None
    duration_seconds: Optional[float] = None
    camera: Optional[CameraInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire form sent to the server and stored with the submission."""
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.kind == MediaKind.UNKNOWN:
            return data
        data["gps"] = {"lat": self.gps.lat, "lng": self.gps.lng} if self.gps else None
        data["timestamp"] = self.timestamp
        data["resolution"] = (
            {"width": self.resolution.width, "height": self.resolution.height}
            if self.resolution else None
        )
        data["orientationLabel"] = self.orientation_label
        if self.kind == MediaKind.IMAGE:
            data["orientationCode"] = self.orientation_code
            data["camera"] = (
                {
                    "make": self.camera.make,
                    "model": self.camera.model,
                    "software": self.camera.software,
                }
                if self.camera else None
            )
        if self.kind == MediaKind.VIDEO:
            data["durationSeconds"] = self.duration_seconds
        return data


@dataclass
class RuleVerdict:
    """Outcome of a single requirement rule."""
    status: RuleStatus
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class FileVerdict:
    """Result of evaluating one file's metadata against a requirement set."""
    normalized_metadata: NormalizedMetadata
    per_rule: Dict[str, RuleVerdict] = field(default_factory=dict)
    hard_failures: List[str] = field(default_factory=list)
    soft_failures: List[str] = field(default_factory=list)

    @property
    def hard_pass(self) -> bool:
        return not self.hard_failures

    def summary(self) -> Dict[str, Any]:
        """Validation summary carried in the submission payload."""
        return {
            "hardFailures": list(self.hard_failures),
            "softFailures": list(self.soft_failures),
            "hardPass": self.hard_pass,
            "perRule": {key: verdict.to_dict() for key, verdict in self.per_rule.items()},
        }


@dataclass
class MediaFile:
    """A raw file as selected by the uploader.

    Content comes either from ``path`` on disk or from in-memory ``data``.
    """
    name: str
    type: str
    size: int
    last_modified: float
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Path, media_type: Optional[str] = None) -> "MediaFile":
        path = Path(path)
        stat = path.stat()
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            type=media_type or guessed or "application/octet-stream",
            size=stat.st_size,
            last_modified=stat.st_mtime,
            path=path,
        )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        media_type: Optional[str] = None,
        last_modified: float = 0.0
    ) -> "MediaFile":
        guessed, _ = mimetypes.guess_type(name)
        return cls(
            name=name,
            type=media_type or guessed or "application/octet-stream",
            size=len(data),
            last_modified=last_modified,
            data=data,
        )

    @property
    def identity_key(self) -> str:
        """Composite key used to spot re-selection of an already queued file."""
        return f"{self.name}|{self.size}|{self.last_modified}"

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"No content available for {self.name}")
        return Path(self.path).read_bytes()

    def __repr__(self) -> str:
        return f"MediaFile(name={self.name!r}, type={self.type!r}, size={self.size})"


@dataclass
class PendingFile:
    """A queued file together with the verdict computed for it."""
    identity_key: str
    raw_file: MediaFile
    verdict: FileVerdict

    @property
    def hard_pass(self) -> bool:
        return self.verdict.hard_pass


@dataclass
class SubmitterIdentity:
    user_name: str
    user_email: str
    user_id: str


@dataclass
class SubmissionFile:
    filename: str
    type: str
    size: int
    metadata: Dict[str, Any]
    validation: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "type": self.type,
            "size": self.size,
            "metadata": self.metadata,
            "validation": self.validation,
        }


@dataclass(frozen=True)
class SubmissionPayload:
    """Wire record posted to the server. Built fresh for each submit attempt."""
    user_name: str
    user_email: str
    user_id: str
    files: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userName": self.user_name,
            "userEmail": self.user_email,
            "userId": self.user_id,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class ProjectConfig:
    """Per-project requirement configuration, owned by project management."""
    required_files: int = 1
    max_files: int = 1
    allowed_file_types: List[str] = field(default_factory=list)
    metadata_requirements: Dict[str, Any] = field(default_factory=dict)
    mode: ProjectMode = ProjectMode.AUDIT
    instructions: Optional[Dict[str, Any]] = None
    email_recipient: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProjectConfig":
        data = data if isinstance(data, dict) else {}
        try:
            mode = ProjectMode(data.get("mode") or "audit")
        except ValueError:
            mode = ProjectMode.AUDIT
        allowed = data.get("allowedFileTypes")
        requirements = data.get("metadataRequirements")
        recipient = data.get("emailRecipient")
        return cls(
            required_files=_to_int(data.get("requiredFiles")),
            max_files=_to_int(data.get("maxFiles")),
            allowed_file_types=list(allowed) if isinstance(allowed, list) else [],
            metadata_requirements=requirements if isinstance(requirements, dict) else {},
            mode=mode,
            instructions=data.get("instructions") if isinstance(data.get("instructions"), dict) else None,
            email_recipient=recipient.strip() if isinstance(recipient, str) and recipient.strip() else None,
        )

    def to_dict(self, include_email_recipient: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "requiredFiles": self.required_files,
            "maxFiles": self.max_files,
            "allowedFileTypes": list(self.allowed_file_types),
            "metadataRequirements": self.metadata_requirements,
            "mode": self.mode.value,
            "instructions": self.instructions,
        }
        if include_email_recipient:
            data["emailRecipient"] = self.email_recipient
        return data


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class Project:
    id: str
    name: str
    config: ProjectConfig
    active: bool = True

    def public_view(self) -> Dict[str, Any]:
        """Config exposed to uploaders. Never includes the mail recipient."""
        view = {"id": self.id, "name": self.name}
        view.update(self.config.to_dict(include_email_recipient=False))
        return view


@dataclass
class SubmissionRecord:
    """Shape of the record handed to the submission store."""
    project_id: str
    project_name: str
    user_name: str
    user_email: str
    user_id: str
    submitted_at: str
    files: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "userName": self.user_name,
            "userEmail": self.user_email,
            "userId": self.user_id,
            "submittedAt": self.submitted_at,
            "files": self.files,
        }


@dataclass
class AdmissionResult:
    success: bool
    submission_id: Optional[str] = None
    email_sent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "submissionId": self.submission_id,
            "emailSent": self.email_sent,
        }
