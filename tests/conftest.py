import io
from pathlib import Path

import pytest
from PIL import Image

from media_gate.config.settings import reset_settings
from media_gate.types import (
    GpsPoint,
    MediaKind,
    NormalizedMetadata,
    Project,
    ProjectConfig,
    ProjectMode,
    Resolution,
)

ENV_KEYS = [
    "MAX_PAYLOAD_BYTES",
    "MAX_METADATA_BYTES_PER_FILE",
    "PROJECTS_FILE",
    "SUBMISSIONS_FILE",
    "RESEND_API_KEY",
    "RESEND_FROM",
    "RESEND_API_URL",
    "DEFAULT_MAX_WORKERS",
    "FFPROBE_PATH",
    "FFPROBE_TIMEOUT",
]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    # A developer's .env must not leak into tests
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


def make_jpeg_bytes(size=(400, 300), orientation=None, gps=None, datetime_original=None,
                    datetime_modified=None, make=None, software=None) -> bytes:
    """Build a small JPEG with the requested EXIF tags."""
    exif = Image.Exif()
    if orientation is not None:
        exif[0x0112] = orientation
    if make is not None:
        exif[0x010F] = make
    if software is not None:
        exif[0x0131] = software
    if datetime_modified is not None:
        exif[0x0132] = datetime_modified
    if datetime_original is not None:
        exif[0x8769] = {0x9003: datetime_original}
    if gps is not None:
        lat, lat_ref, lng, lng_ref = gps
        exif[0x8825] = {1: lat_ref, 2: lat, 3: lng_ref, 4: lng}

    buffer = io.BytesIO()
    Image.new("RGB", size, color=(120, 140, 160)).save(buffer, "JPEG", exif=exif.tobytes())
    return buffer.getvalue()


@pytest.fixture
def jpeg_factory():
    return make_jpeg_bytes


@pytest.fixture
def requirements():
    return {
        "gps": {"required": True, "failureMode": "hard", "description": "Location on"},
        "timestamp": {"required": True, "failureMode": "soft", "description": "Capture time"},
        "resolution": {"required": True, "minLongEdge": 800, "minShortEdge": 600},
        "cameraApp": {"required": True, "description": "Native camera app"},
    }


@pytest.fixture
def project_factory(requirements):
    def _make(project_id="proj-1", required_files=2, max_files=3, mode=ProjectMode.AUDIT,
              allowed_file_types=None, metadata_requirements=None, active=True, email_recipient=None):
        return Project(
            id=project_id,
            name="Site Survey",
            active=active,
            config=ProjectConfig(
                required_files=required_files,
                max_files=max_files,
                allowed_file_types=allowed_file_types if allowed_file_types is not None else ["image/jpeg"],
                metadata_requirements=metadata_requirements if metadata_requirements is not None else requirements,
                mode=mode,
                email_recipient=email_recipient,
            ),
        )
    return _make


@pytest.fixture
def good_metadata():
    return NormalizedMetadata(
        kind=MediaKind.IMAGE,
        gps=GpsPoint(lat=51.5, lng=-0.12),
        timestamp="2024-01-01T00:00:00.000Z",
        resolution=Resolution(width=1600, height=1200),
        orientation_code=1,
        orientation_label="landscape",
    )


@pytest.fixture
def tmp_media_dir(tmp_path: Path) -> Path:
    media = tmp_path / "media"
    media.mkdir()
    return media
