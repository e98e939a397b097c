"""Environment-driven settings."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from media_gate.config.rules import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    DEFAULT_MAX_METADATA_BYTES_PER_FILE,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class GateSettings:
    """Runtime configuration for the gate, API and CLI."""
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    max_metadata_bytes_per_file: int = DEFAULT_MAX_METADATA_BYTES_PER_FILE
    projects_file: Optional[Path] = None
    submissions_file: Optional[Path] = None
    resend_api_key: Optional[str] = None
    resend_from: str = "Media Verification <noreply@example.com>"
    resend_api_url: str = "https://api.resend.com/emails"
    max_workers: int = 4
    ffprobe_path: str = "ffprobe"
    ffprobe_timeout: float = 15.0
    log_level: str = "INFO"


_settings: Optional[GateSettings] = None


def load_settings() -> GateSettings:
    """Build settings from the current environment."""
    projects_file = os.getenv('PROJECTS_FILE')
    submissions_file = os.getenv('SUBMISSIONS_FILE')
    return GateSettings(
        max_payload_bytes=int(os.getenv('MAX_PAYLOAD_BYTES', str(DEFAULT_MAX_PAYLOAD_BYTES))),
        max_metadata_bytes_per_file=int(
            os.getenv('MAX_METADATA_BYTES_PER_FILE', str(DEFAULT_MAX_METADATA_BYTES_PER_FILE))
        ),
        projects_file=Path(projects_file) if projects_file else None,
        submissions_file=Path(submissions_file) if submissions_file else None,
        resend_api_key=os.getenv('RESEND_API_KEY') or None,
        resend_from=os.getenv('RESEND_FROM', 'Media Verification <noreply@example.com>'),
        resend_api_url=os.getenv('RESEND_API_URL', 'https://api.resend.com/emails'),
        max_workers=int(os.getenv('DEFAULT_MAX_WORKERS', '4')),
        ffprobe_path=os.getenv('FFPROBE_PATH', 'ffprobe'),
        ffprobe_timeout=float(os.getenv('FFPROBE_TIMEOUT', '15')),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
    )


def get_settings() -> GateSettings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = load_settings()
        logger.debug(f"Settings loaded: payload ceiling {_settings.max_payload_bytes} bytes, "
                     f"metadata ceiling {_settings.max_metadata_bytes_per_file} bytes/file")
    return _settings


def reset_settings():
    """Drop cached settings (for testing)."""
    global _settings
    _settings = None
