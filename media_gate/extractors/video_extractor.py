"""Video container metadata via ffprobe.

Only container-level facts are read: pixel size of the first video stream
and the container duration. No codec-level or tag extraction.
"""
import json
import logging
import math
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from media_gate.config.settings import get_settings
from media_gate.extractors.orientation import orientation_label
from media_gate.types import MediaFile, MediaKind, NormalizedMetadata, Resolution

logger = logging.getLogger(__name__)


def _positive_number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def run_ffprobe(path: Path, ffprobe_path: Optional[str] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
    """Run ffprobe and return its parsed JSON report."""
    settings = get_settings()
    command = [
        ffprobe_path or settings.ffprobe_path,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height:format=duration",
        "-of", "json",
        str(path),
    ]
    completed = subprocess.run(
        command,
        capture_output=True,
        text=True,
        timeout=timeout or settings.ffprobe_timeout,
        check=True,
    )
    return json.loads(completed.stdout or "{}")


def parse_probe_report(report: Dict[str, Any]) -> NormalizedMetadata:
    """Turn an ffprobe report into a normalized video record."""
    streams = report.get("streams") or []
    stream = streams[0] if streams and isinstance(streams[0], dict) else {}
    fmt = report.get("format") or {}

    width = _positive_number(stream.get("width"))
    height = _positive_number(stream.get("height"))
    duration = _positive_number(fmt.get("duration"))

    resolution = None
    label = None
    if width is not None and height is not None:
        resolution = Resolution(width=int(width), height=int(height))
        label = orientation_label(resolution.width, resolution.height)

    return NormalizedMetadata(
        kind=MediaKind.VIDEO,
        resolution=resolution,
        orientation_label=label,
        duration_seconds=duration,
    )


def extract_video_metadata(media_file: MediaFile) -> NormalizedMetadata:
    """Extract normalized metadata from a video file.

    In-memory files are spooled to a temporary file for ffprobe. Raises on
    failure; the dispatcher turns that into an unknown record.
    """
    if media_file.path is not None:
        report = run_ffprobe(Path(media_file.path))
    else:
        suffix = Path(media_file.name).suffix
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as temp_file:
            temp_file.write(media_file.read_bytes())
            temp_path = temp_file.name
        try:
            report = run_ffprobe(Path(temp_path))
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

    metadata = parse_probe_report(report)
    logger.debug(
        f"Video metadata for {media_file.name}: resolution={metadata.resolution}, "
        f"duration={metadata.duration_seconds}"
    )
    return metadata
