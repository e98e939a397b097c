"""Type dispatch from a raw file to the matching metadata reader."""
import logging
import subprocess

from media_gate.extractors.image_extractor import extract_image_metadata
from media_gate.extractors.video_extractor import extract_video_metadata
from media_gate.types import MediaFile, MediaKind, NormalizedMetadata

logger = logging.getLogger(__name__)


def extract_metadata(media_file: MediaFile) -> NormalizedMetadata:
    """
    Extract a normalized metadata record from a raw file.

    Never raises. Unsupported media types and unreadable files produce a
    record of kind ``unknown``; the absence of metadata is something the
    rule evaluator judges, not an error.
    """
    media_type = (media_file.type or "").lower()

    try:
        if media_type.startswith("image/"):
            return extract_image_metadata(media_file)
        if media_type.startswith("video/"):
            return extract_video_metadata(media_file)
    except subprocess.TimeoutExpired:
        logger.warning(f"Metadata probe timed out for {media_file.name}")
    except Exception as e:
        logger.warning(f"Error extracting metadata from {media_file.name}: {e}")
    else:
        logger.info(f"Unsupported media type for {media_file.name}: {media_file.type!r}")

    return NormalizedMetadata(kind=MediaKind.UNKNOWN)
