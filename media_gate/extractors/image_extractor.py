"""Image metadata extraction from an explicit EXIF tag allow-list."""
import io
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from PIL import Image
from pillow_heif import register_heif_opener

from media_gate.config.rules import (
    TAG_MAKE,
    TAG_MODEL,
    TAG_SOFTWARE,
    TAG_ORIENTATION,
    TAG_IMAGE_WIDTH,
    TAG_IMAGE_LENGTH,
    TAG_PIXEL_X_DIMENSION,
    TAG_PIXEL_Y_DIMENSION,
    IFD_EXIF,
    IFD_GPS,
    IFD0_TAG_ALLOWLIST,
    EXIF_TAG_ALLOWLIST,
    GPS_TAG_ALLOWLIST,
    GPS_LATITUDE,
    GPS_LATITUDE_REF,
    GPS_LONGITUDE,
    GPS_LONGITUDE_REF,
    TIMESTAMP_CANDIDATE_TAGS,
)
from media_gate.extractors.orientation import apply_orientation, orientation_label
from media_gate.types import (
    CameraInfo,
    GpsPoint,
    MediaFile,
    MediaKind,
    NormalizedMetadata,
    Resolution,
)

# HEIC/HEIF support (phones commonly produce these)
register_heif_opener()

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def _clean_string(value: Any) -> Optional[str]:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if not isinstance(value, str):
        return None
    value = value.replace("\x00", "").strip()
    return value or None


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return int(number)


def _to_degrees(value: Any) -> Optional[float]:
    """Convert an EXIF GPS coordinate (DMS rationals or plain number) to degrees."""
    try:
        if isinstance(value, (tuple, list)):
            if len(value) != 3:
                return None
            d, m, s = (float(part) for part in value)
            degrees = d + (m / 60.0) + (s / 3600.0)
        else:
            degrees = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return degrees if math.isfinite(degrees) else None


def _is_negative_ref(ref: Any, negative: str) -> bool:
    ref = _clean_string(ref)
    return bool(ref) and ref.upper().startswith(negative)


def parse_exif_datetime(value: Any) -> Optional[str]:
    """Parse an EXIF or ISO-8601 date string into an ISO-8601 UTC instant.

    Returns None for missing, malformed or impossible dates. Times without
    a zone are taken as UTC.
    """
    text = _clean_string(value)
    if not text:
        return None

    parsed = None
    try:
        parsed = datetime.strptime(text[:19], EXIF_DATETIME_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def read_allowed_tags(img: Image.Image) -> Tuple[Dict[int, Any], Dict[int, Any], Dict[int, Any]]:
    """Read only the allow-listed tags from IFD0, the Exif IFD and the GPS IFD."""
    exif = img.getexif()
    if not exif:
        return {}, {}, {}

    ifd0 = {tag: exif.get(tag) for tag in IFD0_TAG_ALLOWLIST if exif.get(tag) is not None}

    exif_ifd = exif.get_ifd(IFD_EXIF) or {}
    sub = {tag: exif_ifd.get(tag) for tag in EXIF_TAG_ALLOWLIST if exif_ifd.get(tag) is not None}

    gps_ifd = exif.get_ifd(IFD_GPS) or {}
    gps = {tag: gps_ifd.get(tag) for tag in GPS_TAG_ALLOWLIST if gps_ifd.get(tag) is not None}

    return ifd0, sub, gps


def extract_gps(gps_tags: Dict[int, Any]) -> Optional[GpsPoint]:
    lat = _to_degrees(gps_tags.get(GPS_LATITUDE))
    lng = _to_degrees(gps_tags.get(GPS_LONGITUDE))
    if lat is None or lng is None:
        return None
    if _is_negative_ref(gps_tags.get(GPS_LATITUDE_REF), "S"):
        lat = -lat
    if _is_negative_ref(gps_tags.get(GPS_LONGITUDE_REF), "W"):
        lng = -lng
    return GpsPoint(lat=lat, lng=lng)


def pick_timestamp(tags: Dict[int, Any]) -> Optional[str]:
    """First present candidate tag wins; an invalid winner means no timestamp."""
    for tag in TIMESTAMP_CANDIDATE_TAGS:
        value = tags.get(tag)
        if value:
            return parse_exif_datetime(value)
    return None


def extract_image_metadata(media_file: MediaFile) -> NormalizedMetadata:
    """Extract normalized metadata from an image file.

    Raises on unreadable input; the dispatcher turns that into an unknown record.
    """
    source = media_file.path if media_file.path is not None else io.BytesIO(media_file.read_bytes())

    with Image.open(source) as img:
        ifd0, sub, gps_tags = read_allowed_tags(img)
        decoded_size = img.size

    tags = {**ifd0, **sub}

    raw_width = _positive_int(tags.get(TAG_IMAGE_WIDTH)) or _positive_int(tags.get(TAG_PIXEL_X_DIMENSION))
    raw_height = _positive_int(tags.get(TAG_IMAGE_LENGTH)) or _positive_int(tags.get(TAG_PIXEL_Y_DIMENSION))
    if raw_width is None or raw_height is None:
        raw_width, raw_height = _positive_int(decoded_size[0]), _positive_int(decoded_size[1])

    orientation_code = tags.get(TAG_ORIENTATION)
    if not isinstance(orientation_code, int) or not 1 <= orientation_code <= 8:
        orientation_code = None

    resolution = None
    label = None
    if raw_width is not None and raw_height is not None:
        width, height = apply_orientation(raw_width, raw_height, orientation_code)
        resolution = Resolution(width=width, height=height)
        label = orientation_label(width, height)

    metadata = NormalizedMetadata(
        kind=MediaKind.IMAGE,
        gps=extract_gps(gps_tags),
        timestamp=pick_timestamp(tags),
        resolution=resolution,
        orientation_code=orientation_code,
        orientation_label=label,
        camera=CameraInfo(
            make=_clean_string(tags.get(TAG_MAKE)),
            model=_clean_string(tags.get(TAG_MODEL)),
            software=_clean_string(tags.get(TAG_SOFTWARE)),
        ),
    )
    logger.debug(
        f"Image metadata for {media_file.name}: gps={'yes' if metadata.gps else 'no'}, "
        f"timestamp={metadata.timestamp}, resolution={resolution}, orientation={label}"
    )
    return metadata
