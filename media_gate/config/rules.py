"""Rule keys, EXIF tag allow-list and payload ceilings."""
from typing import Dict, Tuple


# Requirement rule keys understood by the metadata validator
RULE_GPS = "gps"
RULE_TIMESTAMP = "timestamp"
RULE_RESOLUTION = "resolution"
RULE_ORIENTATION = "orientation"
RULE_CAMERA_APP = "cameraApp"

FAILURE_MODE_HARD = "hard"
FAILURE_MODE_SOFT = "soft"

# Orientation labels that an orientation rule can actually enforce
ENFORCEABLE_ORIENTATIONS = ("portrait", "landscape")

# EXIF tag ids (TIFF/EXIF 2.3)
TAG_MAKE = 0x010F
TAG_MODEL = 0x0110
TAG_SOFTWARE = 0x0131
TAG_ORIENTATION = 0x0112
TAG_DATETIME = 0x0132
TAG_IMAGE_WIDTH = 0x0100
TAG_IMAGE_LENGTH = 0x0101
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004
TAG_PIXEL_X_DIMENSION = 0xA002
TAG_PIXEL_Y_DIMENSION = 0xA003

IFD_EXIF = 0x8769
IFD_GPS = 0x8825

GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4

# Tags read from IFD0 / Exif IFD. Anything not listed (maker notes,
# thumbnails, serial numbers) is never read.
IFD0_TAG_ALLOWLIST: Tuple[int, ...] = (
    TAG_MAKE,
    TAG_MODEL,
    TAG_SOFTWARE,
    TAG_ORIENTATION,
    TAG_DATETIME,
    TAG_IMAGE_WIDTH,
    TAG_IMAGE_LENGTH,
)

EXIF_TAG_ALLOWLIST: Tuple[int, ...] = (
    TAG_DATETIME_ORIGINAL,
    TAG_DATETIME_DIGITIZED,
    TAG_PIXEL_X_DIMENSION,
    TAG_PIXEL_Y_DIMENSION,
)

GPS_TAG_ALLOWLIST: Tuple[int, ...] = (
    GPS_LATITUDE_REF,
    GPS_LATITUDE,
    GPS_LONGITUDE_REF,
    GPS_LONGITUDE,
)

# Capture-original -> create -> modify; first present wins
TIMESTAMP_CANDIDATE_TAGS: Tuple[int, ...] = (
    TAG_DATETIME_ORIGINAL,
    TAG_DATETIME_DIGITIZED,
    TAG_DATETIME,
)

# EXIF orientation codes that transpose width and height
TRANSPOSING_ORIENTATION_CODES = frozenset({5, 6, 7, 8})

# Payload ceilings (bytes)
DEFAULT_MAX_PAYLOAD_BYTES = 256 * 1024
DEFAULT_MAX_METADATA_BYTES_PER_FILE = 64 * 1024

# Human readable labels for rule keys (used in CLI output and mails)
RULE_LABELS: Dict[str, str] = {
    RULE_GPS: "GPS location",
    RULE_TIMESTAMP: "Capture timestamp",
    RULE_RESOLUTION: "Resolution",
    RULE_ORIENTATION: "Orientation",
    RULE_CAMERA_APP: "Camera app",
}


def get_rule_label(rule_key: str) -> str:
    """Get a display label for a rule key."""
    return RULE_LABELS.get(rule_key, rule_key)
