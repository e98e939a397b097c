"""Orientation helpers. Pure functions, no I/O."""
from typing import Optional, Tuple

from media_gate.config.rules import TRANSPOSING_ORIENTATION_CODES


def apply_orientation(width: int, height: int, orientation_code: Optional[int]) -> Tuple[int, int]:
    """Return displayed (width, height) for raw sensor dimensions.

    EXIF orientations 5-8 rotate by 90 degrees (with or without mirroring),
    so the displayed image has its axes transposed.
    """
    if orientation_code in TRANSPOSING_ORIENTATION_CODES:
        return height, width
    return width, height


def orientation_label(width: int, height: int) -> str:
    if height > width:
        return "portrait"
    if width > height:
        return "landscape"
    return "square"
