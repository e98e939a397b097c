"""Requirement rule evaluation for normalized metadata."""
import logging
import math
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from media_gate.config.rules import (
    RULE_GPS,
    RULE_TIMESTAMP,
    RULE_RESOLUTION,
    RULE_ORIENTATION,
    RULE_CAMERA_APP,
    FAILURE_MODE_SOFT,
    ENFORCEABLE_ORIENTATIONS,
)
from media_gate.types import FileVerdict, NormalizedMetadata, RuleStatus, RuleVerdict

logger = logging.getLogger(__name__)

# (passed, message)
RuleOutcome = Tuple[bool, Optional[str]]
RuleCheck = Callable[[NormalizedMetadata, Mapping[str, Any]], RuleOutcome]


def _number(value: Any) -> float:
    """Coerce a rule parameter to a number; missing or malformed means 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def check_gps(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    gps = metadata.gps
    if gps is None:
        return False, "GPS coordinates not detected"
    if not (math.isfinite(gps.lat) and math.isfinite(gps.lng)):
        return False, "GPS coordinates are not valid numbers"
    return True, None


def check_timestamp(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    if not metadata.timestamp:
        return False, "Capture timestamp not detected"
    return True, None


def check_resolution(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    """Long/short edge limits are preferred and orientation-agnostic."""
    resolution = metadata.resolution
    if resolution is None:
        return False, "Resolution not detected"

    width, height = resolution.width, resolution.height
    if rule.get("minLongEdge") or rule.get("minShortEdge"):
        min_long = _number(rule.get("minLongEdge"))
        min_short = _number(rule.get("minShortEdge"))
        ok = max(width, height) >= min_long and min(width, height) >= min_short
        if ok:
            return True, None
        return False, (
            f"Need long edge ≥ {_fmt(min_long)} and short edge ≥ {_fmt(min_short)}. "
            f"Detected {width}×{height}."
        )

    min_width = _number(rule.get("minWidth"))
    min_height = _number(rule.get("minHeight"))
    if width >= min_width and height >= min_height:
        return True, None
    return False, f"Need at least {_fmt(min_width)}×{_fmt(min_height)}. Detected {width}×{height}."


def check_orientation(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    label = metadata.orientation_label
    if not label:
        return False, "Orientation not detected"
    expected = rule.get("value")
    if expected not in ENFORCEABLE_ORIENTATIONS:
        return True, None
    if label == expected:
        return True, None
    return False, f"Expected {expected}. Detected {label}."


def check_camera_app(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    # Informational only; never fails
    return True, None


def check_unrecognized(metadata: NormalizedMetadata, rule: Mapping[str, Any]) -> RuleOutcome:
    return True, None


RULE_CHECKS: Dict[str, RuleCheck] = {
    RULE_GPS: check_gps,
    RULE_TIMESTAMP: check_timestamp,
    RULE_RESOLUTION: check_resolution,
    RULE_ORIENTATION: check_orientation,
    RULE_CAMERA_APP: check_camera_app,
}


def get_rule_check(rule_key: str) -> RuleCheck:
    """Look up the check for a rule key. Unknown keys always pass."""
    return RULE_CHECKS.get(rule_key, check_unrecognized)


def evaluate_metadata(
    metadata: NormalizedMetadata,
    requirements: Optional[Mapping[str, Any]]
) -> FileVerdict:
    """
    Evaluate a metadata record against a requirement set.

    Only rules with ``required`` set are checked. A failing rule lands in
    ``hard_failures`` unless its ``failureMode`` is ``soft``. Never raises.
    """
    verdict = FileVerdict(normalized_metadata=metadata)

    for rule_key, rule in (requirements or {}).items():
        if not isinstance(rule, Mapping) or not rule.get("required"):
            continue

        soft = rule.get("failureMode") == FAILURE_MODE_SOFT
        check = get_rule_check(rule_key)
        try:
            passed, message = check(metadata, rule)
        except Exception as e:
            logger.error(f"Rule check {rule_key!r} raised: {e}", exc_info=True)
            passed, message = False, "Rule could not be evaluated"

        if passed:
            verdict.per_rule[rule_key] = RuleVerdict(status=RuleStatus.PASS)
            logger.debug(f"  PASS: {rule_key}")
        elif soft:
            verdict.per_rule[rule_key] = RuleVerdict(status=RuleStatus.SOFT_FAIL, message=message)
            verdict.soft_failures.append(rule_key)
            logger.debug(f"  SOFT FAIL: {rule_key} | {message}")
        else:
            verdict.per_rule[rule_key] = RuleVerdict(status=RuleStatus.FAIL, message=message)
            verdict.hard_failures.append(rule_key)
            logger.debug(f"  FAIL: {rule_key} | {message}")

    return verdict
