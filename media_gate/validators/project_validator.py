"""Structural validation of project definitions."""
import logging
from typing import Any, Dict, List

from media_gate.config.rules import FAILURE_MODE_HARD, FAILURE_MODE_SOFT
from media_gate.types import ProjectMode

logger = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_project_config(config: Any) -> List[str]:
    """Return a list of problems with a project config (empty when valid)."""
    if not isinstance(config, dict):
        return ["config is required"]

    errors = []

    mode = config.get("mode")
    if mode is not None and mode not in (ProjectMode.AUDIT.value, ProjectMode.SELF_CHECK.value):
        errors.append("config.mode must be audit|self_check if provided")

    required_files = config.get("requiredFiles")
    max_files = config.get("maxFiles")
    if not _is_int(required_files) or required_files < 1:
        errors.append("config.requiredFiles must be an integer >= 1")
    if not _is_int(max_files) or (_is_int(required_files) and max_files < required_files):
        errors.append("config.maxFiles must be an integer >= requiredFiles")

    allowed = config.get("allowedFileTypes")
    if not isinstance(allowed, list) or any(not isinstance(t, str) for t in allowed):
        errors.append("config.allowedFileTypes must be an array of strings")

    requirements = config.get("metadataRequirements")
    if not isinstance(requirements, dict):
        errors.append("config.metadataRequirements must be an object")
    else:
        for key, rule in requirements.items():
            if not isinstance(rule, dict):
                errors.append(f"config.metadataRequirements.{key} must be an object")
                continue
            if not isinstance(rule.get("required"), bool):
                errors.append(f"config.metadataRequirements.{key}.required must be boolean")
            failure_mode = rule.get("failureMode")
            if failure_mode and failure_mode not in (FAILURE_MODE_HARD, FAILURE_MODE_SOFT):
                errors.append(f"config.metadataRequirements.{key}.failureMode must be hard|soft")

    instructions = config.get("instructions")
    if instructions and not isinstance(instructions, dict):
        errors.append("config.instructions must be an object if provided")

    recipient = config.get("emailRecipient")
    if recipient and not isinstance(recipient, str):
        errors.append("config.emailRecipient must be a string if provided")

    return errors


def validate_project_definition(body: Any) -> List[str]:
    """Validate a full project definition: ``{id, name, active?, config}``."""
    if not isinstance(body, dict):
        return ["Body must be JSON object"]

    errors = []
    name = body.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("name is required")

    active = body.get("active")
    if active is not None and not isinstance(active, bool):
        errors.append("active must be boolean if provided")

    errors.extend(validate_project_config(body.get("config")))
    return errors
