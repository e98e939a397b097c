"""Authoritative server-side checks for incoming submission payloads.

Nothing the client computed is trusted here: counts and limits come from
the stored project config, and client verdicts are only carried along for
audit.
"""
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List

from media_gate.errors import AdmissionError, MetadataTooLarge
from media_gate.types import ProjectConfig
from media_gate.validators.identity import is_valid_email, is_valid_user_id, normalize_string

logger = logging.getLogger(__name__)


@dataclass
class ValidatedSubmission:
    user_name: str
    user_email: str
    user_id: str
    files: List[Dict[str, Any]]


def _integral_floats_as_ints(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {key: _integral_floats_as_ints(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_integral_floats_as_ints(item) for item in value]
    return value


def metadata_byte_size(metadata: Any, field: str = "metadata") -> int:
    """UTF-8 size of the compact JSON serialization of a metadata object.

    Integral floats are written without a fractional part (``51`` rather than
    ``51.0``), as JavaScript clients serialize them.
    Floats of 1e21 and above keep Python's exponent form (``1e+21``), one
    byte longer than ``1e21``.
    """
    try:
        text = json.dumps(
            _integral_floats_as_ints(metadata),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError) as e:
        raise AdmissionError("File metadata is not serializable JSON", field=field) from e
    return len(text.encode("utf-8"))


def validate_identity(body: Dict[str, Any]) -> ValidatedSubmission:
    user_name = normalize_string(body.get("userName"))
    user_email = normalize_string(body.get("userEmail"))
    user_id = normalize_string(body.get("userId"))
    files = body.get("files")

    if not user_name:
        raise AdmissionError("Name, email, and user ID are required", field="userName")
    if not user_email:
        raise AdmissionError("Name, email, and user ID are required", field="userEmail")
    if not user_id:
        raise AdmissionError("Name, email, and user ID are required", field="userId")
    if not is_valid_email(user_email):
        raise AdmissionError("Invalid email format", field="userEmail")
    if not is_valid_user_id(user_id):
        raise AdmissionError("User ID must contain only numbers", field="userId")
    if not isinstance(files, list) or len(files) == 0:
        raise AdmissionError("At least one file is required", field="files")

    return ValidatedSubmission(user_name=user_name, user_email=user_email, user_id=user_id, files=files)


def validate_file_count(count: int, config: ProjectConfig):
    if config.required_files > 0 and count < config.required_files:
        raise AdmissionError(f"At least {config.required_files} files are required", field="files")
    if config.max_files > 0 and count > config.max_files:
        raise AdmissionError(f"Maximum {config.max_files} files allowed", field="files")


def validate_file_entry(entry: Any, index: int, config: ProjectConfig, max_metadata_bytes: int):
    prefix = f"files[{index}]"

    if not isinstance(entry, dict):
        raise AdmissionError("Invalid file entry", field=prefix)

    filename = entry.get("filename")
    if not isinstance(filename, str) or not filename:
        raise AdmissionError("File filename is required", field=f"{prefix}.filename")

    media_type = entry.get("type")
    if not isinstance(media_type, str) or not media_type:
        raise AdmissionError("File type is required", field=f"{prefix}.type")
    if config.allowed_file_types and media_type not in config.allowed_file_types:
        raise AdmissionError(f"File type not allowed: {media_type}", field=f"{prefix}.type")

    size = entry.get("size")
    if (
        not isinstance(size, (int, float))
        or isinstance(size, bool)
        or not math.isfinite(size)
        or size < 0
    ):
        raise AdmissionError("File size must be a non-negative number", field=f"{prefix}.size")

    metadata = entry.get("metadata")
    if not isinstance(metadata, dict):
        raise AdmissionError("File metadata must be an object", field=f"{prefix}.metadata")
    if not isinstance(entry.get("validation"), dict):
        raise AdmissionError("File validation must be an object", field=f"{prefix}.validation")

    byte_count = metadata_byte_size(metadata, field=f"{prefix}.metadata")
    if byte_count > max_metadata_bytes:
        logger.warning(f"  FAIL: {prefix} metadata is {byte_count} bytes (limit {max_metadata_bytes})")
        raise MetadataTooLarge(byte_count, index)


def validate_submission_payload(
    body: Any,
    config: ProjectConfig,
    max_metadata_bytes: int
) -> ValidatedSubmission:
    """
    Validate a parsed submission body against the stored project config.

    Checks run in order: identity fields, file count bounds, then each file
    entry. The first violation raises an ``AdmissionError`` naming the field.
    """
    if not isinstance(body, dict):
        raise AdmissionError("Invalid JSON body")

    submission = validate_identity(body)
    validate_file_count(len(submission.files), config)
    for index, entry in enumerate(submission.files):
        validate_file_entry(entry, index, config, max_metadata_bytes)

    logger.info(f"Payload accepted: {len(submission.files)} file(s) from user {submission.user_id}")
    return submission
