"""Submitter identity format checks shared by the client and server gates."""
import re
from typing import Any

# local@domain.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USER_ID_PATTERN = re.compile(r"^[0-9]+$")


def normalize_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def is_valid_email(email: Any) -> bool:
    if not isinstance(email, str):
        return False
    return EMAIL_PATTERN.match(email.strip()) is not None


def is_valid_user_id(user_id: Any) -> bool:
    if not isinstance(user_id, str):
        return False
    return USER_ID_PATTERN.fullmatch(user_id.strip()) is not None
