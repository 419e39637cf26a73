from __future__ import annotations

import html
import re
from typing import Any, Iterable, Mapping

from ..core.constants import NAME_MAX_LENGTH, NAME_MIN_LENGTH, PASSWORD_MIN_LENGTH
from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$")


def sanitize_input(value: Any) -> Any:
    """Trim and HTML-escape user supplied text (lists/dicts are handled recursively)."""
    if isinstance(value, list):
        return [sanitize_input(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_input(v) for k, v in value.items()}
    if value is None:
        return None
    return html.escape(str(value).strip(), quote=True)


def missing_fields(data: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    missing: list[str] = []
    for field in required:
        value = data.get(field)
        if value is None or not str(value).strip():
            missing.append(field)
    return missing


def require_fields(data: Mapping[str, Any], required: Iterable[str]) -> None:
    missing = missing_fields(data, required)
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing), "MISSING_FIELDS")


def validate_email(email: str) -> bool:
    return bool(email) and len(email) <= 254 and _EMAIL_RE.match(email) is not None


def validate_length(value: str, min_len: int = 0, max_len: int = 255) -> bool:
    length = len((value or "").strip())
    return min_len <= length <= max_len


def validate_password(password: str) -> bool:
    """At least 8 characters with one letter and one digit."""
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return False
    return re.search(r"[A-Za-z]", password) is not None and re.search(r"[0-9]", password) is not None


def require_name(value: str, *, error_code: str = "INVALID_NAME", label: str = "Name") -> str:
    if not validate_length(value, NAME_MIN_LENGTH, NAME_MAX_LENGTH):
        raise ValidationError(
            f"{label} must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters.",
            error_code,
        )
    return value


def require_email(value: str) -> str:
    if not validate_email(value):
        raise ValidationError("Invalid email format.", "INVALID_EMAIL")
    return value


def require_password(value: str) -> str:
    if not validate_password(value):
        raise ValidationError(
            "Password must be at least 8 characters long and contain both letters and numbers.",
            "INVALID_PASSWORD",
        )
    return value


def require_positive_id(value: Any, *, error_code: str, label: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}.", error_code)
    if parsed <= 0:
        raise ValidationError(f"Invalid {label}.", error_code)
    return parsed
