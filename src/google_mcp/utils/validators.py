"""Input validation for tool arguments.

Every validator raises a ``ValidationError`` kind ``GoogleMCPError`` so bad
input is rejected before any Google API call is made.
"""

import math
import re
from datetime import datetime
from typing import Any, TypeVar

from google_mcp.errors import create_validation_error

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Drive file and document IDs are alphanumeric with hyphens and underscores
FILE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_required(value: T | None, name: str) -> T:
    if value is None:
        raise create_validation_error(f"{name} is required")
    return value


def validate_string(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise create_validation_error(f"{name} must be a non-empty string")
    return value


def validate_number(
    value: Any,
    name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> int | float:
    """Validate a numeric argument, optionally within inclusive bounds."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise create_validation_error(f"{name} must be a number")
    if min_value is not None and value < min_value:
        raise create_validation_error(f"{name} must be at least {min_value}")
    if max_value is not None and value > max_value:
        raise create_validation_error(f"{name} must be at most {max_value}")
    return value


def validate_email(email: Any) -> str:
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email):
        raise create_validation_error(f"Invalid email address: {email}")
    return email


def validate_enum(value: Any, name: str, allowed_values: tuple[str, ...]) -> str:
    if value not in allowed_values:
        raise create_validation_error(f"{name} must be one of: {', '.join(allowed_values)}")
    return value


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 string, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def validate_datetime(value: Any, name: str) -> str:
    """Validate an ISO 8601 date/time string and return it unchanged."""
    if not isinstance(value, str):
        raise create_validation_error(f"{name} must be a valid ISO 8601 date/time string")
    try:
        parse_datetime(value)
    except ValueError:
        raise create_validation_error(
            f"{name} must be a valid ISO 8601 date/time string"
        ) from None
    return value


def validate_file_id(file_id: Any, name: str = "fileId") -> str:
    validate_string(file_id, name)
    if not FILE_ID_PATTERN.match(file_id):
        raise create_validation_error(f"{name} contains invalid characters")
    return file_id


def validate_document_id(document_id: Any) -> str:
    return validate_file_id(document_id, "documentId")


def validate_calendar_id(calendar_id: Any) -> str:
    """Validate a calendar ID: ``primary``, an email address, or an opaque ID."""
    validate_string(calendar_id, "calendarId")
    if calendar_id == "primary":
        return calendar_id
    if "@" in calendar_id:
        return validate_email(calendar_id)
    return calendar_id
