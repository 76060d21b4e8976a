"""Shared validation utilities"""

import re
import uuid
from datetime import date
from typing import Optional
from urllib.parse import urlparse

from ..domain.scheduling.block_calendar import canonical_day_name
from ..domain.scheduling.time_utils import normalize_time, parse_session_date, parse_time_string


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_day_of_week(day: str) -> str:
    """Canonical weekday name ("monday" -> "Monday")"""
    return canonical_day_name(day)


def validate_start_time(value: str) -> str:
    """Accept 24h or am/pm input and store HH:MM"""
    if parse_time_string(value) is None:
        raise ValueError("Start time must look like 17:00 or 5:00pm")
    return normalize_time(value)


def validate_session_date(value) -> Optional[date]:
    """A YYYY-MM-DD calendar date, or None for a pending instance"""
    if value is None or value == "":
        return None
    parsed = parse_session_date(value)
    if parsed is None:
        raise ValueError("Session date must be a YYYY-MM-DD calendar date")
    return parsed


def validate_classroom_url(url: Optional[str]) -> Optional[str]:
    """
    Validate a live classroom link.

    Blank input clears the link (returns None). Anything else must be an
    absolute http(s) URL.
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Classroom URL must be a full http(s) link")

    return url
