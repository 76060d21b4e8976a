"""Schedule parsing and formatting helpers.

All times are venue-local wall-clock values. Nothing here converts between
timezones; a session at "19:00" starts at 19:00 on its calendar date.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

_TWELVE_HOUR = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE)
# Optional seconds, as a Postgres time column renders them
_TWENTY_FOUR_HOUR = re.compile(r"(\d{1,2}):(\d{2})(?::\d{2})?")
_SESSION_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

PENDING_LABEL = "TBC"


def parse_time_string(value: Optional[str]) -> Optional[time]:
    """
    Parse "17:00", "5:00pm" or "05:00 PM" into a time.

    Returns None for empty or unparseable input. The whole string must be a
    time, so "119:00" or "13:00pm" is rejected rather than partly read.
    """
    if not value:
        return None
    value = value.strip()

    match12 = _TWELVE_HOUR.fullmatch(value)
    if match12:
        hour = int(match12.group(1))
        minute = int(match12.group(2))
        meridiem = match12.group(3).lower()
        if not 1 <= hour <= 12:
            return None
        if meridiem == "pm" and hour < 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0
        try:
            return time(hour, minute)
        except ValueError:
            return None

    match24 = _TWENTY_FOUR_HOUR.fullmatch(value)
    if match24:
        hour = int(match24.group(1))
        minute = int(match24.group(2))
        if 0 <= hour < 24 and 0 <= minute < 60:
            return time(hour, minute)

    return None


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Normalize a time string to HH:MM; unparseable input is returned unchanged"""
    parsed = parse_time_string(value)
    if parsed is None:
        return value
    return parsed.strftime("%H:%M")


def parse_session_date(value: Union[date, str, None]) -> Optional[date]:
    """Accept a date or a strict YYYY-MM-DD string; anything else is pending"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _SESSION_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def session_start(instance) -> Optional[datetime]:
    """Combine an instance's session date and start time, or None if either is missing"""
    session_date = parse_session_date(getattr(instance, "session_date", None))
    start_time = parse_time_string(getattr(instance, "start_time", None))
    if session_date is None or start_time is None:
        return None
    return datetime.combine(session_date, start_time)


def countdown_label(remaining: timedelta) -> str:
    """Whole-unit countdown: "Opens in 2d 3h", "Opens in 8h 50m" or "Opens in 4m" """
    total_mins = max(0, int(remaining.total_seconds() // 60))
    days = total_mins // 1440
    hrs = (total_mins % 1440) // 60
    mins = total_mins % 60

    if days > 0:
        return f"Opens in {days}d {hrs}h"
    if hrs > 0:
        return f"Opens in {hrs}h {mins}m"
    return f"Opens in {mins}m"


def format_instance_schedule(instance) -> str:
    """
    Human schedule label for an instance.

    Example: "Mon 16 Feb 2026 • 19:00", or "Schedule Pending • 19:00" when the
    instance has no valid session date yet.
    """
    start_time = getattr(instance, "start_time", None)
    time_part = normalize_time(start_time) if start_time else PENDING_LABEL

    session_date = parse_session_date(getattr(instance, "session_date", None))
    if session_date is None:
        return f"Schedule Pending • {time_part}"

    return f"{session_date:%a} {session_date.day} {session_date:%b} {session_date.year} • {time_part}"
