"""Next-occurrence and four-week block window arithmetic (calendar dates only)"""

import logging
from datetime import date, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

BLOCK_WEEKS = 4
BLOCK_LENGTH = timedelta(weeks=BLOCK_WEEKS)  # 28 days


def weekday_index(day_name: Optional[str]) -> Optional[int]:
    """Monday=0 .. Sunday=6, matching case-insensitively; None if unrecognized"""
    if not day_name:
        return None
    cleaned = day_name.strip().capitalize()
    if cleaned not in WEEKDAYS:
        return None
    return WEEKDAYS.index(cleaned)


def canonical_day_name(day_name: str) -> str:
    """Validate and title-case a weekday name"""
    index = weekday_index(day_name)
    if index is None:
        raise ValueError(f"Unrecognized day of week: {day_name!r}")
    return WEEKDAYS[index]


def next_occurrence(day_name: str, today: Optional[date] = None, strict: bool = False) -> date:
    """
    Next date falling on ``day_name``, strictly after ``today``.

    Today never counts, even if it matches: the result is always 1-7 days
    ahead. An unrecognized day name returns ``today`` (logged), or raises
    ValueError when ``strict`` is set.
    """
    today = today or date.today()
    target = weekday_index(day_name)
    if target is None:
        if strict:
            raise ValueError(f"Unrecognized day of week: {day_name!r}")
        logger.warning(f"⚠️ Unrecognized day of week {day_name!r}, falling back to {today}")
        return today

    diff = target - today.weekday()
    if diff <= 0:
        diff += 7
    return today + timedelta(days=diff)


def block_window(start: date) -> tuple[date, date]:
    """[start, start + 28 days) window covering one four-week block"""
    return start, start + BLOCK_LENGTH


def block_session_dates(start: date) -> list[date]:
    """The four weekly session dates of a block beginning on ``start``"""
    return [start + timedelta(weeks=i) for i in range(BLOCK_WEEKS)]
