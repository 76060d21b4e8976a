"""
Session access-window state machine.

Given one dated instance and the current wall-clock time, decide whether the
live classroom join action is offered:

    COUNTDOWN --(10 min before start)--> JOIN --(duration + 15 min after start)--> PAST

Both boundaries are inclusive of JOIN. PAST is terminal. The evaluation is a
pure function of (session_date, start_time, duration_minutes, now); callers
re-evaluate on every request or refresh tick.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from .time_utils import PENDING_LABEL, countdown_label, session_start

JOIN_OPENS_EARLY_MINUTES = 10
JOIN_CLOSES_LATE_MINUTES = 15
DEFAULT_DURATION_MINUTES = 60

JOIN_LABEL = "Join Live Classroom"
COMPLETE_LABEL = "Session Complete"


class SessionState(str, Enum):
    COUNTDOWN = "COUNTDOWN"
    JOIN = "JOIN"
    PAST = "PAST"


@dataclass(frozen=True)
class SessionAccess:
    state: SessionState
    label: str
    enabled: bool


PENDING_ACCESS = SessionAccess(SessionState.COUNTDOWN, PENDING_LABEL, False)


def effective_duration(duration_minutes) -> int:
    """Duration in minutes, falling back to 60 when unset or not positive"""
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        return DEFAULT_DURATION_MINUTES
    if duration_minutes <= 0:
        return DEFAULT_DURATION_MINUTES
    return duration_minutes


def evaluate(instance, now: datetime) -> SessionAccess:
    """Classify an instance's live classroom access at ``now``"""
    start = session_start(instance)
    if start is None:
        return PENDING_ACCESS

    if now.tzinfo is not None:
        # Wall-clock comparison only
        now = now.replace(tzinfo=None)

    duration = effective_duration(getattr(instance, "duration_minutes", None))
    diff = start - now
    diff_minutes = diff.total_seconds() / 60
    join_closes = -(duration + JOIN_CLOSES_LATE_MINUTES)

    if join_closes <= diff_minutes <= JOIN_OPENS_EARLY_MINUTES:
        return SessionAccess(SessionState.JOIN, JOIN_LABEL, True)

    if diff_minutes < join_closes:
        return SessionAccess(SessionState.PAST, COMPLETE_LABEL, False)

    until_open = diff - timedelta(minutes=JOIN_OPENS_EARLY_MINUTES)
    return SessionAccess(SessionState.COUNTDOWN, countdown_label(until_open), False)


def join_window(instance):
    """(opens_at, closes_at) of the join window, or None for a pending instance"""
    start = session_start(instance)
    if start is None:
        return None
    duration = effective_duration(getattr(instance, "duration_minutes", None))
    return (
        start - timedelta(minutes=JOIN_OPENS_EARLY_MINUTES),
        start + timedelta(minutes=duration + JOIN_CLOSES_LATE_MINUTES),
    )
