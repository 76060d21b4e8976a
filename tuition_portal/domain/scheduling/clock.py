"""Clock dependency for access-window evaluation.

Routes resolve "now" through ``get_clock`` so tests can override it with a
``FixedClock`` instead of waiting on real time.
"""

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Venue-local wall clock (naive, no timezone conversion)"""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


def get_clock() -> Clock:
    return SystemClock()
