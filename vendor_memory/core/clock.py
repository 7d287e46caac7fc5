"""
Injectable wall clock used by every decay and recency calculation.

All engine timestamps are naive local time. Timezone-aware values coming
from callers or persisted JSON (``...Z``) are converted on the way in so
that subtracting any two engine timestamps is always valid.
"""

from datetime import datetime, timedelta
from typing import Callable

Clock = Callable[[], datetime]


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def system_clock() -> datetime:
    return datetime.now()


class FrozenClock:
    """
    Manually advanced clock.

    Handy for replaying a conversation with controlled timestamps.
    """

    def __init__(self, start: datetime):
        self.now = to_local_naive(start)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now
