"""
Generally useful stuff that doesn't fit anywhere else
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone


type Clock = Callable[[], datetime]


def maybe[T](dangerous: Callable[[], T]) -> T | None:
    """
    Executes a callable (function, lambda, etc.) and returns the result. If the callable raises an exception, the
    exception is caught and discarded, and None is returned.
    """
    try:
        return dangerous()
    except Exception:  # pylint: disable=broad-exception-caught
        return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Throttle:
    """
    Gate for housekeeping work that should run at most once per interval, no matter how often it's asked for.
    """

    def __init__(self, interval: timedelta, last: datetime | None = None):
        """
        Create a throttle that opens at most once every `interval`. If `last` is given, the throttle behaves as though
        it last opened at that time; otherwise it opens on the first request.
        """
        self._interval = interval
        self._last = last

    def ready(self, now: datetime) -> bool:
        """
        Return True, and start a new interval, if at least one interval has passed since the throttle last opened.
        """
        if self._last is not None and now - self._last < self._interval:
            return False
        self._last = now
        return True

    @property
    def last(self) -> datetime | None:
        return self._last
