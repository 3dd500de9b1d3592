"""
Clock -- the ledger's only source of "now".

Accrual is measured in whole seconds between a clock-in and the current
time, so every service takes a Clock and asks it for ``epoch_seconds()``.
Event rows and nonce rows are stamped with ``now_utc()``.

SystemClock is the production implementation.  DeterministicClock lets
tests and the demo script walk a shift forward without sleeping.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

_DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """
    Time as the ledger sees it.

    The ledger trusts the clock and never expects it to run backwards;
    accrual floors a negative elapsed interval to zero rather than failing.
    """

    @abstractmethod
    def now_utc(self) -> datetime:
        ...

    def epoch_seconds(self) -> int:
        """Whole seconds since the Unix epoch, truncated."""
        return int(self.now_utc().timestamp())


class SystemClock(Clock):

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    A clock that only moves when told to.

    Reads are stable between calls to ``advance``; a test that clocks an
    employee in, advances eight hours and clocks out earns exactly
    ``8 * 3600 * rate``.
    """

    def __init__(self, start: datetime | None = None):
        self._start = (start or _DEFAULT_START).astimezone(timezone.utc)
        self._elapsed = 0

    def now_utc(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def advance(self, seconds: int = 1) -> None:
        self._elapsed += seconds

    def advance_hours(self, hours: int) -> None:
        self.advance(hours * SECONDS_PER_HOUR)

    def advance_days(self, days: int) -> None:
        self.advance(days * SECONDS_PER_DAY)
