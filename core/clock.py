"""
Clock abstraction.

Every time-dependent rule asks an injected Clock for "now" at decision
time, so tests can pin or advance the current instant.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from .domain import ensure_aware


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware datetime."""
        pass


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        self._current = ensure_aware(current)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime):
        self._current = ensure_aware(current)

    def advance(self, **kwargs):
        """Move forward by a timedelta built from kwargs (minutes=5, days=1...)."""
        self._current = self._current + timedelta(**kwargs)
