"""Injectable time source.

Services receive a :class:`Clock` instead of calling ``datetime.now()`` so
that quote expiry and bookkeeping timestamps are deterministic in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """Abstract clock returning timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock(Clock):
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current if current.tzinfo else current.replace(tzinfo=UTC)

    def advance(self, **delta: float) -> datetime:
        self._current += timedelta(**delta)
        return self._current


__all__ = ["Clock", "FixedClock", "SystemClock"]
