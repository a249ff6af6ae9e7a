"""
Clock capability.

Anything that needs "now" (future-date validation, past-date checks on
availability, reschedule stamps) asks an injected clock instead of
calling datetime.now() directly, so tests can pin time.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Clock frozen at a given instant.

    Used in tests and scripts. `advance` moves it forward explicitly.
    """

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        self._instant = self._instant + timedelta(**delta)
