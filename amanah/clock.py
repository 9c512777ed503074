"""Injectable time source so timestamps and reminders are testable."""

from datetime import date, datetime, timedelta, timezone


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


class FixedClock(SystemClock):
    """Clock frozen at a given instant. Use in tests."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        """Move the clock forward, e.g. ``clock.advance(days=6)``."""
        self._instant = self._instant + timedelta(**delta)


DEFAULT_CLOCK = SystemClock()
