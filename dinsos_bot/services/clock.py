"""Time sources for message age, rate-limit windows and office hours."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


class SystemClock:
    def now(self) -> datetime:
        return utc_now()

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)


class FixedClock(SystemClock):
    """Clock pinned to a given instant; used by tests and replay tooling."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, **kwargs) -> None:
        self._at = self._at + timedelta(**kwargs)
