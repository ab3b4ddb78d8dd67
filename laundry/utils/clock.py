"""Injectable clock so schedules and windows can be computed deterministically."""

from __future__ import annotations

from datetime import datetime


class SystemClock:
    def now(self) -> datetime:
        return datetime.utcnow()


class FixedClock:
    """Clock frozen at a given instant (tests, replays)."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


system_clock = SystemClock()
