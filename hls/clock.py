"""Injectable wall clock used for real-time pacing."""

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of "now" and of blocking delays."""

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


def sleep_until(clock: Clock, moment: datetime) -> float:
    """Sleep until ``moment`` if it lies in the future; return seconds slept."""
    delay = (moment - clock.now()).total_seconds()
    if delay > 0:
        clock.sleep(delay)
        return delay
    return 0.0
