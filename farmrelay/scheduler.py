"""A fixed-size table of functions run at regular millisecond intervals."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

_MASK32 = 0xFFFFFFFF


def _millis() -> int:
    return int(time.monotonic() * 1000) & _MASK32


class ScheduleFullError(Exception):
    """Raised when every schedule slot is taken."""


@dataclass
class ScheduleItem:
    interval: int = 0
    start: int = 0
    func: Optional[Callable[[], None]] = None
    active: bool = False


class Scheduler:
    """Runs each scheduled function once its interval has passed."""

    def __init__(self, clock: Callable[[], int] = _millis, capacity: int = 16) -> None:
        self.clock = clock
        self.items = [ScheduleItem() for _ in range(capacity)]

    def schedule(self, func: Callable[[], None], interval: int) -> int:
        """Put func in the first free slot and return that slot's index."""
        for index, item in enumerate(self.items):
            if not item.active:
                self.items[index] = ScheduleItem(
                    interval=interval, start=self.clock(), func=func, active=True
                )
                return index
        raise ScheduleFullError("Schedule is full!")

    def handle(self) -> int:
        """Run every due function, restarting its interval; return how many ran."""
        ran = 0
        for item in self.items:
            if not item.active:
                continue
            now = self.clock()
            if (now - item.start) & _MASK32 > item.interval:
                item.start = now
                item.func()
                ran += 1
        return ran