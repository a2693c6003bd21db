from __future__ import annotations

from typing import Callable, Deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from collections import deque
import time


# Fixed shift applied to recorded sample timestamps (hours).
TIMESTAMP_OFFSET_HOURS = -5.0


def epoch_ms() -> float:
    """Milliseconds since the Unix epoch (wall clock)."""
    return time.time() * 1e3


def shifted_now(offset_hours: float = TIMESTAMP_OFFSET_HOURS) -> datetime:
    """
    Naive local wall-clock time shifted by a fixed number of hours.

    Not a timezone conversion: positioning consumers expect the local clock
    minus five hours.
    """
    return datetime.now() + timedelta(hours=offset_hours)


@dataclass(slots=True)
class TickRate:
    """
    Achieved supervisor tick rate (Hz) over the last `window` completed ticks.

    Reported in the periodic status line; a value well below
    1000 / tick_interval_ms means ticks are overrunning their interval.
    `clock` is any monotonic seconds source.
    """
    window: int = 20
    clock: Callable[[], float] = time.monotonic
    _stamps: Deque[float] = field(default_factory=deque)

    def __post_init__(self) -> None:
        if self.window < 2:
            raise ValueError("window must cover at least two ticks")
        self._stamps = deque(maxlen=self.window)

    def mark(self) -> float:
        """Record a completed tick and return the current rate."""
        self._stamps.append(self.clock())
        return self.hz

    @property
    def hz(self) -> float:
        if len(self._stamps) < 2:
            return 0.0
        span = self._stamps[-1] - self._stamps[0]
        return 0.0 if span <= 0 else (len(self._stamps) - 1) / span

    def reset(self) -> None:
        self._stamps.clear()
