from __future__ import annotations

import threading
from typing import Callable, Optional

from common.logging_setup import get_logger
from common.utils import TickRate, epoch_ms
from sensor_module.batcher import Batcher
from sensor_module.sampler import Sampler


log = get_logger("sensor_module.supervisor")

TICK_INTERVAL_MS = 1000


class Supervisor:
    """
    Periodic sample -> accept -> maybe_flush loop.

    States: running until stop() is called, then stopped for good. Each tick
    is isolated: an exception is logged with its kind and the loop carries
    on at the next interval (no backoff). Buffered samples are not flushed
    on shutdown.
    """

    def __init__(
        self,
        sampler: Sampler,
        batcher: Batcher,
        *,
        tick_interval_ms: float = TICK_INTERVAL_MS,
        clock_ms: Callable[[], float] = epoch_ms,
        status_every: int = 60,
    ):
        self.sampler = sampler
        self.batcher = batcher
        self.tick_interval_ms = float(tick_interval_ms)
        self.clock_ms = clock_ms
        self.status_every = max(1, int(status_every))

        self.ticks = 0
        self.failed_ticks = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._rate = TickRate(window=20)

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def tick(self) -> bool:
        """One sampling cycle. Returns False if the tick failed."""
        self.ticks += 1
        try:
            sample = self.sampler.sample()
            self.batcher.accept(sample)
            self.batcher.maybe_flush(self.clock_ms())
        except Exception as e:
            self.failed_ticks += 1
            log.error(
                "Tick failed",
                exc_info=True,
                extra={"extra": {"tick": self.ticks, "kind": type(e).__name__, "failed": self.failed_ticks}},
            )
            return False

        hz = self._rate.mark()
        if self.ticks % self.status_every == 0:
            log.info(
                "Supervisor status",
                extra={"extra": {
                    "ticks": self.ticks,
                    "failed": self.failed_ticks,
                    "pending": self.batcher.pending,
                    "packets": self.batcher.packets_sent,
                    "rate_hz": round(hz, 3),
                }},
            )
        return True

    def run(self) -> None:
        """Block until stop(); the stop request also ends a pending wait."""
        log.info("Supervisor started", extra={"extra": {"tick_ms": self.tick_interval_ms,
                                                        "window_ms": self.batcher.window_ms}})
        while not self._stop.is_set():
            if self._stop.wait(self.tick_interval_ms / 1000.0):
                break
            self.tick()
        log.info("Supervisor stopped", extra={"extra": {"ticks": self.ticks, "failed": self.failed_ticks,
                                                        "unsent": self.batcher.pending}})

    def start_in_thread(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="supervisor", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)
