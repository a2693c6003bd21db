"""
Unit tests for the Supervisor loop
"""

import json
import os
import sys
import time

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from sensor_module.batcher import Batcher
from sensor_module.channels import POSITIONING, LocalChannelHub
from sensor_module.errors import InstrumentNotReady
from sensor_module.instrument import StaticInstrument
from sensor_module.sampler import Sampler
from sensor_module.supervisor import Supervisor


class StepClock:
    """Epoch-ms clock advanced by the test."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now


class FlakyInstrument:
    """Fails on the listed call numbers (1-based)."""

    def __init__(self, fail_on):
        self.fail_on = set(fail_on)
        self.calls = 0
        self.inner = StaticInstrument()

    def read(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise InstrumentNotReady(f"call {self.calls}")
        return self.inner.read()


def wait_until(pred, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.005)
    return False


class TestSupervisorTick:
    """Test cases for Supervisor.tick"""

    def test_failed_tick_is_isolated(self):
        """A failing tick is counted and the next tick runs normally"""
        hub = LocalChannelHub()
        clock = StepClock()
        sup = Supervisor(Sampler(FlakyInstrument(fail_on=[2])), Batcher(hub, window_ms=10000), clock_ms=clock)

        results = []
        for i in range(1, 4):
            clock.now = i * 1000
            results.append(sup.tick())

        assert results == [True, False, True]
        assert sup.ticks == 3
        assert sup.failed_ticks == 1
        assert sup.batcher.pending == 2

    def test_failing_publish_does_not_fail_tick(self):
        """Publish errors are handled inside the batcher; the tick still succeeds"""
        hub = LocalChannelHub()
        hub.set_online(False)
        clock = StepClock(10000)
        sup = Supervisor(Sampler(StaticInstrument()), Batcher(hub, window_ms=10000), clock_ms=clock)
        assert sup.tick() is True
        assert sup.batcher.pending == 1

    def test_fifteen_ticks_scenario(self):
        """1 s ticks, 10 s window, flush clock at 0: exactly one batch of 10"""
        hub = LocalChannelHub()
        clock = StepClock()
        sup = Supervisor(Sampler(StaticInstrument()), Batcher(hub, window_ms=10000), clock_ms=clock)
        for i in range(1, 16):
            clock.now = i * 1000
            sup.tick()
        batches = hub.published(POSITIONING)
        assert len(batches) == 1
        assert len(json.loads(batches[0].payload)) == 10
        assert sup.batcher.pending == 5


class TestSupervisorRun:
    """Test cases for Supervisor.run / stop"""

    def test_stop_before_run_exits_without_ticking(self):
        hub = LocalChannelHub()
        sup = Supervisor(Sampler(StaticInstrument()), Batcher(hub), tick_interval_ms=10)
        sup.stop()
        sup.run()
        assert sup.ticks == 0
        assert not sup.running

    def test_runs_in_thread_until_stopped(self):
        """Loop ticks periodically and stops without a final flush"""
        hub = LocalChannelHub()
        clock = StepClock(0.0)  # never advances: no flush can be due
        sup = Supervisor(
            Sampler(StaticInstrument()),
            Batcher(hub, window_ms=10000),
            tick_interval_ms=5,
            clock_ms=clock,
        )
        th = sup.start_in_thread()
        assert wait_until(lambda: sup.ticks >= 3)
        sup.stop()
        sup.join(timeout=2.0)
        assert not th.is_alive()
        assert hub.published(POSITIONING) == []
        assert sup.batcher.pending == sup.ticks

    def test_keeps_running_while_every_tick_fails(self):
        """No backoff or circuit breaker: failing ticks repeat"""
        hub = LocalChannelHub()
        sup = Supervisor(
            Sampler(FlakyInstrument(fail_on=range(1, 10000))),
            Batcher(hub),
            tick_interval_ms=2,
        )
        sup.start_in_thread()
        assert wait_until(lambda: sup.failed_ticks >= 5)
        sup.stop()
        sup.join(timeout=2.0)
        assert sup.failed_ticks == sup.ticks
