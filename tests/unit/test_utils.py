"""
Unit tests for clock helpers
"""

import os
import sys
import time
from datetime import datetime, timedelta

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.utils import TickRate, epoch_ms, shifted_now


class TestClocks:
    def test_epoch_ms_tracks_time(self):
        assert abs(epoch_ms() - time.time() * 1000) < 1000

    def test_shifted_now_is_five_hours_back_and_naive(self):
        ts = shifted_now()
        assert ts.tzinfo is None
        delta = datetime.now() - ts
        assert timedelta(hours=5) - timedelta(seconds=5) < delta < timedelta(hours=5) + timedelta(seconds=5)

    def test_shifted_now_custom_offset(self):
        delta = datetime.now() - shifted_now(0.0)
        assert abs(delta.total_seconds()) < 5


class FakeClock:
    def __init__(self, step):
        self.t = 0.0
        self.step = step

    def __call__(self):
        self.t += self.step
        return self.t


class TestTickRate:
    def test_first_mark_is_zero(self):
        assert TickRate(window=5).mark() == 0.0

    def test_rate_matches_tick_spacing(self):
        rate = TickRate(window=5, clock=FakeClock(step=0.5))
        for _ in range(4):
            hz = rate.mark()
        assert hz == pytest.approx(2.0)

    def test_window_drops_old_ticks(self):
        clock = FakeClock(step=1.0)
        rate = TickRate(window=3, clock=clock)
        rate.mark()
        rate.mark()
        clock.step = 0.1  # ticks speed up
        rate.mark()
        rate.mark()
        rate.mark()
        assert rate.hz == pytest.approx(10.0)

    def test_reset_and_window_validation(self):
        rate = TickRate(window=3, clock=FakeClock(step=1.0))
        rate.mark()
        rate.mark()
        rate.reset()
        assert rate.hz == 0.0
        with pytest.raises(ValueError):
            TickRate(window=1)
