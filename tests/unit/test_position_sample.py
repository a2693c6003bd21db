"""
Unit tests for PositionSample / InstrumentReading
"""

import dataclasses
import json
import os
import sys
from datetime import datetime

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import WIRE_FIELDS, InstrumentReading, PositionSample


def make_sample(**kw) -> PositionSample:
    base = dict(
        latitude=29.1, longitude=-87.9, height=3.5, roll=0.23, pitch=0.65, heading=357.0,
        g_force_magnitude=9.81, east_offset=-12.02, north_offset=70.01, total_offset=71.03,
        timestamp=datetime(2024, 5, 1, 7, 30, 15, 123456),
    )
    base.update(kw)
    return PositionSample(**base)


class TestPositionSample:
    """Test cases for PositionSample"""

    def test_is_immutable(self):
        """Samples cannot be modified after creation"""
        s = make_sample()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.latitude = 1.0  # type: ignore[misc]

    def test_wire_keys_and_order(self):
        """Wire dict uses the positioning field names in order"""
        d = make_sample().to_wire()
        assert tuple(d.keys()) == WIRE_FIELDS
        assert d["gForceMagnitude"] == 9.81
        assert d["east_offset"] == -12.02

    def test_timestamp_not_normalised(self):
        """Timestamp is serialized as the naive wall-clock value, no UTC suffix"""
        d = make_sample().to_wire()
        assert d["timestamp"] == "2024-05-01T07:30:15.123456"
        assert "Z" not in d["timestamp"] and "+" not in d["timestamp"]

    def test_wire_round_trip_via_json(self):
        """A sample survives JSON encoding of its wire form"""
        s = make_sample()
        back = PositionSample.from_wire(json.loads(json.dumps(s.to_wire())))
        assert back == s


class TestInstrumentReading:
    """Test cases for InstrumentReading"""

    def test_defaults_are_zero(self):
        r = InstrumentReading()
        assert (r.latitude, r.longitude, r.height, r.roll, r.pitch, r.heading, r.g_force_magnitude) == (0.0,) * 7
