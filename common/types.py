from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


# Wire keys in the order the positioning consumers expect them.
WIRE_FIELDS = (
    "latitude",
    "longitude",
    "height",
    "roll",
    "pitch",
    "heading",
    "gForceMagnitude",
    "east_offset",
    "north_offset",
    "total_offset",
    "timestamp",
)


@dataclass(frozen=True, slots=True)
class InstrumentReading:
    """
    One raw reading from the position/orientation instrument.

    Attributes:
        latitude, longitude: degrees, instrument frame.
        height: meters.
        roll, pitch, heading: degrees.
        g_force_magnitude: m/s^2.
    """
    latitude: float = 0.0
    longitude: float = 0.0
    height: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    heading: float = 0.0
    g_force_magnitude: float = 0.0


@dataclass(frozen=True, slots=True)
class PositionSample:
    """
    Instrument reading plus offsets from the reference point (System tick output).

    Attributes:
        latitude, longitude, height, roll, pitch, heading, g_force_magnitude:
            copied from the InstrumentReading.
        east_offset, north_offset: feet, signed.
        total_offset: feet, magnitude of (east_offset, north_offset).
        timestamp: naive local wall-clock time shifted by a fixed offset
            (not UTC).
    """
    latitude: float
    longitude: float
    height: float
    roll: float
    pitch: float
    heading: float
    g_force_magnitude: float
    east_offset: float
    north_offset: float
    total_offset: float
    timestamp: datetime

    def to_wire(self) -> Dict[str, Any]:
        """Dict for the JSON batch payload (keys in WIRE_FIELDS order)."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "height": self.height,
            "roll": self.roll,
            "pitch": self.pitch,
            "heading": self.heading,
            "gForceMagnitude": self.g_force_magnitude,
            "east_offset": self.east_offset,
            "north_offset": self.north_offset,
            "total_offset": self.total_offset,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_wire(cls, d: Dict[str, Any]) -> "PositionSample":
        return cls(
            latitude=float(d["latitude"]),
            longitude=float(d["longitude"]),
            height=float(d["height"]),
            roll=float(d["roll"]),
            pitch=float(d["pitch"]),
            heading=float(d["heading"]),
            g_force_magnitude=float(d["gForceMagnitude"]),
            east_offset=float(d["east_offset"]),
            north_offset=float(d["north_offset"]),
            total_offset=float(d["total_offset"]),
            timestamp=datetime.fromisoformat(d["timestamp"]),
        )
