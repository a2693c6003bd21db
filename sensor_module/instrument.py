from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import numpy as np
from pymavlink import mavutil

from common.logging_setup import get_logger
from common.types import InstrumentReading
from sensor_module.errors import InstrumentNotReady


log = get_logger("sensor_module.instrument")

STANDARD_GRAVITY = 9.80665  # m/s^2 per g

# Initial-value corrections for the attitude channels (deg)
ROLL_CORRECTION_DEG = 0.23
PITCH_CORRECTION_DEG = 0.65
HEADING_CORRECTION_DEG = -3.0

# RAW_IMU is left out: its accelerations are sensor counts, not milli-g.
MAVLINK_TYPES = ["GLOBAL_POSITION_INT", "ATTITUDE", "SCALED_IMU"]


class Instrument(Protocol):
    def read(self) -> InstrumentReading:
        ...


@dataclass
class StaticInstrument:
    """
    Fixed reading, returned unchanged on every tick.

    The default (all zeros, 10 m/s^2) is the bench configuration used when
    no position source is wired to the module.
    """
    reading: InstrumentReading = field(
        default_factory=lambda: InstrumentReading(g_force_magnitude=10.0)
    )

    def read(self) -> InstrumentReading:
        return self.reading


# ---------------------------
# MAVLink source
# ---------------------------

def open_instrument_connection(url: str, timeout_s: float = 10.0) -> mavutil.mavfile:
    """
    Open a MAVLink connection to the position/attitude source and wait for heartbeat.
    url examples:
      - "udp:0.0.0.0:14550"
      - "tcp:127.0.0.1:5760"
      - "serial:/dev/ttyACM0:57600"
    Raises InstrumentNotReady if no heartbeat arrives within timeout_s.
    """
    m = mavutil.mavlink_connection(url)
    hb = m.wait_heartbeat(timeout=timeout_s)
    if hb is None:
        log.error("No instrument heartbeat", extra={"extra": {"url": url, "timeout_s": timeout_s}})
        m.close()
        raise InstrumentNotReady(f"no heartbeat from {url} within {timeout_s:.1f}s")
    log.info("Instrument heartbeat OK", extra={"extra": {"url": url, "system": hb.get_srcSystem()}})
    return m


class MavlinkInstrument:
    """
    Latest-value cache over a MAVLink stream.

    Each read() drains whatever messages are pending (non-blocking) and
    returns the most recent position, attitude and acceleration seen so far.
    Attitude corrections are added to the raw angles; heading is wrapped to
    [0, 360).
    """

    def __init__(
        self,
        conn: mavutil.mavfile,
        *,
        roll_correction_deg: float = ROLL_CORRECTION_DEG,
        pitch_correction_deg: float = PITCH_CORRECTION_DEG,
        heading_correction_deg: float = HEADING_CORRECTION_DEG,
        max_drain: int = 200,
    ):
        self.conn = conn
        self.roll_correction_deg = float(roll_correction_deg)
        self.pitch_correction_deg = float(pitch_correction_deg)
        self.heading_correction_deg = float(heading_correction_deg)
        self.max_drain = int(max_drain)

        self._lat: Optional[float] = None
        self._lon: Optional[float] = None
        self._height = 0.0
        self._roll = 0.0
        self._pitch = 0.0
        self._yaw = 0.0
        self._g = 0.0

    def _drain(self) -> int:
        n = 0
        while n < self.max_drain:
            msg = self.conn.recv_match(type=MAVLINK_TYPES, blocking=False)
            if msg is None:
                break
            self._apply(msg)
            n += 1
        return n

    def _apply(self, msg) -> None:
        kind = msg.get_type()
        if kind == "GLOBAL_POSITION_INT":
            # 1E7 scaled deg, alt in mm AMSL
            self._lat = msg.lat / 1e7
            self._lon = msg.lon / 1e7
            self._height = msg.alt / 1000.0
        elif kind == "ATTITUDE":
            self._roll = float(np.rad2deg(msg.roll))
            self._pitch = float(np.rad2deg(msg.pitch))
            self._yaw = float(np.rad2deg(msg.yaw))
        elif kind == "SCALED_IMU":
            # accelerations in milli-g
            acc_mg = np.array([msg.xacc, msg.yacc, msg.zacc], dtype=float)
            self._g = float(np.linalg.norm(acc_mg)) * STANDARD_GRAVITY / 1000.0

    def read(self) -> InstrumentReading:
        self._drain()
        if self._lat is None or self._lon is None:
            raise InstrumentNotReady("no GLOBAL_POSITION_INT received yet")
        heading = (self._yaw + self.heading_correction_deg) % 360.0
        return InstrumentReading(
            latitude=self._lat,
            longitude=self._lon,
            height=self._height,
            roll=self._roll + self.roll_correction_deg,
            pitch=self._pitch + self.pitch_correction_deg,
            heading=heading,
            g_force_magnitude=self._g,
        )
