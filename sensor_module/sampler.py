from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from common.geo import (
    EAST_CORRECTION_FT,
    NORTH_CORRECTION_FT,
    REFERENCE_LAT,
    REFERENCE_LON,
    antenna_offsets,
)
from common.types import PositionSample
from common.utils import shifted_now
from sensor_module.instrument import Instrument


@dataclass
class Sampler:
    """
    Turns one instrument reading into a PositionSample.

    Instrument faults are not handled here; they surface to the supervisor
    as a failed tick.
    """
    instrument: Instrument
    ref_lon: float = REFERENCE_LON
    ref_lat: float = REFERENCE_LAT
    north_correction_ft: float = NORTH_CORRECTION_FT
    east_correction_ft: float = EAST_CORRECTION_FT
    clock: Callable[[], datetime] = shifted_now

    def sample(self) -> PositionSample:
        r = self.instrument.read()
        ts = self.clock()
        east, north, total = antenna_offsets(
            r.longitude,
            r.latitude,
            self.ref_lon,
            self.ref_lat,
            north_correction_ft=self.north_correction_ft,
            east_correction_ft=self.east_correction_ft,
        )
        return PositionSample(
            latitude=r.latitude,
            longitude=r.longitude,
            height=r.height,
            roll=r.roll,
            pitch=r.pitch,
            heading=r.heading,
            g_force_magnitude=r.g_force_magnitude,
            east_offset=east,
            north_offset=north,
            total_offset=total,
            timestamp=ts,
        )
