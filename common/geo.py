from __future__ import annotations

from typing import Tuple
import math


# --- Spherical earth used by the positioning uplink ---
EARTH_RADIUS_M = 6376500.0        # sphere radius (m)
FEET_PER_METER = 3.28084

# --- Antenna mounting displacement from the reference point (ft) ---
NORTH_CORRECTION_FT = 70.01
EAST_CORRECTION_FT = 12.02

# --- Reference point (deg) ---
REFERENCE_LAT = 29.10798914
REFERENCE_LON = -87.94334921


# -------------------------
# Great-circle distance
# -------------------------
def distance_feet(lon_a: float, lat_a: float, lon_b: float, lat_b: float) -> float:
    """
    Haversine great-circle distance between two lon/lat points (deg), in feet.

    NOTE: No range checking; out-of-range degrees give a defined but meaningless result.
    """
    p1 = math.radians(lat_a)
    p2 = math.radians(lat_b)
    dl = math.radians(lon_b) - math.radians(lon_a)
    a = math.sin((p2 - p1) / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return EARTH_RADIUS_M * (2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))) * FEET_PER_METER


# -------------------------
# Offsets from the reference point
# -------------------------
def antenna_offsets(
    lon: float,
    lat: float,
    ref_lon: float = REFERENCE_LON,
    ref_lat: float = REFERENCE_LAT,
    north_correction_ft: float = NORTH_CORRECTION_FT,
    east_correction_ft: float = EAST_CORRECTION_FT,
) -> Tuple[float, float, float]:
    """
    East/north/total offsets (ft) of a sample point from the reference point.

    north = -(d(lon, ref_lat -> lon, lat) - north_correction)
    east  =  (d(ref_lon, lat -> lon, lat) - east_correction)
    total = sqrt(east^2 + north^2)

    Distances are unsigned, so the sign of each axis comes only from the
    correction term and the fixed multipliers below.
    """
    north = -1 * (distance_feet(lon, ref_lat, lon, lat) - north_correction_ft)
    east = 1 * (distance_feet(ref_lon, lat, lon, lat) - east_correction_ft)
    total = math.sqrt(east * east + north * north)
    return east, north, total
