"""WGS84 to UTM (Transverse Mercator) forward projection.

Only the forward direction is needed: several services accept nothing but a
projected bounding box.
"""

from __future__ import annotations

import math
from typing import Tuple


WGS84_A = 6378137.0
WGS84_F = 1 / 298.257223563
UTM_K0 = 0.9996
FALSE_EASTING = 500_000.0

# EPSG code -> central meridian in degrees
UTM_ZONES = {
    "EPSG:25832": 9.0,
    "EPSG:25833": 15.0,
}


def central_meridian(zone: int) -> float:
    return zone * 6.0 - 183.0


def to_utm(lat: float, lon: float, lon0: float = 9.0) -> Tuple[float, float]:
    """Return (easting, northing) in meters for the zone with central meridian ``lon0``."""

    a = WGS84_A
    e2 = 2 * WGS84_F - WGS84_F * WGS84_F
    ep2 = e2 / (1 - e2)

    phi = math.radians(lat)
    dlam = math.radians(lon - lon0)
    sin_phi = math.sin(phi)
    cos_phi = math.cos(phi)
    tan_phi = math.tan(phi)

    n = a / math.sqrt(1 - e2 * sin_phi**2)
    t = tan_phi**2
    c = ep2 * cos_phi**2
    big_a = dlam * cos_phi

    m = a * (
        (1 - e2 / 4 - 3 * e2**2 / 64 - 5 * e2**3 / 256) * phi
        - (3 * e2 / 8 + 3 * e2**2 / 32 + 45 * e2**3 / 1024) * math.sin(2 * phi)
        + (15 * e2**2 / 256 + 45 * e2**3 / 1024) * math.sin(4 * phi)
        - (35 * e2**3 / 3072) * math.sin(6 * phi)
    )

    easting = FALSE_EASTING + UTM_K0 * n * (
        big_a
        + (1 - t + c) * big_a**3 / 6
        + (5 - 18 * t + t**2 + 72 * c - 58 * ep2) * big_a**5 / 120
    )
    northing = UTM_K0 * (
        m
        + n
        * tan_phi
        * (
            big_a**2 / 2
            + (5 - t + 9 * c + 4 * c**2) * big_a**4 / 24
            + (61 - 58 * t + t**2 + 600 * c - 330 * ep2) * big_a**6 / 720
        )
    )
    return easting, northing


def to_epsg(lat: float, lon: float, crs: str) -> Tuple[float, float]:
    try:
        lon0 = UTM_ZONES[crs]
    except KeyError:
        raise ValueError(f"unsupported projected CRS: {crs}") from None
    return to_utm(lat, lon, lon0)
