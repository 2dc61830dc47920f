"""
regionmap.geo — Great-circle distance on a spherical Earth.

Pure computation. Haversine in its two-argument arctangent form, which
stays accurate for very small separations and near the poles and the
±180° seam. Mean Earth radius 6371 km; no ellipsoidal correction.

Values are returned at full precision. Rounding to DISTANCE_PRECISION
happens once, when a response is assembled (see distance_payload()).
"""

from __future__ import annotations

import math

from regionmap.constants import (
    DISTANCE_PRECISION,
    EARTH_RADIUS_KM,
    KM_TO_MILES,
    LAT_RANGE,
    LNG_RANGE,
)


def _check_point(lat: float, lng: float, label: str) -> None:
    if not (LAT_RANGE[0] <= lat <= LAT_RANGE[1]):
        raise ValueError(f"Invalid {label} latitude: {lat}. Must be between -90 and 90.")
    if not (LNG_RANGE[0] <= lng <= LNG_RANGE[1]):
        raise ValueError(f"Invalid {label} longitude: {lng}. Must be between -180 and 180.")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the great-circle distance in km between two points (degrees).

    Raises ValueError for coordinates outside the valid ranges; callers
    validate input first, so this only fires on programming errors.
    """
    _check_point(lat1, lng1, "source")
    _check_point(lat2, lng2, "target")

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    # Rounding can leave a a hair outside [0, 1] at antipodes.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def km_to_miles(km: float) -> float:
    return km * KM_TO_MILES


def distance_payload(km: float) -> dict[str, float]:
    """Wire form {"km", "miles"}; both derived from the same unrounded km."""
    return {
        "km": round(km, DISTANCE_PRECISION),
        "miles": round(km_to_miles(km), DISTANCE_PRECISION),
    }
