from __future__ import annotations
from typing import Sequence, Tuple

import math

import numpy as np

# Mean Earth radius used by every distance in the engine
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres between two lat/lng points."""

    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlng / 2) ** 2)
    # float error can push a above 1.0 for near-antipodal points
    a = min(1.0, max(0.0, a))

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_km_many(
    lat: float,
    lng: float,
    lats: Sequence[float],
    lngs: Sequence[float],
) -> np.ndarray:
    """
    Vectorised haversine: distance from one point to each (lats[i], lngs[i]).
    Returns a float array with the same length as the inputs.
    """
    lats_arr = np.radians(np.asarray(lats, dtype=float))
    lngs_arr = np.radians(np.asarray(lngs, dtype=float))
    phi = math.radians(lat)
    lam = math.radians(lng)

    dphi = lats_arr - phi
    dlam = lngs_arr - lam
    a = np.sin(dphi / 2) ** 2 + math.cos(phi) * np.cos(lats_arr) * np.sin(dlam / 2) ** 2
    # float error can push a above 1.0 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def midpoint(lat1: float, lng1: float, lat2: float, lng2: float) -> Tuple[float, float]:
    """Arithmetic mean of two coordinates. Not a geodesic midpoint."""
    return (lat1 + lat2) / 2, (lng1 + lng2) / 2


def is_valid_coordinate(lat: float, lng: float) -> bool:
    try:
        lat = float(lat); lng = float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
