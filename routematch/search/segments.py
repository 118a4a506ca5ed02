from __future__ import annotations
from typing import List, Sequence, Tuple

import math

from .geo import haversine_km_many, midpoint
from .models import Stop

Point = Tuple[float, float]


def build_segments(
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    stops: Sequence[Stop],
) -> List[Point]:
    """
    One representative point per leg of start -> stops... -> end.

    Each leg is reduced to the midpoint of its two ends rather than the
    full line, so a via-point is compared against len(stops) + 1 points.
    """
    if not stops:
        return [midpoint(start_lat, start_lng, end_lat, end_lng)]

    segs: List[Point] = []
    prev_lat, prev_lng = start_lat, start_lng
    for s in stops:
        segs.append(midpoint(prev_lat, prev_lng, s.lat, s.lng))
        prev_lat, prev_lng = s.lat, s.lng
    segs.append(midpoint(prev_lat, prev_lng, end_lat, end_lng))
    return segs


def min_distance_to_segments(lat: float, lng: float, segments: Sequence[Point]) -> float:
    if not segments:
        return math.inf
    lats = [p[0] for p in segments]
    lngs = [p[1] for p in segments]
    return float(haversine_km_many(lat, lng, lats, lngs).min())
