from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Sequence

import logging
import math

from .geo import haversine_km
from .grouping import group_stops_by_contributor
from .interleavings import MAX_INTERLEAVINGS, all_interleavings, count_interleavings
from .models import Route, SearchInput, SearchStopInput, Stop
from .segments import build_segments, min_distance_to_segments

logger = logging.getLogger(__name__)


@dataclass
class DeviationBreakdown:
    endpoint_km: float
    stop_km: float
    groups: int
    orderings_considered: int
    orderings_possible: int
    best_order: List[str] = field(default_factory=list)

    @property
    def total_km(self) -> float:
        return self.endpoint_km + self.stop_km

    @property
    def truncated(self) -> bool:
        return self.orderings_considered < self.orderings_possible

    def as_dict(self) -> dict:
        return {
            "endpoint_km": self.endpoint_km,
            "stop_km": self.stop_km,
            "total_km": self.total_km,
            "groups": self.groups,
            "orderings_considered": self.orderings_considered,
            "orderings_possible": self.orderings_possible,
            "truncated": self.truncated,
            "best_order": list(self.best_order),
        }


def deviation_for_stops(
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    stops: Sequence[Stop],
    via_points: Sequence[SearchStopInput],
) -> float:
    """Sum over via-points of the distance to the nearest leg representative."""
    segments = build_segments(start_lat, start_lng, end_lat, end_lng, stops)
    dev = 0.0
    for vp in via_points:
        dev += min_distance_to_segments(vp.lat, vp.lng, segments)
    return dev


def endpoint_deviation(route: Route, search: SearchInput) -> float:
    return (haversine_km(search.start_lat, search.start_lng, route.start_lat, route.start_lng) +
            haversine_km(search.end_lat, search.end_lng, route.end_lat, route.end_lng))


def explain_deviation(
    route: Route,
    search: SearchInput,
    max_orderings: int = MAX_INTERLEAVINGS,
) -> DeviationBreakdown:
    """
    Score a route against a rider query and report how the score was found.

    The stop term is the minimum over the enumerated stop orderings; with no
    stops it degenerates to the single start/end midpoint. On equal scores
    the first ordering enumerated wins.
    """
    base_dev = endpoint_deviation(route, search)

    groups = group_stops_by_contributor(route.stops)
    orderings = all_interleavings(groups, max_orderings)
    possible = count_interleavings(groups)

    if not orderings:
        stop_dev = deviation_for_stops(
            route.start_lat, route.start_lng, route.end_lat, route.end_lng, route.stops, search.stops
        )
        return DeviationBreakdown(
            endpoint_km=base_dev,
            stop_km=stop_dev,
            groups=len(groups),
            orderings_considered=0,
            orderings_possible=possible,
            best_order=[s.id for s in route.stops],
        )

    if len(orderings) < possible:
        logger.debug(
            "Route %s: scoring %d of %d stop orderings across %d contributors",
            route.id, len(orderings), possible, len(groups),
        )

    min_stop_dev = math.inf
    best: List[Stop] = orderings[0]
    for ordered in orderings:
        d = deviation_for_stops(
            route.start_lat, route.start_lng, route.end_lat, route.end_lng, ordered, search.stops
        )
        if d < min_stop_dev:
            min_stop_dev = d
            best = ordered

    return DeviationBreakdown(
        endpoint_km=base_dev,
        stop_km=min_stop_dev,
        groups=len(groups),
        orderings_considered=len(orderings),
        orderings_possible=possible,
        best_order=[s.id for s in best],
    )


def calculate_deviation(
    route: Route,
    search: SearchInput,
    max_orderings: int = MAX_INTERLEAVINGS,
) -> float:
    return explain_deviation(route, search, max_orderings).total_km
