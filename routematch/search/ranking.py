from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Sequence

import logging

from .deviation import DeviationBreakdown, explain_deviation
from .interleavings import MAX_INTERLEAVINGS
from .models import Route, SearchInput

logger = logging.getLogger(__name__)


@dataclass
class RouteMatch:
    route: Route
    breakdown: DeviationBreakdown

    @property
    def deviation_km(self) -> float:
        return self.breakdown.total_km


@dataclass
class RankingStats:
    candidates: int = 0
    without_capacity: int = 0
    scored: int = 0
    over_threshold: int = 0
    returned: int = 0

    def as_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "without_capacity": self.without_capacity,
            "scored": self.scored,
            "over_threshold": self.over_threshold,
            "returned": self.returned,
        }


def has_capacity(route: Route) -> bool:
    return route.available_passengers > 0


def _score_all(
    routes: Sequence[Route],
    query: SearchInput,
    max_orderings: int,
    workers: int,
) -> List[DeviationBreakdown]:
    """
    Score routes in candidate order. With workers > 1 the routes go to a
    thread pool and results are written back by index, so the output matches
    the sequential path. Scoring is pure Python and holds the GIL, so the
    pool gives no CPU speedup; it only guarantees identical ordering.
    """
    if workers <= 1 or len(routes) <= 1:
        return [explain_deviation(r, query, max_orderings) for r in routes]

    out: List[Optional[DeviationBreakdown]] = [None] * len(routes)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(explain_deviation, route, query, max_orderings): i
            for i, route in enumerate(routes)
        }
        for future in as_completed(futures):
            out[futures[future]] = future.result()
    return out  # type: ignore[return-value]


def rank_routes(
    candidates: Sequence[Route],
    query: SearchInput,
    max_orderings: int = MAX_INTERLEAVINGS,
    workers: int = 1,
    stats: Optional[RankingStats] = None,
) -> List[RouteMatch]:
    """
    Score every candidate with free seats, drop those over their own
    deviation budget and return the rest best-first.

    Routes without available capacity are filtered here and never scored.
    The sort is stable, so equal scores keep candidate order.
    """
    stats = stats if stats is not None else RankingStats()
    stats.candidates = len(candidates)

    open_routes = [r for r in candidates if has_capacity(r)]
    stats.without_capacity = len(candidates) - len(open_routes)

    breakdowns = _score_all(open_routes, query, max_orderings, workers)
    stats.scored = len(breakdowns)

    matches = [
        RouteMatch(route=r, breakdown=b)
        for r, b in zip(open_routes, breakdowns)
        if b.total_km <= r.max_deviation_km
    ]
    stats.over_threshold = stats.scored - len(matches)

    matches.sort(key=lambda m: m.deviation_km)
    stats.returned = len(matches)

    logger.info(
        "Route search: %d candidates -> %d with seats -> %d within threshold",
        stats.candidates, stats.scored, stats.returned,
    )
    return matches


def search_routes(
    candidates: Sequence[Route],
    query: SearchInput,
    max_orderings: int = MAX_INTERLEAVINGS,
    workers: int = 1,
) -> List[Route]:
    return [m.route for m in rank_routes(candidates, query, max_orderings, workers)]
