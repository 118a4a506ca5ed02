from __future__ import annotations
from typing import Any, Callable, Dict, Optional

import logging
import time

from fastapi import APIRouter, HTTPException, Query

from .catalog import RouteCatalog
from .config import MAX_INTERLEAVINGS
from .deviation import DeviationBreakdown, explain_deviation
from .models import (
    DeviationBreakdownOut, Route, RouteDeviationResponse, RouteMatchOut,
    RouteSearchResponse, SearchInput,
)
from .ranking import RankingStats, has_capacity, rank_routes

logger = logging.getLogger(__name__)


def _ms(t0: float) -> float:
    return round((time.perf_counter() - t0) * 1000.0, 3)


def _breakdown_out(b: DeviationBreakdown) -> DeviationBreakdownOut:
    return DeviationBreakdownOut(**b.as_dict())


def create_router(
    get_catalog: Callable[[], Optional[RouteCatalog]],
    get_settings: Callable[[], Dict[str, Any]],
) -> APIRouter:
    """
    Factory that returns the /routes router. Uses callables to fetch the
    current in-memory catalog and search settings from the backend.
    """
    router = APIRouter(prefix="/routes", tags=["Routes"])

    # ------------------- Shared Helpers -------------------

    def ensure_ready() -> RouteCatalog:
        catalog = get_catalog()
        if catalog is None:
            raise HTTPException(
                status_code=503,
                detail="Route catalog not loaded. Add routes.csv to the dataset and POST /admin/reload.",
            )
        return catalog

    def find_route(catalog: RouteCatalog, route_id: str) -> Route:
        route = catalog.get(route_id.strip())
        if route is None:
            raise HTTPException(status_code=404, detail=f"Route '{route_id}' not found")
        return route

    # ------------------- Endpoints -------------------

    @router.post("/search", response_model=RouteSearchResponse)
    def search(
        req: SearchInput,
        limit: Optional[int] = Query(None, ge=1, le=500),
        breakdown: Optional[bool] = Query(None, description="Include per-route deviation breakdown"),
    ):
        t_total = time.perf_counter()
        t0 = time.perf_counter()
        catalog = ensure_ready()
        settings = get_settings() or {}
        ensure_ready_ms = _ms(t0)

        t0 = time.perf_counter()
        stats = RankingStats()
        matches = rank_routes(
            catalog.routes,
            req,
            max_orderings=int(settings.get("max_interleavings", MAX_INTERLEAVINGS)),
            workers=int(settings.get("search_workers", 1)),
            stats=stats,
        )
        ranking_ms = _ms(t0)

        if limit is not None:
            matches = matches[:limit]
        include = bool(settings.get("include_breakdown", False)) if breakdown is None else breakdown

        routes = [
            RouteMatchOut(
                route=m.route,
                deviation_km=m.deviation_km,
                breakdown=_breakdown_out(m.breakdown) if include else None,
            )
            for m in matches
        ]
        return RouteSearchResponse(
            count=len(routes),
            routes=routes,
            meta={
                "funnel": stats.as_dict(),
                "truncated_routes": sum(1 for m in matches if m.breakdown.truncated),
                "via_points": len(req.stops),
                "performance": {
                    "total_ms": _ms(t_total),
                    "ensure_ready_ms": ensure_ready_ms,
                    "ranking_ms": ranking_ms,
                },
            },
        )

    @router.post("/{route_id}/deviation", response_model=RouteDeviationResponse)
    def route_deviation(route_id: str, req: SearchInput):
        catalog = ensure_ready()
        route = find_route(catalog, route_id)
        settings = get_settings() or {}

        b = explain_deviation(route, req, int(settings.get("max_interleavings", MAX_INTERLEAVINGS)))
        return RouteDeviationResponse(
            route_id=route.id,
            deviation_km=b.total_km,
            max_deviation_km=route.max_deviation_km,
            within_threshold=b.total_km <= route.max_deviation_km,
            has_capacity=has_capacity(route),
            breakdown=_breakdown_out(b),
        )

    @router.get("/{route_id}", response_model=Route)
    def get_route(route_id: str):
        catalog = ensure_ready()
        return find_route(catalog, route_id)

    @router.get("")
    def list_routes(searchable_only: bool = Query(False)):
        catalog = ensure_ready()
        routes = catalog.searchable() if searchable_only else catalog.routes
        return {
            "routes": [
                {
                    "id": r.id,
                    "creator_name": r.creator_name,
                    "available_passengers": r.available_passengers,
                    "max_deviation_km": r.max_deviation_km,
                    "stops": len(r.stops),
                }
                for r in routes
            ],
            "count": len(routes),
            "summary": catalog.summary(),
        }

    return router
