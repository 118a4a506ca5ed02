from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


APPROVED = "approved"


def _lat(**kwargs: Any):
    return Field(..., ge=-90.0, le=90.0, allow_inf_nan=False, **kwargs)


def _lng(**kwargs: Any):
    return Field(..., ge=-180.0, le=180.0, allow_inf_nan=False, **kwargs)


# -----------------------------
# Route / stop records
# -----------------------------

class Stop(BaseModel):
    id: str
    application_id: Optional[str] = Field(
        None,
        description="Accepted application that contributed the stop; None means the route creator",
    )
    position: int = Field(0, description="Display/insertion order within the route")
    lat: float = _lat()
    lng: float = _lng()
    place_id: Optional[str] = None
    formatted_address: Optional[str] = None
    status: str = APPROVED


class Route(BaseModel):
    id: str
    creator_id: Optional[str] = None
    creator_name: str = ""
    description: Optional[str] = None
    start_lat: float = _lat()
    start_lng: float = _lng()
    start_place_id: Optional[str] = None
    start_formatted_address: Optional[str] = None
    end_lat: float = _lat()
    end_lng: float = _lng()
    end_place_id: Optional[str] = None
    end_formatted_address: Optional[str] = None
    max_passengers: int = Field(0, ge=0)
    available_passengers: int = Field(0, ge=0)
    leaving_at: Optional[datetime] = None
    max_deviation_km: float = Field(
        50.0,
        ge=0.0,
        description="Deviation budget in km beyond which the route is never a match",
    )
    stops: List[Stop] = []


# -----------------------------
# Rider query
# -----------------------------

class SearchStopInput(BaseModel):
    lat: float = _lat()
    lng: float = _lng()


class SearchInput(BaseModel):
    start_lat: float = _lat()
    start_lng: float = _lng()
    end_lat: float = _lat()
    end_lng: float = _lng()
    stops: List[SearchStopInput] = Field(
        default_factory=list,
        description="Via-points the rider wants the route to pass near",
    )


# -----------------------------
# Responses
# -----------------------------

class DeviationBreakdownOut(BaseModel):
    endpoint_km: float
    stop_km: float
    total_km: float
    groups: int
    orderings_considered: int
    orderings_possible: int
    truncated: bool
    best_order: List[str] = []


class RouteMatchOut(BaseModel):
    route: Route
    deviation_km: float
    breakdown: Optional[DeviationBreakdownOut] = None


class RouteSearchResponse(BaseModel):
    count: int
    routes: List[RouteMatchOut]
    meta: Dict[str, Any] = {}


class RouteDeviationResponse(BaseModel):
    route_id: str
    deviation_km: float
    max_deviation_km: float
    within_threshold: bool
    has_capacity: bool
    breakdown: DeviationBreakdownOut
