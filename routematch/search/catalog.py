"""
Read-only route catalog backed by two CSV files in the dataset directory.

  routes.csv       one row per published route
  route_stops.csv  one row per stop, linked by route_id

The loader applies the same rules the serving layer relies on: deleted rows
are dropped, only approved stops are kept (ordered by position), and the
free seat count is max_passengers minus current participants.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .config import DEFAULT_MAX_DEVIATION_KM, dataset_dir
from .geo import is_valid_coordinate
from .grouping import contributor_key
from .models import APPROVED, Route, Stop
from .ranking import has_capacity

logger = logging.getLogger(__name__)

ROUTES_FILE = "routes.csv"
STOPS_FILE = "route_stops.csv"

ROUTE_REQUIRED = {"id", "start_lat", "start_lng", "end_lat", "end_lng", "max_passengers"}
STOP_REQUIRED = {"id", "route_id", "lat", "lng"}

_ID_COLUMNS = {"id": str, "route_id": str, "creator_id": str, "application_id": str}


def row_flag_true(v) -> bool:
    if v is None: return False
    try:
        if pd.isna(v): return False
    except (TypeError, ValueError):
        pass
    try: return int(v) == 1
    except Exception: return str(v).strip().lower() in ("true","t","yes","y")


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        pass
    s = str(v).strip()
    return s or None


def _opt_float(v: Any) -> Optional[float]:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return None if pd.isna(f) else f


def _opt_datetime(v: Any) -> Optional[datetime]:
    if _opt_str(v) is None:
        return None
    ts = pd.to_datetime(v, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _read_csv(path: Path, required: set) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=_ID_COLUMNS)
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {sorted(missing)}")
    if "deleted" in df.columns:
        df = df[~df["deleted"].map(row_flag_true)]
    return df


def load_stops(path: Path) -> tuple[Dict[str, List[Stop]], int]:
    """Approved, non-deleted stops grouped by route id and sorted by position."""
    df = _read_csv(path, STOP_REQUIRED)

    if "status" in df.columns:
        status = df["status"].astype(str).str.strip().str.lower()
        df = df[status == APPROVED]
    if "position" not in df.columns:
        df = df.assign(position=range(len(df)))
    df = df.assign(position=pd.to_numeric(df["position"], errors="coerce"))
    df = df.sort_values(["route_id", "position"], kind="stable")

    out: Dict[str, List[Stop]] = {}
    skipped = 0
    for _, row in df.iterrows():
        stop_id = _opt_str(row.get("id"))
        route_id = _opt_str(row.get("route_id"))
        lat = _opt_float(row.get("lat"))
        lng = _opt_float(row.get("lng"))
        pos = _opt_float(row.get("position"))
        if stop_id is None or route_id is None or pos is None or lat is None or lng is None or not is_valid_coordinate(lat, lng):
            skipped += 1
            continue
        try:
            stop = Stop(
                id=stop_id,
                application_id=_opt_str(row.get("application_id")),
                position=int(pos),
                lat=lat,
                lng=lng,
                place_id=_opt_str(row.get("place_id")),
                formatted_address=_opt_str(row.get("formatted_address")),
                status=APPROVED,
            )
        except ValueError as e:
            logger.warning("Skipping stop %s: %s", row.get("id"), e)
            skipped += 1
            continue
        out.setdefault(route_id, []).append(stop)

    if skipped:
        logger.warning("Skipped %d stop rows with missing or invalid fields in %s", skipped, path.name)
    return out, skipped


def load_routes(
    path: Path,
    stops_by_route: Dict[str, List[Stop]],
    default_max_deviation_km: float,
) -> tuple[List[Route], int]:
    df = _read_csv(path, ROUTE_REQUIRED)

    routes: List[Route] = []
    skipped = 0
    for _, row in df.iterrows():
        route_id = _opt_str(row.get("id"))
        coords = [_opt_float(row.get(c)) for c in ("start_lat", "start_lng", "end_lat", "end_lng")]
        max_pax = _opt_float(row.get("max_passengers"))
        if route_id is None or max_pax is None or any(c is None for c in coords):
            skipped += 1
            continue
        s_lat, s_lng, e_lat, e_lng = coords
        if not (is_valid_coordinate(s_lat, s_lng) and is_valid_coordinate(e_lat, e_lng)):
            skipped += 1
            continue

        participants = _opt_float(row.get("participants")) or 0.0
        threshold = _opt_float(row.get("max_deviation_km"))
        if threshold is None:
            threshold = default_max_deviation_km

        try:
            route = Route(
                id=route_id,
                creator_id=_opt_str(row.get("creator_id")),
                creator_name=_opt_str(row.get("creator_name")) or "",
                description=_opt_str(row.get("description")),
                start_lat=s_lat,
                start_lng=s_lng,
                start_place_id=_opt_str(row.get("start_place_id")),
                start_formatted_address=_opt_str(row.get("start_formatted_address")),
                end_lat=e_lat,
                end_lng=e_lng,
                end_place_id=_opt_str(row.get("end_place_id")),
                end_formatted_address=_opt_str(row.get("end_formatted_address")),
                max_passengers=int(max_pax),
                available_passengers=max(0, int(max_pax) - int(participants)),
                leaving_at=_opt_datetime(row.get("leaving_at")),
                max_deviation_km=threshold,
                stops=stops_by_route.get(route_id, []),
            )
        except ValueError as e:
            logger.warning("Skipping route %s: %s", route_id, e)
            skipped += 1
            continue
        routes.append(route)

    if skipped:
        logger.warning("Skipped %d route rows with missing or invalid fields in %s", skipped, path.name)
    return routes, skipped


@dataclass
class RouteCatalog:
    routes: List[Route]
    source_dir: Optional[Path] = None
    skipped_routes: int = 0
    skipped_stops: int = 0
    _by_id: Dict[str, Route] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._by_id = {r.id: r for r in self.routes}

    def __len__(self) -> int:
        return len(self.routes)

    def get(self, route_id: str) -> Optional[Route]:
        return self._by_id.get(route_id)

    def searchable(self) -> List[Route]:
        return [r for r in self.routes if has_capacity(r)]

    def summary(self) -> Dict[str, Any]:
        return {
            "routes": len(self.routes),
            "searchable": len(self.searchable()),
            "stops": sum(len(r.stops) for r in self.routes),
            "contributors": sum(len({contributor_key(s) for s in r.stops}) for r in self.routes),
            "skipped_routes": self.skipped_routes,
            "skipped_stops": self.skipped_stops,
            "source_dir": str(self.source_dir) if self.source_dir else None,
        }


def load_route_catalog(
    directory: Optional[Path] = None,
    default_max_deviation_km: Optional[float] = None,
) -> RouteCatalog:
    d = Path(directory) if directory is not None else dataset_dir()
    routes_path = d / ROUTES_FILE
    stops_path = d / STOPS_FILE
    if not routes_path.exists():
        raise FileNotFoundError(f"{ROUTES_FILE} not found in {d}")

    threshold = DEFAULT_MAX_DEVIATION_KM if default_max_deviation_km is None else float(default_max_deviation_km)

    stops_by_route: Dict[str, List[Stop]] = {}
    skipped_stops = 0
    if stops_path.exists():
        stops_by_route, skipped_stops = load_stops(stops_path)
    else:
        logger.info("%s not found in %s; routes load without stops", STOPS_FILE, d)

    routes, skipped_routes = load_routes(routes_path, stops_by_route, threshold)
    catalog = RouteCatalog(
        routes=routes,
        source_dir=d,
        skipped_routes=skipped_routes,
        skipped_stops=skipped_stops,
    )
    logger.info(
        "Loaded route catalog from %s: %d routes (%d searchable), %d stops",
        d, len(routes), len(catalog.searchable()), sum(len(r.stops) for r in routes),
    )
    return catalog
