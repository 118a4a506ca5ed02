#!/usr/bin/env python3
"""
Write a synthetic route catalog (routes.csv + route_stops.csv) for local
runs of the backend and the ranking CLI.

Routes start and end around a city centre; each route gets a few creator
stops plus stops from a random number of participants, all placed near the
straight line between start and end. A share of stops is left pending or
rejected so the loader's approval filter has something to do.
"""
from __future__ import annotations

import argparse
import os
import sys
import uuid
from pathlib import Path

import numpy as np
import pandas as pd

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from routematch.runtime import configure_logging

# Vilnius
DEFAULT_CENTER = (54.6872, 25.2797)


def _uuid(rng: np.random.Generator) -> str:
    return str(uuid.UUID(bytes=rng.bytes(16), version=4))


def build_demo_catalog(
    n_routes: int,
    max_participants: int,
    max_stops_per_contributor: int,
    spread_deg: float,
    seed: int,
    center: tuple[float, float] = DEFAULT_CENTER,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    rng = np.random.default_rng(seed)
    route_rows = []
    stop_rows = []

    for i in range(n_routes):
        route_id = _uuid(rng)
        start = np.array(center) + rng.normal(0, spread_deg, size=2)
        end = np.array(center) + rng.normal(0, spread_deg * 3, size=2)
        max_pax = int(rng.integers(1, 5))

        n_participants = int(rng.integers(0, max_participants + 1))
        contributors = [None] + [_uuid(rng) for _ in range(n_participants)]

        position = 0
        for app_id in contributors:
            n_stops = int(rng.integers(0 if app_id is None else 1, max_stops_per_contributor + 1))
            ts = np.sort(rng.uniform(0.05, 0.95, size=n_stops))
            for t in ts:
                lat, lng = start + t * (end - start) + rng.normal(0, spread_deg / 10, size=2)
                status = rng.choice(["approved", "pending", "rejected"], p=[0.8, 0.15, 0.05])
                stop_rows.append({
                    "id": _uuid(rng),
                    "route_id": route_id,
                    "application_id": app_id or "",
                    "position": position,
                    "lat": round(float(lat), 6),
                    "lng": round(float(lng), 6),
                    "place_id": "",
                    "formatted_address": "",
                    "status": status,
                    "deleted": 0,
                })
                position += 1

        route_rows.append({
            "id": route_id,
            "creator_id": _uuid(rng),
            "creator_name": f"Driver {i + 1:03d}",
            "description": "",
            "start_lat": round(float(start[0]), 6),
            "start_lng": round(float(start[1]), 6),
            "end_lat": round(float(end[0]), 6),
            "end_lng": round(float(end[1]), 6),
            "max_passengers": max_pax,
            "participants": min(n_participants, max_pax),
            "leaving_at": "",
            "max_deviation_km": float(rng.choice([10.0, 25.0, 50.0])),
            "deleted": 0,
        })

    return pd.DataFrame(route_rows), pd.DataFrame(stop_rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic route catalog")
    parser.add_argument("--out", default=os.getenv("PRIVATE_DATA_DIR", "./data/private"), help="Output directory")
    parser.add_argument("--routes", type=int, default=200)
    parser.add_argument("--max-participants", type=int, default=3)
    parser.add_argument("--max-stops", type=int, default=3, help="Max stops per contributor")
    parser.add_argument("--spread-deg", type=float, default=0.05)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    logger = configure_logging("generate_demo_routes")
    routes, stops = build_demo_catalog(
        n_routes=max(1, args.routes),
        max_participants=max(0, args.max_participants),
        max_stops_per_contributor=max(1, args.max_stops),
        spread_deg=args.spread_deg,
        seed=args.seed,
    )

    out = Path(args.out).expanduser().resolve()
    out.mkdir(parents=True, exist_ok=True)
    routes.to_csv(out / "routes.csv", index=False)
    stops.to_csv(out / "route_stops.csv", index=False)
    logger.info("Wrote %d routes and %d stops to %s", len(routes), len(stops), out)


if __name__ == "__main__":
    main()
