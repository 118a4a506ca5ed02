#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from routematch.runtime import configure_logging
from routematch.search.catalog import load_route_catalog
from routematch.search.config import dataset_dir, load_search_settings
from routematch.search.models import SearchInput, SearchStopInput
from routematch.search.ranking import rank_routes


def _latlng(value: str) -> tuple[float, float]:
    try:
        lat_s, lng_s = value.split(",", 1)
        return float(lat_s), float(lng_s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LNG, got {value!r}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank catalog routes against one rider query")
    parser.add_argument("--data-dir", default=None, help="Dataset directory (default: PRIVATE_DATA_DIR)")
    parser.add_argument("--start", type=_latlng, required=True, help="Rider start as LAT,LNG")
    parser.add_argument("--end", type=_latlng, required=True, help="Rider end as LAT,LNG")
    parser.add_argument("--via", type=_latlng, action="append", default=[], help="Via-point LAT,LNG (repeatable)")
    parser.add_argument("--top", type=int, default=10, help="Number of routes to print")
    parser.add_argument("--max-interleavings", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--output", default=None, help="Optional path for the JSON report")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logger = configure_logging("rank_routes")

    settings = load_search_settings()
    data_dir = Path(args.data_dir).expanduser().resolve() if args.data_dir else dataset_dir()
    catalog = load_route_catalog(data_dir, settings["default_max_deviation_km"])

    query = SearchInput(
        start_lat=args.start[0], start_lng=args.start[1],
        end_lat=args.end[0], end_lng=args.end[1],
        stops=[SearchStopInput(lat=lat, lng=lng) for lat, lng in args.via],
    )
    max_orderings = args.max_interleavings or settings["max_interleavings"]
    workers = args.workers or settings["search_workers"]

    matches = rank_routes(catalog.routes, query, max_orderings=max_orderings, workers=workers)
    logger.info("Ranked %d of %d routes from %s", len(matches), len(catalog), data_dir)

    report = {
        "data_dir": str(data_dir),
        "query": query.model_dump(),
        "count": len(matches),
        "routes": [
            {
                "rank": i + 1,
                "route_id": m.route.id,
                "creator_name": m.route.creator_name,
                "deviation_km": round(m.deviation_km, 3),
                "max_deviation_km": m.route.max_deviation_km,
                "available_passengers": m.route.available_passengers,
                **{k: v for k, v in m.breakdown.as_dict().items() if k != "total_km"},
            }
            for i, m in enumerate(matches[: max(0, args.top)])
        ],
    }

    text = json.dumps(report, indent=2)
    if args.output:
        out = Path(args.output).expanduser().resolve()
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        logger.info("Wrote ranking report: %s", out)
    print(text)


if __name__ == "__main__":
    main()
