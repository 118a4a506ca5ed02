#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import sys
import os
from dataclasses import dataclass
from importlib import reload
from pathlib import Path
from typing import Any

import requests


PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@dataclass
class HttpResponse:
    status_code: int
    body: dict[str, Any]
    text: str


def _to_http_response(response) -> HttpResponse:
    try:
        body = response.json() if response.text else {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {"data": body}
    return HttpResponse(status_code=int(response.status_code), body=body, text=response.text)


class LiveClient:
    def __init__(self, api_base_url: str, timeout: int):
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> HttpResponse:
        url = f"{self.api_base_url}{path}"
        try:
            response = self._session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RuntimeError(f"Request failed for {url}: {exc}") from exc
        return _to_http_response(response)

    def get(self, path: str) -> HttpResponse:
        return self._request("GET", path)

    def post(self, path: str, payload: dict[str, Any]) -> HttpResponse:
        return self._request("POST", path, payload=payload)


class InProcessClient:
    def __init__(self):
        from fastapi.testclient import TestClient
        import backend.main as bm

        bm = reload(bm)
        self._client = TestClient(bm.app)

    def get(self, path: str) -> HttpResponse:
        return _to_http_response(self._client.get(path))

    def post(self, path: str, payload: dict[str, Any]) -> HttpResponse:
        return _to_http_response(self._client.post(path, json=payload))


def _require_keys(obj: dict[str, Any], keys: list[str], label: str) -> list[str]:
    missing = [key for key in keys if key not in obj]
    if missing:
        return [f"{label}: missing keys {missing}"]
    return []


def _pick_route(client: LiveClient | InProcessClient, route_id: str | None) -> dict[str, Any]:
    if route_id:
        resp = client.get(f"/routes/{route_id}")
        if resp.status_code != 200:
            raise RuntimeError(f"GET /routes/{route_id} failed: {resp.status_code} {resp.text}")
        return resp.body

    listing = client.get("/routes?searchable_only=true")
    if listing.status_code != 200:
        raise RuntimeError(f"GET /routes failed: {listing.status_code} {listing.text}")
    ids = [str(item.get("id", "")).strip() for item in listing.body.get("routes", [])]
    ids = [i for i in ids if i]
    if not ids:
        raise RuntimeError("Need at least one searchable route from /routes")

    resp = client.get(f"/routes/{ids[0]}")
    if resp.status_code != 200:
        raise RuntimeError(f"GET /routes/{ids[0]} failed: {resp.status_code} {resp.text}")
    return resp.body


def run_smoke(
    *,
    api_base_url: str,
    in_process: bool,
    timeout_seconds: int,
    route_id: str | None,
    output_path: str | None,
    client: LiveClient | InProcessClient | None = None,
) -> int:
    if client is None:
        client = InProcessClient() if in_process else LiveClient(api_base_url=api_base_url, timeout=timeout_seconds)

    reload_resp = client.post("/admin/reload", payload={})
    if reload_resp.status_code not in {200, 204}:
        print(f"FAIL: POST /admin/reload returned {reload_resp.status_code}")
        return 2

    route = _pick_route(client, route_id)

    # Query built from the route's own endpoints and first stops
    stops = route.get("stops", [])
    search_payload = {
        "start_lat": route["start_lat"],
        "start_lng": route["start_lng"],
        "end_lat": route["end_lat"],
        "end_lng": route["end_lng"],
        "stops": [{"lat": s["lat"], "lng": s["lng"]} for s in stops[:2]],
    }

    search_resp = client.post("/routes/search?breakdown=true", payload=search_payload)
    deviation_resp = client.post(f"/routes/{route['id']}/deviation", payload=search_payload)

    errors: list[str] = []
    if search_resp.status_code != 200:
        errors.append(f"/routes/search returned {search_resp.status_code}")
    if deviation_resp.status_code != 200:
        errors.append(f"/routes/{{id}}/deviation returned {deviation_resp.status_code}")

    meta = search_resp.body.get("meta", {})
    errors.extend(_require_keys(meta, ["funnel", "performance"], "search.meta"))
    errors.extend(_require_keys(meta.get("performance", {}), ["total_ms", "ensure_ready_ms", "ranking_ms"], "search.meta.performance"))
    errors.extend(
        _require_keys(
            deviation_resp.body,
            ["deviation_km", "max_deviation_km", "within_threshold", "breakdown"],
            "deviation",
        )
    )

    deviations = [r.get("deviation_km", 0.0) for r in search_resp.body.get("routes", [])]
    if deviations != sorted(deviations):
        errors.append("search results are not sorted by deviation_km")

    returned_ids = [r.get("route", {}).get("id") for r in search_resp.body.get("routes", [])]
    in_results_expected = deviation_resp.body.get("within_threshold") and deviation_resp.body.get("has_capacity")
    if in_results_expected and route["id"] not in returned_ids:
        errors.append(f"route {route['id']} is within threshold but missing from search results")

    summary = {
        "api_base_url": api_base_url,
        "in_process": in_process,
        "route_id": route["id"],
        "status_codes": {
            "search": search_resp.status_code,
            "deviation": deviation_resp.status_code,
        },
        "search_count": search_resp.body.get("count"),
        "self_deviation_km": deviation_resp.body.get("deviation_km"),
        "errors": errors,
    }

    if output_path:
        out = Path(output_path).expanduser().resolve()
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        print(f"Wrote smoke report: {out}")

    if errors:
        print("FAIL: backend smoke checks failed")
        for err in errors:
            print(f"  - {err}")
        return 1

    print("PASS: backend smoke checks passed")
    print(f"Route: {route['id']} self deviation={summary['self_deviation_km']}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Backend smoke test for route search endpoints")
    parser.add_argument("--api-base-url", default="http://localhost:8000", help="Base URL for live backend")
    parser.add_argument("--in-process", action="store_true", help="Use in-process FastAPI TestClient instead of live HTTP")
    parser.add_argument("--timeout-seconds", type=int, default=30)
    parser.add_argument("--route-id", default=None)
    parser.add_argument("--output", default="artifacts/bench/smoke_report.json")
    args = parser.parse_args()

    code = run_smoke(
        api_base_url=args.api_base_url,
        in_process=bool(args.in_process),
        timeout_seconds=max(1, int(args.timeout_seconds)),
        route_id=args.route_id,
        output_path=args.output,
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
