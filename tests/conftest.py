# tests/conftest.py
import os
import json
import itertools
from pathlib import Path
from importlib import reload

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from routematch.search.models import Route, SearchInput, SearchStopInput, Stop

@pytest.fixture(autouse=True)
def _env_test_data(monkeypatch, tmp_path: Path):
    """
    Prepare a tiny route catalog under a temp PRIVATE_DATA_DIR unless
    TEST_DATASET=real.
    """
    if os.getenv("TEST_DATASET", "toy").lower() == "real":
        # Real data should be picked up by load_route_catalog() in the app
        yield
        return

    data_root = tmp_path / "data"
    data_root.mkdir(parents=True, exist_ok=True)

    # R1  exact corridor (0,0)->(3,3), one participant's two stops + a pending stop
    # R2  short route (0,0)->(1,1), tight threshold
    # R3  full: no seats left
    # R4  far away
    # R5  deleted
    # R6  same corridor as R1, no stops
    routes = pd.DataFrame(
        [
            {"id": "R1", "creator_id": "U1", "creator_name": "Ada", "start_lat": 0.0, "start_lng": 0.0,
             "end_lat": 3.0, "end_lng": 3.0, "max_passengers": 3, "participants": 1,
             "leaving_at": "2025-09-02T08:30:00Z", "max_deviation_km": 500.0, "deleted": 0},
            {"id": "R2", "creator_id": "U2", "creator_name": "Bo", "start_lat": 0.0, "start_lng": 0.0,
             "end_lat": 1.0, "end_lng": 1.0, "max_passengers": 2, "participants": 0,
             "leaving_at": "", "max_deviation_km": 50.0, "deleted": 0},
            {"id": "R3", "creator_id": "U3", "creator_name": "Cy", "start_lat": 0.0, "start_lng": 0.0,
             "end_lat": 3.0, "end_lng": 3.0, "max_passengers": 2, "participants": 2,
             "leaving_at": "", "max_deviation_km": 500.0, "deleted": 0},
            {"id": "R4", "creator_id": "U4", "creator_name": "Di", "start_lat": 10.0, "start_lng": 10.0,
             "end_lat": 11.0, "end_lng": 11.0, "max_passengers": 4, "participants": 0,
             "leaving_at": "", "max_deviation_km": 50.0, "deleted": 0},
            {"id": "R5", "creator_id": "U5", "creator_name": "Ed", "start_lat": 0.0, "start_lng": 0.0,
             "end_lat": 3.0, "end_lng": 3.0, "max_passengers": 4, "participants": 0,
             "leaving_at": "", "max_deviation_km": 500.0, "deleted": 1},
            {"id": "R6", "creator_id": "U6", "creator_name": "Fay", "start_lat": 0.0, "start_lng": 0.0,
             "end_lat": 3.0, "end_lng": 3.0, "max_passengers": 1, "participants": 0,
             "leaving_at": "", "max_deviation_km": 100.0, "deleted": 0},
        ]
    )
    routes.to_csv(data_root / "routes.csv", index=False)

    stops = pd.DataFrame(
        [
            {"id": "S2", "route_id": "R1", "application_id": "A1", "position": 1, "lat": 2.0, "lng": 2.0,
             "status": "approved", "deleted": 0},
            {"id": "S1", "route_id": "R1", "application_id": "A1", "position": 0, "lat": 1.0, "lng": 1.0,
             "status": "approved", "deleted": 0},
            {"id": "S3", "route_id": "R1", "application_id": "A2", "position": 2, "lat": 5.0, "lng": 5.0,
             "status": "pending", "deleted": 0},
            {"id": "S4", "route_id": "R4", "application_id": "", "position": 0, "lat": 10.5, "lng": 10.5,
             "status": "approved", "deleted": 0},
            {"id": "S5", "route_id": "R4", "application_id": "", "position": 1, "lat": 10.7, "lng": 10.7,
             "status": "approved", "deleted": 1},
        ]
    )
    stops.to_csv(data_root / "route_stops.csv", index=False)

    (data_root / "search_settings.json").write_text(
        json.dumps({"max_interleavings": 500, "search_workers": 1}), encoding="utf-8"
    )

    # Point the app to our temp data dir
    monkeypatch.setenv("PRIVATE_DATA_DIR", str(data_root))
    monkeypatch.setenv("DEBUG_API", "1")

    yield  # tmp_path is auto-cleaned


@pytest.fixture
def app(_env_test_data):
    # Import AFTER env vars/files so startup readers find our toy data
    import backend.main as bm
    bm = reload(bm)
    return bm.app


@pytest.fixture
def client(app):
    c = TestClient(app)

    r = c.post("/admin/reload")

    if os.getenv("TEST_DATASET", "toy").lower() == "real":
        assert r.status_code == 200, f"[real mode] /admin/reload failed: {r.status_code} {r.text}"
    else:
        assert r.status_code in (200, 204), f"[toy mode] /admin/reload failed: {r.status_code} {r.text}"

    return c


# ---- model builders ---------------------------------------------------------

@pytest.fixture
def make_stop():
    counter = itertools.count(1)

    def _make(lat, lng, application_id=None, stop_id=None, position=None):
        n = next(counter)
        return Stop(
            id=stop_id or f"stop-{n}",
            application_id=application_id,
            position=n if position is None else position,
            lat=lat,
            lng=lng,
        )

    return _make


@pytest.fixture
def make_route():
    counter = itertools.count(1)

    def _make(start, end, stops=(), available=1, max_deviation_km=1000.0, route_id=None):
        return Route(
            id=route_id or f"route-{next(counter)}",
            start_lat=start[0],
            start_lng=start[1],
            end_lat=end[0],
            end_lng=end[1],
            max_passengers=max(available, 1),
            available_passengers=available,
            max_deviation_km=max_deviation_km,
            stops=list(stops),
        )

    return _make


@pytest.fixture
def make_search():
    def _make(start, end, via=()):
        return SearchInput(
            start_lat=start[0],
            start_lng=start[1],
            end_lat=end[0],
            end_lng=end[1],
            stops=[SearchStopInput(lat=lat, lng=lng) for lat, lng in via],
        )

    return _make


# Conditional test skipping
def pytest_collection_modifyitems(config, items):
    """Skip tests based on available resources"""
    for item in items:
        if "real_data" in item.keywords and os.getenv("TEST_DATASET", "toy").lower() != "real":
            item.add_marker(pytest.mark.skip(reason="Real dataset not available"))

        # Skip performance tests in quick mode
        if "performance" in item.keywords and os.getenv("PYTEST_QUICK"):
            item.add_marker(pytest.mark.skip(reason="Skipping performance tests in quick mode"))
