import pytest

from routematch.search.deviation import (
    calculate_deviation, deviation_for_stops, endpoint_deviation, explain_deviation,
)
from routematch.search.geo import haversine_km
from routematch.search.models import SearchStopInput


def test_no_via_points_is_zero():
    assert deviation_for_stops(0.0, 0.0, 1.0, 1.0, [], []) == 0.0


def test_via_point_on_stop_measures_to_leg_midpoints(make_stop):
    got = deviation_for_stops(
        0.0, 0.0, 2.0, 2.0, [make_stop(1.0, 1.0)], [SearchStopInput(lat=1.0, lng=1.0)]
    )
    # nearest representative is a leg midpoint, not the stop itself
    assert abs(got - 78.6) <= 5.0


def test_deviation_sums_over_via_points(make_stop):
    via = [SearchStopInput(lat=0.5, lng=0.5), SearchStopInput(lat=2.0, lng=2.0)]
    got = deviation_for_stops(0.0, 0.0, 2.0, 2.0, [make_stop(1.0, 1.0)], via)
    assert got == pytest.approx(haversine_km(2.0, 2.0, 1.5, 1.5))


def test_exact_match_scores_zero(make_route, make_search):
    route = make_route((0.0, 0.0), (1.0, 1.0))
    search = make_search((0.0, 0.0), (1.0, 1.0))
    assert calculate_deviation(route, search) == 0.0


def test_different_endpoints(make_route, make_search):
    route = make_route((0.0, 0.0), (1.0, 1.0))
    search = make_search((0.1, 0.1), (1.1, 1.1))
    got = calculate_deviation(route, search)
    assert got == pytest.approx(endpoint_deviation(route, search))
    assert abs(got - 31.4) <= 5.0


def test_route_with_creator_stop_and_via_point(make_route, make_search, make_stop):
    route = make_route((0.0, 0.0), (2.0, 2.0), stops=[make_stop(1.0, 1.0)])
    search = make_search((0.0, 0.0), (2.0, 2.0), via=[(1.0, 1.0)])
    assert abs(calculate_deviation(route, search) - 78.6) <= 5.0


def test_route_with_participant_stops(make_route, make_search, make_stop):
    stops = [make_stop(1.0, 1.0, application_id="app-1"), make_stop(2.0, 2.0, application_id="app-1")]
    route = make_route((0.0, 0.0), (3.0, 3.0), stops=stops)
    search = make_search((0.0, 0.0), (3.0, 3.0), via=[(1.5, 1.5)])

    got = calculate_deviation(route, search)

    assert got >= 0.0
    assert got <= 5.0


def test_no_stops_uses_start_end_midpoint(make_route, make_search):
    route = make_route((0.0, 0.0), (3.0, 3.0))
    search = make_search((0.0, 0.0), (3.0, 3.0), via=[(1.5, 1.5), (0.0, 0.0)])

    b = explain_deviation(route, search)

    assert b.orderings_considered == 0
    assert b.orderings_possible == 0
    assert b.groups == 0
    assert b.stop_km == pytest.approx(haversine_km(0.0, 0.0, 1.5, 1.5))


def test_best_ordering_wins_across_contributors(make_route, make_search, make_stop):
    # Two contributors; serving the far stop first leaves no leg near the via-point
    near = make_stop(1.0, 1.0, application_id="near", stop_id="near")
    far = make_stop(9.0, 9.0, application_id="far", stop_id="far")
    route = make_route((0.0, 0.0), (10.0, 10.0), stops=[far, near])
    search = make_search((0.0, 0.0), (10.0, 10.0), via=[(0.5, 0.5)])

    b = explain_deviation(route, search)

    assert b.groups == 2
    assert b.orderings_considered == 2
    assert b.truncated is False
    assert b.best_order == ["near", "far"]
    assert b.total_km == pytest.approx(0.0, abs=1e-9)
    assert calculate_deviation(route, search) == b.total_km


def test_ties_keep_first_enumerated_ordering(make_route, make_search, make_stop):
    a = make_stop(1.0, 1.0, stop_id="a")
    b = make_stop(2.0, 2.0, application_id="p", stop_id="b")
    route = make_route((0.0, 0.0), (3.0, 3.0), stops=[a, b])
    search = make_search((0.0, 0.0), (3.0, 3.0))

    assert explain_deviation(route, search).best_order == ["a", "b"]


def test_truncation_is_reported(make_route, make_search, make_stop):
    stops = [make_stop(float(i), float(i), application_id=f"p{i}") for i in range(1, 6)]
    route = make_route((0.0, 0.0), (6.0, 6.0), stops=stops)
    search = make_search((0.0, 0.0), (6.0, 6.0), via=[(3.0, 3.0)])

    b = explain_deviation(route, search, max_orderings=10)

    assert b.orderings_considered == 10
    assert b.orderings_possible == 120
    assert b.truncated is True
    assert b.as_dict()["truncated"] is True


def test_score_is_deterministic(make_route, make_search, make_stop):
    stops = [make_stop(0.3 * i, 0.2 * i, application_id=f"p{i % 3}") for i in range(1, 8)]
    route = make_route((0.0, 0.0), (3.0, 2.0), stops=stops)
    search = make_search((0.1, 0.0), (3.0, 2.1), via=[(1.0, 0.5), (2.0, 1.5)])

    first = calculate_deviation(route, search)
    for _ in range(3):
        assert calculate_deviation(route, search) == first


def test_antipodal_endpoints_score_without_error(make_route, make_search):
    route = make_route((-87.5, -180.0), (10.0, 10.0))
    search = make_search((87.5, 0.0), (10.0, 10.0))
    got = calculate_deviation(route, search)
    assert got == pytest.approx(haversine_km(-87.5, -180.0, 87.5, 0.0))
    assert got > 20000.0
