from __future__ import annotations

import pytest

from pbfgraph.errors import NonFiniteResult, UnknownMetric
from pbfgraph.grid import Grid
from pbfgraph.metrics import (
    BicycleEdgeFilter,
    BicycleUnsuitability,
    CarEdgeFilter,
    CarSpeed,
    ChessBoard,
    Distance,
    EdgeCount,
    FastCarSpeed,
    GridX,
    GridY,
    HeightAscent,
    TravelTime,
    TruckSpeed,
    haversine_m,
)
from pbfgraph.models import Node


def test_haversine_one_degree_longitude_at_equator() -> None:
    # One degree on a sphere of radius 6,371,007.2 m.
    dist = Distance().calc(Node(1, 0.0, 0.0), Node(2, 0.0, 1.0))
    assert dist == pytest.approx(111_195.05, abs=1.0)


def test_haversine_is_symmetric_and_zero_on_same_point() -> None:
    assert haversine_m(52.5, 13.4, 48.1, 11.6) == pytest.approx(haversine_m(48.1, 11.6, 52.5, 13.4))
    assert haversine_m(52.5, 13.4, 52.5, 13.4) == 0.0


def test_metric_names_default_to_class_name() -> None:
    assert CarSpeed().name() == "CarSpeed"
    assert Distance().name() == "Distance"
    assert TravelTime(Distance(), TruckSpeed()).name() == "TravelTime: Distance / TruckSpeed"


def test_speed_defaults_by_highway_class() -> None:
    car = CarSpeed()
    assert car.calc({"highway": "motorway"}) == 120.0
    assert car.calc({"highway": "primary"}) == 100.0
    assert car.calc({"highway": "secondary"}) == 80.0
    assert car.calc({"highway": "tertiary"}) == 70.0
    assert car.calc({"highway": "service"}) == 30.0
    assert car.calc({"highway": "living_street"}) == 5.0
    assert car.calc({"highway": "residential"}) == 50.0
    assert TruckSpeed().calc({"highway": "primary"}) == 80.0
    assert FastCarSpeed().calc({"highway": "trunk"}) == 180.0


def test_maxspeed_overrides_and_is_clamped() -> None:
    car = CarSpeed()
    assert car.calc({"highway": "primary", "maxspeed": "60"}) == 60.0
    assert car.calc({"highway": "primary", "maxspeed": "none"}) == 120.0
    assert car.calc({"highway": "residential", "maxspeed": "DE:walk"}) == 10.0
    assert car.calc({"highway": "residential", "maxspeed": "30 mph"}) == pytest.approx(48.28032)
    assert car.calc({"highway": "residential", "maxspeed": "20mph"}) == pytest.approx(32.18688)
    # Out of range or unreadable limits fall back to the class default.
    assert car.calc({"highway": "motorway", "maxspeed": "250"}) == 120.0
    assert car.calc({"highway": "primary", "maxspeed": "0"}) == 100.0
    assert car.calc({"highway": "primary", "maxspeed": "signals"}) == 100.0
    assert TruckSpeed().calc({"highway": "motorway", "maxspeed": "none"}) == 80.0


def test_bicycle_unsuitability() -> None:
    metric = BicycleUnsuitability()
    assert metric.calc({"highway": "primary", "cycleway": "lane"}) == 0.5
    assert metric.calc({"highway": "primary", "bicycle": "yes"}) == 0.5
    assert metric.calc({"highway": "primary", "sidewalk": "yes"}) == 1.0
    assert metric.calc({"highway": "primary"}) == 5.0
    assert metric.calc({"highway": "residential"}) == 2.0
    assert metric.calc({"highway": "cycleway"}) == 0.5
    assert metric.calc({"highway": "motorway"}) == 6.0
    assert metric.calc({"highway": "primary", "bicycle": "no"}) == 5.0


def test_height_ascent_counts_only_climbs() -> None:
    metric = HeightAscent()
    assert metric.needs_elevation
    assert metric.calc(Node(1, 0.0, 0.0, 100.0), Node(2, 0.0, 0.1, 130.5)) == 30.5
    assert metric.calc(Node(1, 0.0, 0.0, 130.5), Node(2, 0.0, 0.1, 100.0)) == 0.0


def test_edge_count() -> None:
    assert EdgeCount().calc({}) == 1.0


def test_travel_time_in_seconds() -> None:
    distance = Distance()
    speed = CarSpeed()
    metric = TravelTime(distance, speed)
    index = {"CarSpeed": 0, "Distance": 1}

    assert metric.calc([36.0, 1000.0], index) == pytest.approx(100.0)


def test_travel_time_unknown_metric() -> None:
    metric = TravelTime(Distance(), TruckSpeed())

    with pytest.raises(UnknownMetric) as excinfo:
        metric.calc([36.0, 1000.0], {"CarSpeed": 0, "Distance": 1})
    assert excinfo.value.reason_code == "metric_unknown"
    assert excinfo.value.details == {"name": "TruckSpeed"}


def test_travel_time_zero_speed_is_non_finite() -> None:
    metric = TravelTime(Distance(), CarSpeed())

    with pytest.raises(NonFiniteResult) as excinfo:
        metric.calc([0.0, 250.0], {"CarSpeed": 0, "Distance": 1})
    assert excinfo.value.reason_code == "metric_non_finite"
    assert excinfo.value.details["distance"] == 250.0
    assert excinfo.value.details["speed"] == 0.0


def test_grid_parity_metrics() -> None:
    grid = Grid(side_length=20, lat_min=-20.0, lat_max=20.0, lng_min=-10.0, lng_max=10.0).freeze()
    even_even = Node(1, -15.0, -7.5)  # cell (2, 2)
    odd_even = Node(2, -15.0, -6.5)  # cell (3, 2)
    other = Node(3, 0.0, 0.0)

    assert GridX(grid).calc(even_even, other) == 20.0
    assert GridX(grid).calc(odd_even, other) == 1.0
    assert GridY(grid).calc(odd_even, other) == 20.0
    assert ChessBoard(grid).calc(even_even, other) == 20.0
    assert ChessBoard(grid).calc(odd_even, other) == 1.0


def test_car_edge_filter() -> None:
    car = CarEdgeFilter()
    assert car.is_invalid({})
    assert car.is_invalid({"highway": "footway"})
    assert car.is_invalid({"highway": "cycleway"})
    assert car.is_invalid({"highway": "steps"})
    assert not car.is_invalid({"highway": "residential"})
    assert not car.is_invalid({"highway": "motorway"})


def test_bicycle_edge_filter() -> None:
    bike = BicycleEdgeFilter()
    assert bike.is_invalid({"highway": "residential", "bicycle": "no"})
    assert bike.is_invalid({"highway": "motorway"})
    assert bike.is_invalid({})
    assert not bike.is_invalid({"highway": "trunk", "cycleway": "track"})
    assert not bike.is_invalid({"highway": "trunk", "sidewalk": "both"})
    assert bike.is_invalid({"highway": "trunk", "sidewalk": "no"})
    assert not bike.is_invalid({"highway": "residential"})
