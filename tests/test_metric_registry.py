import pytest

from pbfgraph.errors import GraphBuildError, UnknownMetric
from pbfgraph.grid import Grid
from pbfgraph.metrics import CarSpeed, Distance, EdgeCount, HeightAscent, MetricRegistry, TravelTime
from pbfgraph.profiles import PROFILES, build_profile


def test_indices_follow_tag_node_cost_order() -> None:
    distance = Distance()
    speed = CarSpeed()
    registry = MetricRegistry(
        cost_metrics=[TravelTime(distance, speed)],
        node_metrics=[distance],
        tag_metrics=[speed],
    )

    assert registry.metric_index == {
        "CarSpeed": 0,
        "Distance": 1,
        "TravelTime: Distance / CarSpeed": 2,
    }
    assert list(registry.metric_index) == ["CarSpeed", "Distance", "TravelTime: Distance / CarSpeed"]


def test_registration_order_kept_within_group() -> None:
    registry = MetricRegistry(
        tag_metrics=[EdgeCount(), CarSpeed()],
        node_metrics=[HeightAscent(), Distance()],
    )

    assert registry.metric_index == {"EdgeCount": 0, "CarSpeed": 1, "HeightAscent": 2, "Distance": 3}
    assert registry.cost_count == 4
    assert registry.needs_elevation


def test_internal_metrics_are_skipped_when_emitting() -> None:
    distance = Distance()
    speed = CarSpeed()
    registry = MetricRegistry(
        tag_metrics=[speed],
        node_metrics=[distance],
        cost_metrics=[TravelTime(distance, speed)],
        internal_metrics=["CarSpeed"],
    )

    assert registry.cost_count == 3
    assert registry.emitted_names == ["Distance", "TravelTime: Distance / CarSpeed"]
    assert registry.emitted_costs([50.0, 1000.0, 72.0]) == [1000.0, 72.0]
    assert not registry.needs_elevation


def test_internal_metric_must_be_registered() -> None:
    with pytest.raises(UnknownMetric):
        MetricRegistry(node_metrics=[Distance()], internal_metrics=["CarSpeed"])


def test_duplicate_metric_names_rejected() -> None:
    with pytest.raises(GraphBuildError) as excinfo:
        MetricRegistry(tag_metrics=[CarSpeed()], node_metrics=[Distance(), Distance()])
    assert excinfo.value.reason_code == "metric_registry_invalid"


def test_profiles_assemble_registries() -> None:
    grid = Grid()
    for name in PROFILES:
        profile = build_profile(name, grid)
        assert profile.name == name
        assert profile.registry.cost_count >= 2

    car = build_profile("CAR", grid)
    assert car.registry.emitted_names == ["Distance", "HeightAscent", "TravelTime: Distance / CarSpeed"]
    bicycle = build_profile("bicycle", grid)
    assert bicycle.registry.emitted_names[0] == "BicycleUnsuitability"

    with pytest.raises(ValueError):
        build_profile("hovercraft", grid)
