from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .grid import Grid
from .metrics import (
    BicycleEdgeFilter,
    BicycleSpeed,
    BicycleUnsuitability,
    CarEdgeFilter,
    CarSpeed,
    ChessBoard,
    Distance,
    EdgeCount,
    EdgeFilter,
    FastCarSpeed,
    GridX,
    GridY,
    HeightAscent,
    MetricRegistry,
    TagMetric,
    TravelTime,
    TruckSpeed,
)


@dataclass(frozen=True)
class TravelProfile:
    name: str
    edge_filter: EdgeFilter
    registry: MetricRegistry


def _motor_profile(name: str, speed: TagMetric) -> TravelProfile:
    distance = Distance()
    return TravelProfile(
        name=name,
        edge_filter=CarEdgeFilter(),
        registry=MetricRegistry(
            tag_metrics=[speed],
            node_metrics=[distance, HeightAscent()],
            cost_metrics=[TravelTime(distance, speed)],
            internal_metrics=[speed.name()],
        ),
    )


def _car(grid: Grid) -> TravelProfile:
    return _motor_profile("car", CarSpeed())


def _fast_car(grid: Grid) -> TravelProfile:
    return _motor_profile("fast_car", FastCarSpeed())


def _truck(grid: Grid) -> TravelProfile:
    return _motor_profile("truck", TruckSpeed())


def _bicycle(grid: Grid) -> TravelProfile:
    distance = Distance()
    speed = BicycleSpeed()
    return TravelProfile(
        name="bicycle",
        edge_filter=BicycleEdgeFilter(),
        registry=MetricRegistry(
            tag_metrics=[BicycleUnsuitability(), speed],
            node_metrics=[distance, HeightAscent()],
            cost_metrics=[TravelTime(distance, speed)],
            internal_metrics=[speed.name()],
        ),
    )


def _grid(grid: Grid) -> TravelProfile:
    # Synthetic checkerboard weights for benchmarking multi-criteria search.
    return TravelProfile(
        name="grid",
        edge_filter=CarEdgeFilter(),
        registry=MetricRegistry(
            tag_metrics=[EdgeCount()],
            node_metrics=[Distance(), GridX(grid), GridY(grid), ChessBoard(grid)],
        ),
    )


PROFILES: dict[str, Callable[[Grid], TravelProfile]] = {
    "car": _car,
    "fast_car": _fast_car,
    "truck": _truck,
    "bicycle": _bicycle,
    "grid": _grid,
}


def build_profile(name: str, grid: Grid) -> TravelProfile:
    key = str(name or "").strip().lower()
    factory = PROFILES.get(key)
    if factory is None:
        raise ValueError(f"unknown travel profile {name!r}; expected one of {sorted(PROFILES)}")
    return factory(grid)
