from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from .errors import GraphBuildError, NonFiniteResult, UnknownMetric
from .grid import Grid
from .models import MetricIndex, Node
from .units import KilometersPerHour, Meters, MetersPerSecond, MPH_TO_KMH

EARTH_RADIUS_M = 6_371_007.2


class Metric(ABC):
    needs_elevation = False

    def name(self) -> str:
        return type(self).__name__


class TagMetric(Metric):
    @abstractmethod
    def calc(self, tags: Mapping[str, str]) -> float: ...


class NodeMetric(Metric):
    @abstractmethod
    def calc(self, source: Node, dest: Node) -> float: ...


class CostMetric(Metric):
    @abstractmethod
    def calc(self, costs: Sequence[float], index: MetricIndex) -> float: ...


def _lookup(costs: Sequence[float], index: MetricIndex, name: str) -> float:
    slot = index.get(name)
    if slot is None:
        raise UnknownMetric.named(name)
    return costs[slot]


# Speeds (km/h)

_HIGHWAY_SPEED_KMH = {
    "primary": 100.0,
    "secondary": 80.0,
    "trunk_link": 80.0,
    "motorway_link": 70.0,
    "primary_link": 70.0,
    "secondary_link": 70.0,
    "tertiary": 70.0,
    "tertiary_link": 70.0,
    "service": 30.0,
    "living_street": 5.0,
}
_WALKING_MAXSPEEDS = {"walk", "DE:walk", "living_street", "DE:living_street"}


def _parse_maxspeed(raw: str | None, driver_max: float) -> float | None:
    if raw is None:
        return None
    value = raw.strip()
    if value == "none":
        return driver_max
    if value in _WALKING_MAXSPEEDS:
        return 10.0
    parts = value.lower().split()
    if not parts:
        return None
    number = parts[0].removesuffix("mph")
    try:
        speed = float(number)
    except ValueError:
        return None
    if "mph" in value.lower():
        speed *= MPH_TO_KMH
    return speed


def bounded_speed(tags: Mapping[str, str], driver_max: float) -> float:
    highway = tags.get("highway")
    if highway in {"motorway", "trunk"}:
        class_speed = driver_max
    else:
        class_speed = _HIGHWAY_SPEED_KMH.get(highway or "", 50.0)

    max_speed = _parse_maxspeed(tags.get("maxspeed"), driver_max)
    if max_speed is not None and 0.0 < max_speed <= driver_max:
        return max_speed
    return min(class_speed, driver_max)


class CarSpeed(TagMetric):
    def calc(self, tags: Mapping[str, str]) -> float:
        return bounded_speed(tags, 120.0)


class FastCarSpeed(TagMetric):
    def calc(self, tags: Mapping[str, str]) -> float:
        return bounded_speed(tags, 180.0)


class TruckSpeed(TagMetric):
    def calc(self, tags: Mapping[str, str]) -> float:
        return bounded_speed(tags, 80.0)


class BicycleSpeed(TagMetric):
    def calc(self, tags: Mapping[str, str]) -> float:
        return 18.0


class EdgeCount(TagMetric):
    def calc(self, tags: Mapping[str, str]) -> float:
        return 1.0


_UNSUITABILITY = {
    "primary": 5.0,
    "primary_link": 5.0,
    "secondary": 4.0,
    "secondary_link": 4.0,
    "tertiary": 3.0,
    "tertiary_link": 3.0,
    "road": 3.0,
    "bridleway": 3.0,
    "unclassified": 2.0,
    "residential": 2.0,
    "traffic_island": 2.0,
    "living_street": 1.0,
    "service": 1.0,
    "track": 1.0,
    "platform": 1.0,
    "pedestrian": 1.0,
    "path": 1.0,
    "footway": 1.0,
    "cycleway": 0.5,
}


def _cycling_allowed(tags: Mapping[str, str]) -> bool:
    bicycle = tags.get("bicycle")
    return "cycleway" in tags or (bicycle is not None and bicycle != "no")


class BicycleUnsuitability(TagMetric):
    """How unpleasant a way is to cycle on; cycle infrastructure scores lowest."""

    def calc(self, tags: Mapping[str, str]) -> float:
        if _cycling_allowed(tags):
            return 0.5
        if tags.get("sidewalk") == "yes":
            return 1.0
        return _UNSUITABILITY.get(tags.get("highway") or "", 6.0)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


class Distance(NodeMetric):
    def calc(self, source: Node, dest: Node) -> float:
        return haversine_m(source.lat, source.lon, dest.lat, dest.lon)


class HeightAscent(NodeMetric):
    needs_elevation = True

    def calc(self, source: Node, dest: Node) -> float:
        diff = dest.elevation - source.elevation
        return diff if diff > 0.0 else 0.0


class _GridMetric(NodeMetric):
    def __init__(self, grid: Grid):
        self.grid = grid


class GridX(_GridMetric):
    def calc(self, source: Node, dest: Node) -> float:
        return 20.0 if self.grid.index(source).x % 2 == 0 else 1.0


class GridY(_GridMetric):
    def calc(self, source: Node, dest: Node) -> float:
        return 20.0 if self.grid.index(source).y % 2 == 0 else 1.0


class ChessBoard(_GridMetric):
    def calc(self, source: Node, dest: Node) -> float:
        cell = self.grid.index(source)
        return 20.0 if cell.x % 2 == 0 and cell.y % 2 == 0 else 1.0


class TravelTime(CostMetric):
    """Seconds needed to cover the distance metric at the speed metric (km/h)."""

    def __init__(self, distance: Metric, speed: Metric):
        self.distance = distance
        self.speed = speed

    def name(self) -> str:
        return f"TravelTime: {self.distance.name()} / {self.speed.name()}"

    def calc(self, costs: Sequence[float], index: MetricIndex) -> float:
        dist = _lookup(costs, index, self.distance.name())
        speed = _lookup(costs, index, self.speed.name())
        try:
            time_s = (Meters(dist) / MetersPerSecond.from_kmh(KilometersPerHour(speed))).value
        except ZeroDivisionError:
            time_s = math.inf
        if not math.isfinite(time_s):
            raise NonFiniteResult.from_operands(time_s, distance=dist, speed=speed)
        return time_s


# Edge admissibility


class EdgeFilter(ABC):
    @abstractmethod
    def is_invalid(self, tags: Mapping[str, str]) -> bool: ...


_CAR_REJECTED = {
    "footway",
    "bridleway",
    "steps",
    "path",
    "cycleway",
    "track",
    "proposed",
    "construction",
    "pedestrian",
    "rest_area",
    "elevator",
    "raceway",
}

_BICYCLE_REJECTED = {
    "motorway",
    "motorway_link",
    "trunk",
    "trunk_link",
    "proposed",
    "steps",
    "elevator",
    "corridor",
    "raceway",
    "rest_area",
    "construction",
}


class CarEdgeFilter(EdgeFilter):
    def is_invalid(self, tags: Mapping[str, str]) -> bool:
        highway = tags.get("highway")
        return highway is None or highway in _CAR_REJECTED


class BicycleEdgeFilter(EdgeFilter):
    def is_invalid(self, tags: Mapping[str, str]) -> bool:
        if tags.get("bicycle") == "no":
            return True
        if _cycling_allowed(tags):
            return False
        sidewalk = tags.get("sidewalk")
        if sidewalk is not None and sidewalk != "no":
            return False
        highway = tags.get("highway")
        return highway is None or highway in _BICYCLE_REJECTED


# Registry


class MetricRegistry:
    """Registered metrics with their fixed slots in every edge's cost vector.

    Slots are assigned tag metrics first, then node metrics, then cost
    metrics, keeping registration order inside each group. Cost metrics rely
    on this: they may only read slots computed before them.
    """

    def __init__(
        self,
        tag_metrics: Sequence[TagMetric] = (),
        node_metrics: Sequence[NodeMetric] = (),
        cost_metrics: Sequence[CostMetric] = (),
        internal_metrics: Sequence[str] = (),
    ):
        self.tag_metrics: tuple[TagMetric, ...] = tuple(tag_metrics)
        self.node_metrics: tuple[NodeMetric, ...] = tuple(node_metrics)
        self.cost_metrics: tuple[CostMetric, ...] = tuple(cost_metrics)

        index: MetricIndex = {}
        for metric in (*self.tag_metrics, *self.node_metrics, *self.cost_metrics):
            name = metric.name()
            if name in index:
                raise GraphBuildError(
                    reason_code="metric_registry_invalid",
                    message=f"Metric {name!r} is registered twice.",
                    details={"name": name},
                )
            index[name] = len(index)
        self.metric_index = index

        for name in internal_metrics:
            if name not in index:
                raise UnknownMetric.named(name)
        self.internal_metrics: frozenset[str] = frozenset(internal_metrics)

    @property
    def cost_count(self) -> int:
        return len(self.metric_index)

    @property
    def emitted_names(self) -> list[str]:
        return [name for name in self.metric_index if name not in self.internal_metrics]

    @property
    def needs_elevation(self) -> bool:
        return any(m.needs_elevation for m in (*self.tag_metrics, *self.node_metrics, *self.cost_metrics))

    def tag_slots(self) -> list[tuple[int, TagMetric]]:
        return [(self.metric_index[m.name()], m) for m in self.tag_metrics]

    def node_slots(self) -> list[tuple[int, NodeMetric]]:
        return [(self.metric_index[m.name()], m) for m in self.node_metrics]

    def cost_slots(self) -> list[tuple[int, CostMetric]]:
        return [(self.metric_index[m.name()], m) for m in self.cost_metrics]

    def emitted_costs(self, costs: Sequence[float]) -> list[float]:
        return [costs[slot] for name, slot in self.metric_index.items() if name not in self.internal_metrics]
