from __future__ import annotations

from dataclasses import dataclass, field

COORDINATE_SCALE = 10_000_000.0


@dataclass(frozen=True)
class Node:
    source_id: int
    lat: float
    lon: float
    elevation: float = 0.0


@dataclass
class Edge:
    """Directed edge; `source`/`dest` are map node ids until renumbering."""

    source: int
    dest: int
    costs: list[float] = field(default_factory=list)


@dataclass(frozen=True)
class WayRecord:
    node_ids: tuple[int, ...]
    tags: dict[str, str] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class NodeRecord:
    id: int
    lat_raw: int
    lon_raw: int

    @property
    def lat(self) -> float:
        return self.lat_raw / COORDINATE_SCALE

    @property
    def lon(self) -> float:
        return self.lon_raw / COORDINATE_SCALE


MapRecord = WayRecord | NodeRecord
MetricIndex = dict[str, int]
