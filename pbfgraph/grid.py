from __future__ import annotations

import math
from dataclasses import dataclass

from .models import Node


@dataclass(frozen=True)
class Cell:
    x: int
    y: int


def _axis_cell(value: float, low: float, high: float, side_length: int) -> int:
    span = high - low
    if span <= 0.0:
        return 0
    cell_len = span / float(side_length)
    raw = math.ceil((value - low) / cell_len) - 1
    return max(0, min(side_length - 1, int(raw)))


@dataclass
class Grid:
    """Square cell index over the bounding box of all retained nodes.

    Bounds only ever expand while aggregating; once frozen the grid is read
    concurrently by grid-parity metrics.
    """

    side_length: int = 20
    lat_min: float = 90.0
    lat_max: float = -90.0
    lng_min: float = 180.0
    lng_max: float = -180.0
    frozen: bool = False

    def __post_init__(self) -> None:
        if self.side_length < 1:
            raise ValueError("grid side length must be at least 1")

    @property
    def is_empty(self) -> bool:
        return self.lat_min > self.lat_max or self.lng_min > self.lng_max

    def add(self, node: Node) -> None:
        if self.frozen:
            raise RuntimeError("grid bounds are frozen")
        self.lat_min = min(node.lat, self.lat_min)
        self.lat_max = max(node.lat, self.lat_max)
        self.lng_min = min(node.lon, self.lng_min)
        self.lng_max = max(node.lon, self.lng_max)

    def merge(self, other: "Grid") -> None:
        if self.frozen:
            raise RuntimeError("grid bounds are frozen")
        if other.is_empty:
            return
        self.lat_min = min(other.lat_min, self.lat_min)
        self.lat_max = max(other.lat_max, self.lat_max)
        self.lng_min = min(other.lng_min, self.lng_min)
        self.lng_max = max(other.lng_max, self.lng_max)

    def freeze(self) -> "Grid":
        self.frozen = True
        return self

    def index(self, node: Node) -> Cell:
        if self.is_empty:
            raise ValueError("grid has no nodes; add at least one before indexing")
        return Cell(
            x=_axis_cell(node.lon, self.lng_min, self.lng_max, self.side_length),
            y=_axis_cell(node.lat, self.lat_min, self.lat_max, self.side_length),
        )
