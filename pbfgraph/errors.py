from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "map_source_unavailable",
        "map_record_invalid",
        "srtm_tile_offset_invalid",
        "metric_unknown",
        "metric_non_finite",
        "metric_registry_invalid",
        "graph_output_unavailable",
        "graph_build_failed",
    }
)


@dataclass
class GraphBuildError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def normalize_reason_code(reason_code: str, *, default: str = "graph_build_failed") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default


@dataclass
class TileOffsetError(GraphBuildError):
    @classmethod
    def size_mismatch(cls, *, path: str, size: int, expected: int) -> "TileOffsetError":
        return cls(
            reason_code="srtm_tile_offset_invalid",
            message=f"Tile {path} holds {size} samples; expected {expected} for the configured tile size.",
            details={"path": path, "size": size, "expected": expected},
        )


@dataclass
class MapRecordError(GraphBuildError):
    @classmethod
    def invalid(cls, *, kind: str, reason: str) -> "MapRecordError":
        return cls(
            reason_code="map_record_invalid",
            message=f"Invalid {kind} record: {reason}",
            details={"kind": kind},
        )


@dataclass
class MetricError(GraphBuildError):
    metric: str | None = None
    edge: tuple[int, int] | None = None

    def at_edge(self, metric: str, source: int, dest: int) -> "MetricError":
        """Copy of this error naming the metric and edge that raised it."""
        return replace(
            self,
            metric=metric,
            edge=(source, dest),
            message=f"{self.message} (metric={metric!r}, edge={source}->{dest})",
        )


@dataclass
class UnknownMetric(MetricError):
    @classmethod
    def named(cls, name: str) -> "UnknownMetric":
        return cls(
            reason_code="metric_unknown",
            message=f"Metric {name!r} is not registered.",
            details={"name": name},
        )


@dataclass
class NonFiniteResult(MetricError):
    @classmethod
    def from_operands(cls, value: float, **operands: float) -> "NonFiniteResult":
        rendered = ", ".join(f"{key}={val}" for key, val in operands.items())
        return cls(
            reason_code="metric_non_finite",
            message=f"Metric produced non-finite value {value} from {rendered or 'no operands'}.",
            details={"value": value, **operands},
        )
