from __future__ import annotations

import gzip
import math
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from .errors import GraphBuildError
from .loader import GraphResult
from .logging_utils import log_event
from .settings import settings


def _format_cost(value: float, *, legacy: bool) -> str:
    if legacy and math.isfinite(value):
        # Legacy readers parse integers; round half away from zero.
        magnitude = abs(value)
        whole = math.floor(magnitude)
        if magnitude - whole >= 0.5:
            whole += 1
        return str(-whole if value < 0 and whole else whole)
    return repr(float(value))


def write_graph(result: GraphResult, stream: TextIO, *, legacy: bool | None = None) -> dict[str, int]:
    """Write the text graph format and return the counts written in its header."""
    legacy = settings.graph_legacy_format if legacy is None else legacy
    built_on = datetime.now(UTC).isoformat().replace("+00:00", "Z")

    stream.write("# Build by: pbfgraph\n")
    stream.write(f"# Build on: {built_on}\n")
    stream.write("# metrics: " + ", ".join(result.emitted_metric_names) + "\n\n")

    stream.write(f"{result.metric_count}\n")
    stream.write(f"{len(result.nodes)}\n")
    stream.write(f"{len(result.edges)}\n")

    node_suffix = " 0" if legacy else ""
    for i, node in enumerate(result.nodes):
        stream.write(f"{i} {node.source_id} {node.lat} {node.lon} {node.elevation}{node_suffix}\n")

    edge_suffix = " -1 -1" if legacy else ""
    for edge in result.edges:
        costs = " ".join(_format_cost(cost, legacy=legacy) for cost in result.emitted_costs(edge))
        stream.write(f"{edge.source} {edge.dest} {costs}{edge_suffix}\n")

    return {"metrics": result.metric_count, "nodes": len(result.nodes), "edges": len(result.edges)}


def write_graph_file(
    result: GraphResult,
    path: str | Path,
    *,
    zipped: bool = False,
    legacy: bool | None = None,
) -> dict[str, int]:
    output = Path(path)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        if zipped:
            with gzip.open(output, "wt", encoding="utf-8", compresslevel=9) as fobj:
                counts = write_graph(result, fobj, legacy=legacy)
        else:
            with open(output, "w", encoding="utf-8") as fobj:
                counts = write_graph(result, fobj, legacy=legacy)
    except OSError as exc:
        raise GraphBuildError(
            reason_code="graph_output_unavailable",
            message=f"Cannot write graph to {output}: {exc}",
            details={"path": str(output)},
        ) from exc
    log_event("graph_written", path=str(output), zipped=zipped, **counts)
    return counts
