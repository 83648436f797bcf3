from __future__ import annotations

import gzip
import io
from pathlib import Path

import pytest

from pbfgraph.errors import GraphBuildError
from pbfgraph.loader import GraphResult
from pbfgraph.metrics import CarSpeed, Distance, EdgeCount, MetricRegistry
from pbfgraph.models import Edge, Node
from pbfgraph.writer import _format_cost, write_graph, write_graph_file


def _result() -> GraphResult:
    registry = MetricRegistry(
        tag_metrics=[CarSpeed(), EdgeCount()],
        node_metrics=[Distance()],
        internal_metrics=["CarSpeed"],
    )
    nodes = [Node(11, 10.5, 20.5, 500.0), Node(12, 10.5, 20.6, 520.0)]
    edges = [Edge(0, 1, [50.0, 1.0, 2.5]), Edge(1, 0, [50.0, 1.0, 1234.4])]
    return GraphResult(nodes=nodes, edges=edges, registry=registry)


def _split(text: str) -> tuple[list[str], list[str]]:
    header, body = text.split("\n\n", 1)
    return header.splitlines(), body.splitlines()


def test_header_and_counts_match_body() -> None:
    buffer = io.StringIO()
    counts = write_graph(_result(), buffer, legacy=True)

    header, body = _split(buffer.getvalue())
    assert header[0] == "# Build by: pbfgraph"
    assert header[1].startswith("# Build on: ") and header[1].endswith("Z")
    assert header[2] == "# metrics: EdgeCount, Distance"

    metric_count, node_count, edge_count = (int(line) for line in body[:3])
    assert (metric_count, node_count, edge_count) == (2, 2, 2)
    assert counts == {"metrics": 2, "nodes": 2, "edges": 2}
    assert len(body) == 3 + node_count + edge_count


def test_legacy_lines_round_costs_and_pad_columns() -> None:
    buffer = io.StringIO()
    write_graph(_result(), buffer, legacy=True)
    _, body = _split(buffer.getvalue())

    assert body[3] == "0 11 10.5 20.5 500.0 0"
    assert body[4] == "1 12 10.5 20.6 520.0 0"
    assert body[5] == "0 1 1 3 -1 -1"
    assert body[6] == "1 0 1 1234 -1 -1"


def test_plain_lines_keep_float_costs() -> None:
    buffer = io.StringIO()
    write_graph(_result(), buffer, legacy=False)
    _, body = _split(buffer.getvalue())

    assert body[3] == "0 11 10.5 20.5 500.0"
    assert body[5] == "0 1 1.0 2.5"
    assert body[6] == "1 0 1.0 1234.4"


def test_legacy_rounding_is_half_away_from_zero() -> None:
    assert _format_cost(0.49999999999999994, legacy=True) == "0"
    assert _format_cost(2.5, legacy=True) == "3"
    assert _format_cost(-2.5, legacy=True) == "-3"
    assert _format_cost(-0.4, legacy=True) == "0"
    assert _format_cost(1e16 + 2, legacy=True) == "10000000000000002"
    assert _format_cost(float("inf"), legacy=True) == "inf"


def test_gzip_output_is_readable(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "graph.txt.gz"

    counts = write_graph_file(_result(), target, zipped=True, legacy=True)

    with gzip.open(target, "rt", encoding="utf-8") as fobj:
        text = fobj.read()
    assert text.startswith("# Build by: pbfgraph\n")
    assert counts["edges"] == 2
    assert text.rstrip("\n").endswith("1 0 1 1234 -1 -1")


def test_unwritable_output_raises_reason_code(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(GraphBuildError) as excinfo:
        write_graph_file(_result(), blocker / "graph.txt")
    assert excinfo.value.reason_code == "graph_output_unavailable"
