from __future__ import annotations

from collections.abc import Sequence
from functools import cmp_to_key

from .models import Edge, Node


def renumber(nodes: Sequence[Node], edges: Sequence[Edge]) -> tuple[list[Node], list[Edge], int]:
    """Rewrite edge endpoints from map node ids to dense node indices.

    Indices follow first-retained node order; repeated node records keep the
    first occurrence. Edges touching an unknown node are dropped and counted.
    """
    dense: dict[int, int] = {}
    kept_nodes: list[Node] = []
    for node in nodes:
        if node.source_id in dense:
            continue
        dense[node.source_id] = len(kept_nodes)
        kept_nodes.append(node)

    kept_edges: list[Edge] = []
    dropped = 0
    for edge in edges:
        source = dense.get(edge.source)
        dest = dense.get(edge.dest)
        if source is None or dest is None:
            dropped += 1
            continue
        edge.source = source
        edge.dest = dest
        kept_edges.append(edge)
    return kept_nodes, kept_edges, dropped


def _cmp(a: float, b: float) -> int:
    # Incomparable (NaN) components order as equal.
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def compare_edges(e1: Edge, e2: Edge) -> int:
    result = _cmp(e1.source, e2.source) or _cmp(e1.dest, e2.dest)
    if result:
        return result
    for c1, c2 in zip(e1.costs, e2.costs):
        result = _cmp(c1, c2)
        if result:
            return result
    return _cmp(len(e1.costs), len(e2.costs))


def _same_edge(e1: Edge, e2: Edge) -> bool:
    return compare_edges(e1, e2) == 0


def sort_edges(edges: Sequence[Edge]) -> list[Edge]:
    return sorted(edges, key=cmp_to_key(compare_edges))


def remove_duplicates(sorted_edges: Sequence[Edge]) -> list[Edge]:
    out: list[Edge] = []
    for edge in sorted_edges:
        if out and _same_edge(out[-1], edge):
            continue
        out.append(edge)
    return out


def _dominates(first: Edge, second: Edge) -> bool:
    return all(c1 <= c2 for c1, c2 in zip(first.costs, second.costs))


def remove_dominated(sorted_edges: Sequence[Edge]) -> list[Edge]:
    """Drop an edge when its sorted predecessor between the same nodes is no worse.

    Only adjacent pairs are compared, against the neighbours as they were
    before any removal. With three or more parallel edges a dominated edge
    that is not adjacent to its dominator survives.
    """
    dropped: set[int] = set()
    for i in range(1, len(sorted_edges)):
        first = sorted_edges[i - 1]
        second = sorted_edges[i]
        if first.source != second.source or first.dest != second.dest:
            continue
        if _dominates(first, second):
            dropped.add(i)
    return [edge for i, edge in enumerate(sorted_edges) if i not in dropped]


def reduce_edges(edges: Sequence[Edge]) -> list[Edge]:
    return remove_dominated(remove_duplicates(sort_edges(edges)))
