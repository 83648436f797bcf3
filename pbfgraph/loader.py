"""End-to-end graph construction: extraction, metrics, reduction."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .errors import MetricError, NonFiniteResult
from .extractor import chunked, node_pass, way_pass, windowed_results
from .grid import Grid
from .logging_utils import log_event, log_warning
from .metrics import EdgeFilter, MetricRegistry
from .models import Edge, MetricIndex, Node
from .reducer import reduce_edges, renumber
from .settings import settings
from .sources import RecordSource
from .srtm import SrtmElevation


@dataclass
class GraphResult:
    nodes: list[Node]
    edges: list[Edge]
    registry: MetricRegistry
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def metric_index(self) -> MetricIndex:
        return self.registry.metric_index

    @property
    def internal_metrics(self) -> frozenset[str]:
        return self.registry.internal_metrics

    @property
    def emitted_metric_names(self) -> list[str]:
        return self.registry.emitted_names

    @property
    def metric_count(self) -> int:
        return len(self.registry.emitted_names)

    def emitted_costs(self, edge: Edge) -> list[float]:
        return self.registry.emitted_costs(edge.costs)


def _evaluate_chunk(edges: list[Edge], *, nodes: list[Node], registry: MetricRegistry) -> None:
    node_slots = registry.node_slots()
    cost_slots = registry.cost_slots()
    index = registry.metric_index
    for edge in edges:
        source = nodes[edge.source]
        dest = nodes[edge.dest]
        for slot, metric in node_slots:
            try:
                edge.costs[slot] = metric.calc(source, dest)
            except MetricError as exc:
                raise exc.at_edge(metric.name(), edge.source, edge.dest) from exc
        for slot, metric in cost_slots:
            try:
                value = metric.calc(edge.costs, index)
                if not math.isfinite(value):
                    raise NonFiniteResult.from_operands(value)
            except MetricError as exc:
                raise exc.at_edge(metric.name(), edge.source, edge.dest) from exc
            edge.costs[slot] = value


def evaluate_metrics(
    nodes: list[Node],
    edges: list[Edge],
    *,
    registry: MetricRegistry,
    executor: ThreadPoolExecutor,
    chunk_size: int,
    window: int,
) -> None:
    """Fill node-metric then cost-metric slots; each edge is owned by one task."""
    for _ in windowed_results(
        executor,
        _evaluate_chunk,
        chunked(edges, chunk_size),
        window=window,
        nodes=nodes,
        registry=registry,
    ):
        pass


def _grid_chunk(nodes: list[Node], *, side_length: int) -> Grid:
    partial = Grid(side_length=side_length)
    for node in nodes:
        partial.add(node)
    return partial


def aggregate_grid(
    grid: Grid,
    nodes: list[Node],
    *,
    executor: ThreadPoolExecutor,
    chunk_size: int,
    window: int,
) -> Grid:
    """Widen `grid` to cover every node, then freeze it for concurrent reads."""
    for partial in windowed_results(
        executor,
        _grid_chunk,
        chunked(nodes, chunk_size),
        window=window,
        side_length=grid.side_length,
    ):
        grid.merge(partial)
    return grid.freeze()


class GraphLoader:
    """Builds a multi-criteria routing graph from a rewindable map source.

    Args:
        source: Way and node records, traversed twice.
        edge_filter: Decides which ways are usable by the travel mode.
        registry: Metrics computed for every edge.
        grid: Bounding-box grid shared with grid metrics. It is aggregated
          here and frozen before any node metric runs.
        elevation: Elevation service; only queried when a registered metric
          needs heights.
    """

    def __init__(
        self,
        source: RecordSource,
        *,
        edge_filter: EdgeFilter,
        registry: MetricRegistry,
        grid: Grid | None = None,
        elevation: SrtmElevation | None = None,
        workers: int | None = None,
        chunk_size: int | None = None,
    ):
        self.source = source
        self.edge_filter = edge_filter
        self.registry = registry
        self.grid = grid if grid is not None else Grid(side_length=settings.grid_side_length)
        self.elevation = elevation
        self.workers = max(1, int(workers if workers is not None else settings.extract_workers))
        self.chunk_size = max(1, int(chunk_size if chunk_size is not None else settings.extract_chunk_size))

    def _elevation_service(self) -> SrtmElevation | None:
        if not self.registry.needs_elevation:
            return None
        if self.elevation is None:
            self.elevation = SrtmElevation()
        return self.elevation

    def load_graph(self) -> GraphResult:
        window = self.workers * 2
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pbfgraph") as executor:
            edges, node_ids = way_pass(
                self.source,
                edge_filter=self.edge_filter,
                registry=self.registry,
                executor=executor,
                chunk_size=self.chunk_size,
                window=window,
            )
            log_event("way_pass_complete", edges=len(edges))
            log_event("node_ids_collected", node_ids=len(node_ids))

            self.source.rewind()
            elevation = self._elevation_service()
            try:
                nodes = node_pass(
                    self.source,
                    node_ids=node_ids,
                    elevation=elevation,
                    executor=executor,
                    chunk_size=self.chunk_size,
                    window=window,
                )
            finally:
                # Tiles stay mapped only for the node pass.
                if elevation is not None:
                    elevation.close()
            log_event("node_pass_complete", nodes=len(nodes))

            nodes, edges, dropped = renumber(nodes, edges)
            if dropped:
                log_warning("edges_dropped_missing_nodes", dropped=dropped)
            aggregate_grid(self.grid, nodes, executor=executor, chunk_size=self.chunk_size, window=window)

            evaluate_metrics(
                nodes,
                edges,
                registry=self.registry,
                executor=executor,
                chunk_size=self.chunk_size,
                window=window,
            )
            log_event("metrics_evaluated", edges=len(edges), metrics=self.registry.cost_count)

        extracted = len(edges)
        edges = reduce_edges(edges)
        log_event("graph_reduced", edges_before=extracted, edges_after=len(edges))
        return GraphResult(
            nodes=nodes,
            edges=edges,
            registry=self.registry,
            stats={
                "nodes": len(nodes),
                "edges_extracted": extracted,
                "edges": len(edges),
                "edges_dropped_missing_nodes": dropped,
            },
        )
