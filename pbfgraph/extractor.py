from __future__ import annotations

import queue
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from .errors import MapRecordError
from .metrics import EdgeFilter, MetricRegistry, TagMetric
from .models import Edge, Node, NodeRecord, WayRecord
from .sources import RecordSource
from .srtm import SrtmElevation

T = TypeVar("T")
R = TypeVar("R")

_ONEWAY_TRUE = {"yes", "true", "1"}
_ONEWAY_FALSE = {"no", "false", "0"}


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def is_one_way(tags: Mapping[str, str]) -> bool:
    raw = tags.get("oneway")
    if raw is not None:
        value = raw.strip().lower()
        if value in _ONEWAY_TRUE:
            return True
        if value in _ONEWAY_FALSE:
            return False
    return tags.get("highway") == "motorway"


def _check_way(way: WayRecord) -> None:
    for ref in way.node_ids:
        if not isinstance(ref, int) or isinstance(ref, bool):
            raise MapRecordError.invalid(kind="way", reason=f"node reference {ref!r} is not an integer id")


def process_way(
    way: WayRecord,
    *,
    edge_filter: EdgeFilter,
    tag_slots: list[tuple[int, TagMetric]],
    cost_count: int,
) -> tuple[list[Edge], list[int]]:
    """Directed edges of one way plus every node id it references.

    Tag metrics are evaluated once per way; the reverse edge of a two-way
    street gets a copy of the same values.
    """
    if edge_filter.is_invalid(way.tags):
        return [], []
    _check_way(way)
    if len(way.node_ids) < 2:
        return [], list(way.node_ids)

    template = [0.0] * cost_count
    for slot, metric in tag_slots:
        template[slot] = metric.calc(way.tags)
    one_way = is_one_way(way.tags)

    edges: list[Edge] = []
    refs = way.node_ids
    for idx in range(1, len(refs)):
        edges.append(Edge(source=refs[idx - 1], dest=refs[idx], costs=list(template)))
        if not one_way:
            edges.append(Edge(source=refs[idx], dest=refs[idx - 1], costs=list(template)))
    return edges, list(refs)


def windowed_results(
    executor: ThreadPoolExecutor,
    fn: Callable[..., R],
    chunks: Iterable[list[T]],
    *,
    window: int,
    **kwargs: Any,
) -> Iterator[R]:
    """Results of `fn` over `chunks` in submission order.

    At most `window` chunks are in flight, so the input stream is consumed
    only as fast as workers finish.
    """
    inflight: deque[Future[R]] = deque()
    try:
        for chunk in chunks:
            inflight.append(executor.submit(fn, chunk, **kwargs))
            if len(inflight) >= window:
                yield inflight.popleft().result()
        while inflight:
            yield inflight.popleft().result()
    finally:
        for future in inflight:
            future.cancel()


def _way_chunk(
    ways: list[WayRecord],
    *,
    edge_filter: EdgeFilter,
    tag_slots: list[tuple[int, TagMetric]],
    cost_count: int,
    id_queue: "queue.Queue[list[int] | None]",
) -> list[Edge]:
    out: list[Edge] = []
    for way in ways:
        edges, ids = process_way(way, edge_filter=edge_filter, tag_slots=tag_slots, cost_count=cost_count)
        if ids:
            id_queue.put(ids)
        out.extend(edges)
    return out


def _collect_ids(id_queue: "queue.Queue[list[int] | None]") -> set[int]:
    ids: set[int] = set()
    while True:
        batch = id_queue.get()
        if batch is None:
            return ids
        ids.update(batch)


def way_pass(
    source: RecordSource,
    *,
    edge_filter: EdgeFilter,
    registry: MetricRegistry,
    executor: ThreadPoolExecutor,
    chunk_size: int,
    window: int,
) -> tuple[list[Edge], set[int]]:
    """First pass: admissible ways to edges, referenced node ids to one set.

    Way workers hand their ids to a single collector thread over a queue
    instead of sharing a locked set.
    """
    id_queue: queue.Queue[list[int] | None] = queue.Queue()
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="pbfgraph-ids") as collector_pool:
        collector: Future[set[int]] = collector_pool.submit(_collect_ids, id_queue)
        edges: list[Edge] = []
        try:
            for chunk_edges in windowed_results(
                executor,
                _way_chunk,
                chunked(source.ways(), chunk_size),
                window=window,
                edge_filter=edge_filter,
                tag_slots=registry.tag_slots(),
                cost_count=registry.cost_count,
                id_queue=id_queue,
            ):
                edges.extend(chunk_edges)
        finally:
            id_queue.put(None)
        node_ids = collector.result()
    return edges, node_ids


def _node_chunk(
    records: list[NodeRecord],
    *,
    node_ids: set[int],
    elevation: SrtmElevation | None,
) -> list[Node]:
    out: list[Node] = []
    for record in records:
        if record.id not in node_ids:
            continue
        lat = record.lat
        lon = record.lon
        height = elevation.elevation(lat, lon) if elevation is not None else 0.0
        out.append(Node(source_id=record.id, lat=lat, lon=lon, elevation=height))
    return out


def node_pass(
    source: RecordSource,
    *,
    node_ids: set[int],
    elevation: SrtmElevation | None,
    executor: ThreadPoolExecutor,
    chunk_size: int,
    window: int,
) -> list[Node]:
    """Second pass: keep referenced nodes, in source order, with elevation."""
    nodes: list[Node] = []
    for chunk_nodes in windowed_results(
        executor,
        _node_chunk,
        chunked(source.nodes(), chunk_size),
        window=window,
        node_ids=node_ids,
        elevation=elevation,
    ):
        nodes.extend(chunk_nodes)
    return nodes
