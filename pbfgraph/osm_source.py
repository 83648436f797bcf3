from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import osmium

from .errors import GraphBuildError, MapRecordError
from .models import NodeRecord, WayRecord


class OsmiumSource:
    """Ways and nodes read from an OSM PBF/XML file with pyosmium.

    Every pass opens a fresh `osmium.FileProcessor` restricted to one entity
    kind, so rewinding is free and the way pass never decodes node locations.
    Records are copied out of the osmium buffers while iterating.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        if not self.path.is_file():
            raise GraphBuildError(
                reason_code="map_source_unavailable",
                message=f"Map data source {self.path} does not exist.",
                details={"path": str(self.path)},
            )

    def ways(self) -> Iterator[WayRecord]:
        for way in osmium.FileProcessor(str(self.path), osmium.osm.WAY):
            yield WayRecord(
                node_ids=tuple(int(ref.ref) for ref in way.nodes),
                tags={str(tag.k): str(tag.v) for tag in way.tags},
            )

    def nodes(self) -> Iterator[NodeRecord]:
        for node in osmium.FileProcessor(str(self.path), osmium.osm.NODE):
            location = node.location
            if not location.valid():
                raise MapRecordError.invalid(kind="node", reason=f"node {node.id} has no valid location")
            yield NodeRecord(id=int(node.id), lat_raw=int(location.y), lon_raw=int(location.x))

    def rewind(self) -> None:
        return None
