from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Protocol

from .errors import MapRecordError
from .models import MapRecord, NodeRecord, WayRecord


class RecordSource(Protocol):
    """Map records, read one entity kind per pass.

    `ways()` and `nodes()` each start from the beginning of the source.
    """

    def ways(self) -> Iterator[WayRecord]: ...

    def nodes(self) -> Iterator[NodeRecord]: ...

    def rewind(self) -> None: ...


class ListSource:
    """In-memory record source; every pass starts from the first record."""

    def __init__(self, records: Iterable[MapRecord]):
        self.records: list[MapRecord] = list(records)
        self.passes = 0

    def _records_of(self, kind: type, other: type) -> Iterator:
        self.passes += 1
        for record in self.records:
            if isinstance(record, kind):
                yield record
            elif not isinstance(record, other):
                raise MapRecordError.invalid(kind="map", reason=f"unsupported record type {type(record).__name__}")

    def ways(self) -> Iterator[WayRecord]:
        return self._records_of(WayRecord, NodeRecord)

    def nodes(self) -> Iterator[NodeRecord]:
        return self._records_of(NodeRecord, WayRecord)

    def rewind(self) -> None:
        return None
