from __future__ import annotations

import argparse
import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pbfgraph.errors import GraphBuildError, normalize_reason_code
from pbfgraph.grid import Grid
from pbfgraph.loader import GraphLoader
from pbfgraph.logging_utils import log_warning
from pbfgraph.profiles import PROFILES, build_profile
from pbfgraph.settings import settings
from pbfgraph.sources import RecordSource
from pbfgraph.srtm import SrtmElevation
from pbfgraph.writer import write_graph_file


def _open_source(source: Path | RecordSource) -> RecordSource:
    if not isinstance(source, Path):
        return source
    from pbfgraph.osm_source import OsmiumSource

    return OsmiumSource(source)


def build(
    *,
    source: Path | RecordSource,
    srtm_dir: Path,
    output: Path,
    zipped: bool = False,
    profile: str | None = None,
    workers: int | None = None,
) -> dict[str, Any]:
    grid = Grid(side_length=settings.grid_side_length)
    travel = build_profile(profile or settings.graph_profile, grid)
    loader = GraphLoader(
        _open_source(source),
        edge_filter=travel.edge_filter,
        registry=travel.registry,
        grid=grid,
        elevation=SrtmElevation(srtm_dir),
        workers=workers,
    )
    result = loader.load_graph()
    counts = write_graph_file(result, output, zipped=zipped)

    generated_at_utc = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    meta = {
        "source": str(source) if isinstance(source, Path) else type(source).__name__,
        "profile": travel.name,
        "generated_at_utc": generated_at_utc,
        "metrics": result.emitted_metric_names,
        "nodes": counts["nodes"],
        "edges": counts["edges"],
        "edges_extracted": result.stats.get("edges_extracted", 0),
        "edges_dropped_missing_nodes": result.stats.get("edges_dropped_missing_nodes", 0),
        "zipped": zipped,
    }
    meta_path = output.with_name(output.name + ".meta.json")
    meta_path.write_text(json.dumps(meta, indent=2), encoding="utf-8")
    return {**meta, "output": str(output), "meta": str(meta_path)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract a multi-criteria routing graph from OSM PBF and SRTM data.")
    parser.add_argument("source", type=Path, help="PBF (or .osm) file to extract from.")
    parser.add_argument("srtm_dir", type=Path, help="Directory holding SRTM .hgt tiles.")
    parser.add_argument("output", type=Path, help="File to write the graph to.")
    parser.add_argument("-z", "--zipped", action="store_true", help="Gzip the graph file.")
    parser.add_argument(
        "--profile",
        choices=sorted(PROFILES),
        default=settings.graph_profile,
        help="Travel mode deciding edge filter and metrics.",
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (defaults to EXTRACT_WORKERS).")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        report = build(
            source=args.source,
            srtm_dir=args.srtm_dir,
            output=args.output,
            zipped=args.zipped,
            profile=args.profile,
            workers=args.workers,
        )
    except GraphBuildError as exc:
        log_warning(
            "graph_build_failed",
            reason_code=normalize_reason_code(exc.reason_code),
            error=exc.message,
            details=exc.details,
        )
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        log_warning("graph_build_failed", reason_code="graph_build_failed", error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
