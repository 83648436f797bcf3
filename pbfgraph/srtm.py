from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import numpy as np

from .errors import TileOffsetError
from .logging_utils import log_warning
from .settings import settings


def tile_name(lat: float, lon: float) -> str:
    """Name of the 1x1 degree `.hgt` tile whose south-west corner holds the point."""
    north = int(math.floor(lat))
    east = int(math.floor(lon))
    lat_letter = "N" if north >= 0 else "S"
    lon_letter = "E" if east >= 0 else "W"
    return f"{lat_letter}{abs(north):02d}{lon_letter}{abs(east):03d}.hgt"


def _load_tile_impl(path: str, tile_size: int) -> np.ndarray | None:
    tile = Path(path)
    if not tile.is_file():
        return None
    size_bytes = tile.stat().st_size
    expected = tile_size * tile_size
    if size_bytes != expected * 2:
        raise TileOffsetError.size_mismatch(path=path, size=size_bytes // 2, expected=expected)
    return np.memmap(tile, dtype=">i2", mode="r", shape=(expected,))


@dataclass(frozen=True)
class _SampleWindow:
    row_f: float
    col_f: float
    r0: int
    r1: int
    c0: int
    c1: int


def _sample_window(lat: float, lon: float, *, tile_size: int) -> _SampleWindow:
    per_degree = float(tile_size - 1)
    row_f = (1.0 - (lat - math.floor(lat))) * per_degree
    col_f = (lon - math.floor(lon)) * per_degree
    last = tile_size - 1
    return _SampleWindow(
        row_f=row_f,
        col_f=col_f,
        r0=max(0, min(last, int(math.floor(row_f)))),
        r1=max(0, min(last, int(math.ceil(row_f)))),
        c0=max(0, min(last, int(math.floor(col_f)))),
        c1=max(0, min(last, int(math.ceil(col_f)))),
    )


class SrtmElevation:
    """Elevation lookups over a directory of SRTM `.hgt` tiles.

    Each tile is a square grid of big-endian int16 samples stored row-major
    from the north-west corner. Queries without a tile yield the configured
    default (0.0) and a one-off `srtm_tile_missing` warning.
    """

    def __init__(
        self,
        tile_dir: str | Path | None = None,
        *,
        tile_size: int | None = None,
        cache_tiles: int | None = None,
        missing_elevation_m: float | None = None,
    ):
        self.tile_dir = Path(tile_dir if tile_dir is not None else settings.srtm_dir)
        self.tile_size = int(tile_size if tile_size is not None else settings.srtm_tile_size)
        if self.tile_size < 2:
            raise ValueError("tile size must be at least 2 samples")
        self.missing_elevation_m = float(
            missing_elevation_m if missing_elevation_m is not None else settings.srtm_missing_elevation_m
        )
        slots = int(cache_tiles if cache_tiles is not None else settings.srtm_cache_tiles)
        self._load_tile = lru_cache(maxsize=max(1, slots))(_load_tile_impl)
        self._warned: set[str] = set()
        self._warn_lock = threading.Lock()

    def tile_path(self, lat: float, lon: float) -> Path:
        return self.tile_dir / tile_name(lat, lon)

    def _warn_missing(self, path: Path) -> None:
        key = str(path)
        with self._warn_lock:
            if key in self._warned:
                return
            self._warned.add(key)
        log_warning("srtm_tile_missing", path=key, default_m=self.missing_elevation_m)

    def _read(self, values: np.ndarray, row: int, col: int) -> float:
        return float(values[(row * self.tile_size) + col])

    def elevation(self, lat: float, lon: float) -> float:
        path = self.tile_path(lat, lon)
        values = self._load_tile(str(path), self.tile_size)
        if values is None:
            self._warn_missing(path)
            return self.missing_elevation_m

        win = _sample_window(lat, lon, tile_size=self.tile_size)
        frac_row = win.row_f - math.floor(win.row_f)
        frac_col = win.col_f - math.floor(win.col_f)

        h1 = self._read(values, win.r0, win.c0)
        h2 = self._read(values, win.r1, win.c0)
        h3 = self._read(values, win.r0, win.c1)
        h4 = self._read(values, win.r1, win.c1)

        return (
            h1 * (1.0 - frac_row) * (1.0 - frac_col)
            + h2 * frac_row * (1.0 - frac_col)
            + h3 * (1.0 - frac_row) * frac_col
            + h4 * frac_row * frac_col
        )

    def close(self) -> None:
        self._load_tile.cache_clear()
