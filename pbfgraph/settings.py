from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping extraction config out of code."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default="out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Elevation raster (SRTM .hgt tiles)
    srtm_dir: str = Field(default="srtm", alias="SRTM_DIR")
    srtm_tile_size: int = Field(default=3601, ge=2, alias="SRTM_TILE_SIZE")
    srtm_cache_tiles: int = Field(default=16, ge=1, le=4096, alias="SRTM_CACHE_TILES")
    srtm_missing_elevation_m: float = Field(default=0.0, alias="SRTM_MISSING_ELEVATION_M")

    # Worker pool used by both extraction passes and metric evaluation
    extract_workers: int = Field(default=4, ge=1, le=64, alias="EXTRACT_WORKERS")
    extract_chunk_size: int = Field(default=2048, ge=1, alias="EXTRACT_CHUNK_SIZE")

    grid_side_length: int = Field(default=20, ge=1, alias="GRID_SIDE_LENGTH")

    graph_profile: str = Field(default="car", alias="GRAPH_PROFILE")
    # Legacy consumers expect integer costs and placeholder columns.
    graph_legacy_format: bool = Field(default=True, alias="GRAPH_LEGACY_FORMAT")

    @model_validator(mode="after")
    def _normalize_profile(self) -> "Settings":
        self.graph_profile = str(self.graph_profile or "car").strip().lower() or "car"
        return self


settings = Settings()
