from __future__ import annotations

from pydantic import BaseModel, field_validator

from shared.constants import (
    HTTP_BACKOFF_FACTOR,
    HTTP_CACHE_DIR,
    HTTP_CACHE_ENABLED,
    HTTP_CACHE_EXPIRE_HOURS,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    MAX_CONCURRENT_LOADS,
    MIN_ZOOM_HEIGHT_M,
    TILE_CACHE_SIZE,
    TILE_NEIGHBORHOOD_RADIUS,
    TILE_SIZE_DEG,
    VIEWPORT_DEBOUNCE_MS,
    WFS_BASE_URL,
    WFS_LAYER_NAME,
    WFS_MAX_FEATURES,
    WFS_OUTPUT_FORMAT,
    WFS_SRS_NAME,
)


class TileLoadSettings(BaseModel):
    """Static parameters of the building tile loader."""

    model_config = {
        'extra': 'ignore',  # profiles may carry viewer-only keys
    }

    # Altitude (m) above which loading stops and everything is hidden
    min_zoom_height: float = MIN_ZOOM_HEIGHT_M
    # Grid cell edge length (degrees)
    tile_size: float = TILE_SIZE_DEG
    # Neighborhood radius around the center tile (1 => 3x3)
    neighborhood_radius: int = TILE_NEIGHBORHOOD_RADIUS
    # Simultaneous tile fetches
    max_concurrent_loads: int = MAX_CONCURRENT_LOADS
    # Tiles kept in memory (least recently required are evicted first)
    cache_size: int = TILE_CACHE_SIZE
    # Viewport-change coalescing delay
    debounce_ms: int = VIEWPORT_DEBOUNCE_MS

    # Feature service
    wfs_url: str = WFS_BASE_URL
    layer_name: str = WFS_LAYER_NAME
    srs_name: str = WFS_SRS_NAME
    output_format: str = WFS_OUTPUT_FORMAT
    max_features: int = WFS_MAX_FEATURES

    # HTTP
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT
    http_retries: int = HTTP_RETRIES_DEFAULT
    http_backoff: float = HTTP_BACKOFF_FACTOR
    http_cache_enabled: bool = HTTP_CACHE_ENABLED
    http_cache_dir: str = HTTP_CACHE_DIR
    http_cache_expire_hours: int = HTTP_CACHE_EXPIRE_HOURS

    @field_validator('tile_size', 'min_zoom_height', 'http_timeout_s')
    @classmethod
    def validate_positive(cls, v: float | str) -> float:
        fv = float(v)
        if fv <= 0:
            msg = 'Value must be greater than zero'
            raise ValueError(msg)
        return fv

    @field_validator('max_concurrent_loads', 'cache_size', 'max_features', 'http_retries')
    @classmethod
    def validate_at_least_one(cls, v: int | str) -> int:
        iv = int(v)
        if iv < 1:
            msg = 'Value must be at least 1'
            raise ValueError(msg)
        return iv

    @field_validator('neighborhood_radius', 'debounce_ms', 'http_cache_expire_hours')
    @classmethod
    def validate_non_negative(cls, v: int | str) -> int:
        iv = int(v)
        if iv < 0:
            msg = 'Value must not be negative'
            raise ValueError(msg)
        return iv

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0
