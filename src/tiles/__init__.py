"""Tile grid, caching and fetch management.

This module provides:
- SpatialTileIndexer: fixed lon/lat grid and required tile sets
- TileCache: in-memory tile store with least-recently-required eviction
- ConcurrencyLimiter: non-blocking cap on in-flight fetches
- TileFetcher: feature service fetch + decode with failure fallback
"""

from tiles.cache import CacheStats, TileCache
from tiles.coverage import SpatialTileIndexer, bounds_for, neighborhood, tile_id_for
from tiles.fetcher import TileFetcher
from tiles.limiter import ConcurrencyLimiter

__all__ = [
    'CacheStats',
    'ConcurrencyLimiter',
    'SpatialTileIndexer',
    'TileCache',
    'TileFetcher',
    'bounds_for',
    'neighborhood',
    'tile_id_for',
]
