"""In-memory tile cache with least-recently-required eviction.

Tiles are stored once per id; the cache never refetches on its own. Capacity
is enforced by evicting the tiles that have gone longest without appearing in
a required set, and tiles of the latest required set are never evicted.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.constants import TILE_CACHE_SIZE

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from domain.models import Tile, TileId

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Statistics about the tile cache."""

    tiles: int
    entities: int
    failed_tiles: int
    capacity: int
    hits: int
    misses: int
    evictions: int


class TileCache:
    """Mapping TileId -> Tile with at-most-once storage per id.

    Usage:
        cache = TileCache(capacity=50)
        tile = await cache.get_or_load(tile_id, loader)
        cache.mark_required(required_ids)
        cache.evict_overflow()
    """

    def __init__(self, capacity: int = TILE_CACHE_SIZE) -> None:
        if capacity < 1:
            msg = f'capacity must be at least 1, got {capacity}'
            raise ValueError(msg)
        self.capacity = capacity
        # Ordered oldest-required first
        self._tiles: OrderedDict[TileId, Tile] = OrderedDict()
        self._pinned: frozenset[TileId] = frozenset()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __contains__(self, tile_id: object) -> bool:
        return tile_id in self._tiles

    def __len__(self) -> int:
        return len(self._tiles)

    def get(self, tile_id: TileId) -> Tile | None:
        return self._tiles.get(tile_id)

    def tile_ids(self) -> list[TileId]:
        return list(self._tiles)

    def items(self) -> list[tuple[TileId, Tile]]:
        return list(self._tiles.items())

    def put(self, tile: Tile) -> Tile:
        """Store a tile unless one is already cached; returns the stored tile."""
        existing = self._tiles.get(tile.tile_id)
        if existing is not None:
            return existing
        self._tiles[tile.tile_id] = tile
        return tile

    async def get_or_load(
        self,
        tile_id: TileId,
        loader: Callable[[], Awaitable[Tile]],
        keep: Callable[[], bool] | None = None,
    ) -> Tile:
        """Return the cached tile or await loader once and store its result.

        Concurrent callers for the same id are not coalesced here; the first
        stored result wins and later results are discarded. When keep is given
        and returns False after loading, the result is returned unstored.
        """
        tile = self._tiles.get(tile_id)
        if tile is not None:
            self._hits += 1
            return tile
        self._misses += 1
        loaded = await loader()
        if keep is not None and not keep():
            return loaded
        return self.put(loaded)

    def mark_required(self, tile_ids: Iterable[TileId]) -> None:
        """Record tile_ids as the most recently required set."""
        pinned = frozenset(tile_ids)
        for tile_id in pinned:
            if tile_id in self._tiles:
                self._tiles.move_to_end(tile_id)
        self._pinned = pinned

    def evict_overflow(self) -> list[Tile]:
        """Evict least recently required tiles above capacity."""
        evicted: list[Tile] = []
        if len(self._tiles) <= self.capacity:
            return evicted
        for tile_id in list(self._tiles):
            if len(self._tiles) <= self.capacity:
                break
            if tile_id in self._pinned:
                continue
            evicted.append(self._tiles.pop(tile_id))
        if evicted:
            self._evictions += len(evicted)
            logger.debug(
                'Tile cache evicted %d tiles (size=%d, capacity=%d)',
                len(evicted),
                len(self._tiles),
                self.capacity,
            )
        return evicted

    def drop(self, tile_id: TileId) -> Tile | None:
        return self._tiles.pop(tile_id, None)

    def drop_failed(self) -> int:
        """Remove tiles whose fetch failed so they are fetched again."""
        failed = [tile_id for tile_id, tile in self._tiles.items() if tile.failed]
        for tile_id in failed:
            del self._tiles[tile_id]
        if failed:
            logger.info('Tile cache: %d failed tiles marked for retry', len(failed))
        return len(failed)

    def clear(self) -> int:
        count = len(self._tiles)
        self._tiles.clear()
        self._pinned = frozenset()
        return count

    def stats(self) -> CacheStats:
        return CacheStats(
            tiles=len(self._tiles),
            entities=sum(len(tile) for tile in self._tiles.values()),
            failed_tiles=sum(1 for tile in self._tiles.values() if tile.failed),
            capacity=self.capacity,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )
