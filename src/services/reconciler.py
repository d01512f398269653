"""
Visibility reconciliation.

One pass aligns the entities attached to the scene layer with the tiles the
camera currently needs:

1. altitude gate - above ``min_zoom_height`` everything is hidden;
2. required set - neighborhood of the tile under the footprint center;
3. load-or-reuse - cached tiles are attached at once, missing tiles are
   fetched when the concurrency budget allows and skipped otherwise;
4. prune - entities of cached tiles outside the required set are detached;
5. evict - the cache drops least recently required tiles above capacity.

Fetches run as tasks on the event loop. Their continuation attaches only
while the reconciler is active, a layer exists, no reset happened since the
fetch started and the tile is still required by the most recent pass.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from domain.models import ReconcileReport, ReconcileState

if TYPE_CHECKING:
    from domain.models import BuildingEntity, CameraState, Tile, TileId
    from services.interfaces import SceneAttachment
    from tiles.cache import TileCache
    from tiles.coverage import SpatialTileIndexer
    from tiles.fetcher import TileFetcher
    from tiles.limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


class VisibilityReconciler:
    def __init__(
        self,
        *,
        indexer: SpatialTileIndexer,
        cache: TileCache,
        limiter: ConcurrencyLimiter,
        fetcher: TileFetcher,
        min_zoom_height: float,
    ) -> None:
        self.indexer = indexer
        self.cache = cache
        self.limiter = limiter
        self.fetcher = fetcher
        self.min_zoom_height = min_zoom_height
        self.layer: SceneAttachment | None = None
        self.active = True
        self.visible: set[BuildingEntity] = set()
        self._required: frozenset[TileId] = frozenset()
        self._inflight: dict[TileId, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._generation = 0

    @property
    def required(self) -> frozenset[TileId]:
        return self._required

    @property
    def in_flight(self) -> list[TileId]:
        return list(self._inflight)

    def reconcile(self, camera: CameraState) -> ReconcileReport:
        """Run one pass; must be called from the event loop thread."""
        if not self.active:
            return ReconcileReport(state=ReconcileState.DISABLED)

        if camera.height > self.min_zoom_height:
            self._required = frozenset()
            hidden = len(self.visible)
            self.hide_all()
            logger.debug(
                'Camera at %.0f m above %.0f m limit, %d buildings hidden',
                camera.height,
                self.min_zoom_height,
                hidden,
            )
            return ReconcileReport(state=ReconcileState.ALL_HIDDEN, pruned_entities=hidden)

        required = self.indexer.required_tiles(camera)
        self._required = frozenset(required)
        self.cache.mark_required(required)
        report = ReconcileReport(state=ReconcileState.SETTLED, required=required)

        for tile_id in required:
            tile = self.cache.get(tile_id)
            if tile is not None:
                self._attach(tile)
                report.attached.append(tile_id)
            elif tile_id in self._inflight:
                report.in_flight.append(tile_id)
            elif self.limiter.try_acquire():
                self._start_fetch(tile_id)
                report.started.append(tile_id)
            else:
                report.skipped.append(tile_id)

        report.pruned_entities = self._prune()
        report.evicted = [tile.tile_id for tile in self.cache.evict_overflow()]

        if report.started or report.skipped:
            logger.debug(
                'Reconcile around %s: %d cached, %d started, %d skipped, %d in flight',
                required[len(required) // 2],
                len(report.attached),
                len(report.started),
                len(report.skipped),
                len(report.in_flight),
            )
        return report

    def _start_fetch(self, tile_id: TileId) -> None:
        # The slot is already acquired; the done callback releases it even
        # when the task is cancelled before it starts running
        coro = self._fetch(tile_id, self._generation)
        try:
            task = asyncio.create_task(coro, name=f'tile-{tile_id}')
        except RuntimeError:
            coro.close()
            self.limiter.release()
            raise
        self._inflight[tile_id] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._fetch_done(tile_id, t))

    def _fetch_done(self, tile_id: TileId, task: asyncio.Task[None]) -> None:
        self.limiter.release()
        self._tasks.discard(task)
        if self._inflight.get(tile_id) is task:
            del self._inflight[tile_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                'Fetch task for tile %s failed',
                tile_id,
                exc_info=task.exception(),
            )

    async def _fetch(self, tile_id: TileId, generation: int) -> None:
        tile = await self.cache.get_or_load(
            tile_id,
            lambda: self.fetcher.load(tile_id),
            keep=lambda: generation == self._generation,
        )

        if generation != self._generation:
            logger.debug('Tile %s arrived after a reset, discarded', tile_id)
            return
        if not self.active or self.layer is None:
            logger.debug('Tile %s arrived while hidden, kept in cache only', tile_id)
            return
        if tile_id not in self._required:
            logger.debug('Tile %s arrived after leaving the view', tile_id)
            return
        self._attach(tile)

    def _attach(self, tile: Tile) -> int:
        layer = self.layer
        if layer is None:
            return 0
        added = 0
        for entity in tile.entities:
            if entity not in self.visible:
                layer.attach(entity)
                self.visible.add(entity)
                added += 1
        return added

    def _prune(self) -> int:
        layer = self.layer
        removed = 0
        for tile_id, tile in self.cache.items():
            if tile_id in self._required:
                continue
            for entity in tile.entities:
                if entity in self.visible:
                    if layer is not None:
                        layer.detach(entity)
                    self.visible.discard(entity)
                    removed += 1
        return removed

    def hide_all(self) -> None:
        if self.layer is not None:
            self.layer.detach_all()
        self.visible.clear()

    def reset(self) -> None:
        """Forget visible entities and the required set; the layer is dropped.

        Fetches started before the reset neither fill the cache nor attach,
        but keep their slots until they finish.
        """
        self._generation += 1
        self._inflight.clear()
        self.visible.clear()
        self._required = frozenset()
        self.layer = None

    async def wait_idle(self) -> None:
        """Wait until every fetch started so far has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
