from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from domain.errors import ConfigurationError
from domain.models import ReconcileReport, ReconcileState
from domain.settings import TileLoadSettings
from features.decoder import FeatureDecoder
from features.query import FeatureQueryBuilder
from services.reconciler import VisibilityReconciler
from shared.constants import NOTIFY_LEVEL_INFO
from tiles.cache import TileCache
from tiles.coverage import SpatialTileIndexer
from tiles.fetcher import TileFetcher
from tiles.limiter import ConcurrencyLimiter

if TYPE_CHECKING:
    from services.interfaces import (
        FeatureClient,
        NotificationSink,
        SceneHost,
        ViewportSource,
    )

logger = logging.getLogger(__name__)

DEFAULT_LAYER_NAME = 'buildings'


class TileLoadOrchestrator:
    """
    Viewport-driven building loader for one map view.

    Owns the tile cache, the visible entity set and the scene layer. All
    methods must be called from the event loop that runs the fetches.

    Usage:
        loader = TileLoadOrchestrator(scene_host, viewport, client, settings)
        camera.on_move_end(loader.on_viewport_changed)
        ...
        await loader.aclose()
    """

    def __init__(
        self,
        scene_host: SceneHost,
        viewport: ViewportSource,
        client: FeatureClient,
        settings: TileLoadSettings | None = None,
        *,
        notifier: NotificationSink | None = None,
        layer_name: str = DEFAULT_LAYER_NAME,
    ) -> None:
        if scene_host is None:
            msg = 'Scene host is not available; buildings cannot be displayed'
            raise ConfigurationError(msg)
        if viewport is None:
            msg = 'Viewport source is not available'
            raise ConfigurationError(msg)
        if client is None:
            msg = 'Feature client is not configured'
            raise ConfigurationError(msg)

        self.settings = settings or TileLoadSettings()
        self.scene_host = scene_host
        self.viewport = viewport
        self.notifier = notifier
        self.layer_name = layer_name

        self.indexer = SpatialTileIndexer(
            self.settings.tile_size, self.settings.neighborhood_radius
        )
        self.cache = TileCache(self.settings.cache_size)
        self.limiter = ConcurrencyLimiter(self.settings.max_concurrent_loads)
        self.fetcher = TileFetcher(
            client,
            self.indexer,
            FeatureQueryBuilder.from_settings(self.settings),
            FeatureDecoder(),
        )
        self.reconciler = VisibilityReconciler(
            indexer=self.indexer,
            cache=self.cache,
            limiter=self.limiter,
            fetcher=self.fetcher,
            min_zoom_height=self.settings.min_zoom_height,
        )
        self._enabled = True
        self._debounce_task: asyncio.Task[None] | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def visible_count(self) -> int:
        return len(self.reconciler.visible)

    def _notify(self, message: str, level: str = NOTIFY_LEVEL_INFO) -> None:
        logger.info(message)
        if self.notifier is None:
            return
        with contextlib.suppress(Exception):
            self.notifier.notify(message, level)

    def _ensure_layer(self) -> None:
        if self.reconciler.layer is None:
            self.reconciler.layer = self.scene_host.add_layer(self.layer_name)

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None

    def update_visible_tiles(self) -> ReconcileReport:
        """Run a reconciliation pass for the current camera right away."""
        if not self._enabled:
            return ReconcileReport(state=ReconcileState.DISABLED)
        self._ensure_layer()
        return self.reconciler.reconcile(self.viewport.camera_state())

    def enable(self) -> bool:
        self._enabled = True
        self.reconciler.active = True
        self._notify('Buildings ON')
        self.update_visible_tiles()
        return True

    def disable(self) -> bool:
        """Hide everything and ignore viewport changes until enabled again."""
        self._cancel_debounce()
        self._enabled = False
        self.reconciler.active = False
        self.reconciler.hide_all()
        self._notify('Buildings OFF')
        return False

    def toggle(self) -> bool:
        return self.disable() if self._enabled else self.enable()

    def on_viewport_changed(self) -> None:
        """Schedule a pass after the debounce delay, replacing a pending one."""
        if not self._enabled:
            return
        self._cancel_debounce()
        self._debounce_task = asyncio.create_task(
            self._debounced_update(), name='viewport-debounce'
        )

    async def _debounced_update(self) -> None:
        await asyncio.sleep(self.settings.debounce_s)
        self._debounce_task = None
        try:
            self.update_visible_tiles()
        except Exception:
            logger.exception('Debounced building update failed')

    def force_refresh(self) -> ReconcileReport:
        """Retry failed tiles and reconcile immediately, bypassing the debounce."""
        self._cancel_debounce()
        if not self._enabled:
            return ReconcileReport(state=ReconcileState.DISABLED)
        self.cache.drop_failed()
        self._notify('Updating buildings...')
        return self.update_visible_tiles()

    def clear(self) -> None:
        """Drop cache, visible set and the scene layer.

        Fetches still in flight run to completion but their results are
        discarded, so nothing from before the clear reaches the cache or a
        new layer.
        """
        self._cancel_debounce()
        layer = self.reconciler.layer
        self.reconciler.reset()
        if layer is not None:
            self.scene_host.remove_layer(layer)
        dropped = self.cache.clear()
        logger.debug('Cleared %d cached tiles', dropped)
        self._notify('Buildings cleared')

    async def wait_idle(self) -> None:
        """Wait for a pending debounced pass and every fetch it started."""
        task = self._debounce_task
        if task is not None:
            await asyncio.wait({task})
        await self.reconciler.wait_idle()

    async def aclose(self) -> None:
        self._cancel_debounce()
        await self.reconciler.wait_idle()

    def stats(self) -> dict[str, Any]:
        return {
            'enabled': self._enabled,
            'visible': self.visible_count,
            'required': sorted(str(t) for t in self.reconciler.required),
            'in_flight': self.limiter.in_flight,
            'peak_in_flight': self.limiter.peak,
            'cache': self.cache.stats(),
            'fetcher': self.fetcher.stats,
        }
