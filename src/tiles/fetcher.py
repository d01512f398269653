"""
Tile fetch boundary.

Turns a tile id into a cached Tile: query the feature service for the tile's
bounds and decode the answer. Every failure becomes an empty Tile flagged as
failed, so nothing but cancellation propagates to the reconciler.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

from domain.errors import FeatureServiceError
from domain.models import Tile
from features.decoder import FeatureDecoder
from shared.constants import LOG_MEMORY_EVERY_TILES
from shared.diagnostics import log_memory_usage

if TYPE_CHECKING:
    from domain.models import TileId
    from features.query import FeatureQueryBuilder
    from services.interfaces import FeatureClient
    from tiles.coverage import SpatialTileIndexer

logger = logging.getLogger(__name__)


class TileFetcher:
    """Loads one tile of building entities from the feature service."""

    def __init__(
        self,
        client: FeatureClient,
        indexer: SpatialTileIndexer,
        query_builder: FeatureQueryBuilder,
        decoder: FeatureDecoder | None = None,
    ) -> None:
        self.client = client
        self.indexer = indexer
        self.query_builder = query_builder
        self.decoder = decoder or FeatureDecoder()
        self._stats_requests = 0
        self._stats_failures = 0
        self._stats_features = 0
        self._stats_entities = 0

    @property
    def stats(self) -> dict[str, int]:
        return {
            'requests': self._stats_requests,
            'failures': self._stats_failures,
            'features': self._stats_features,
            'entities': self._stats_entities,
        }

    async def load(self, tile_id: TileId) -> Tile:
        query = self.query_builder.build_query(self.indexer.bounds_for(tile_id))
        self._stats_requests += 1
        logger.debug('Requesting tile %s bbox=%s', tile_id, query.bbox_param)
        try:
            features = await self.client.fetch_features(query)
            entities, rejected = self.decoder.decode_many(features, tile_id)
        except (FeatureServiceError, aiohttp.ClientError, TimeoutError, ValueError) as e:
            self._stats_failures += 1
            logger.warning('Tile %s failed to load: %s', tile_id, e)
            return Tile(tile_id=tile_id, failed=True)
        except Exception:
            self._stats_failures += 1
            logger.exception('Unexpected error while loading tile %s', tile_id)
            return Tile(tile_id=tile_id, failed=True)

        self._stats_features += len(features)
        self._stats_entities += len(entities)
        if entities:
            logger.info(
                'Tile %s loaded: %d buildings (%d features dropped)',
                tile_id,
                len(entities),
                rejected,
            )
        if self._stats_requests % LOG_MEMORY_EVERY_TILES == 0:
            log_memory_usage(f'after {self._stats_requests} tiles')
        return Tile(tile_id=tile_id, entities=tuple(entities), rejected=rejected)
