"""Pytest configuration and fixtures for building tile loader tests."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from domain.errors import FeatureServiceError  # noqa: E402
from domain.models import TileId  # noqa: E402
from tiles.coverage import tile_id_for  # noqa: E402


def make_feature(lon, lat, *, size=0.001, properties=None, geom_type='Polygon'):
    """Square building footprint with its south-west corner at (lon, lat)."""
    ring = [
        [lon, lat],
        [lon + size, lat],
        [lon + size, lat + size],
        [lon, lat + size],
        [lon, lat],
    ]
    coordinates = [ring] if geom_type == 'Polygon' else [[ring]]
    return {
        'type': 'Feature',
        'geometry': {'type': geom_type, 'coordinates': coordinates},
        'properties': properties if properties is not None else {'A16': '12'},
    }


class FakeFeatureClient:
    """Feature service stand-in serving a few buildings per tile."""

    def __init__(self, tile_size=0.03, *, per_tile=2, fail=(), gate=None):
        self.tile_size = tile_size
        self.per_tile = per_tile
        self.fail = set(fail)
        self.gate = gate
        self.calls = []
        self.active = 0
        self.max_active = 0

    @property
    def called_tiles(self):
        return [self._tile_of(q) for q in self.calls]

    def _tile_of(self, query):
        min_lon, min_lat, max_lon, max_lat = query.bbox
        return tile_id_for((min_lon + max_lon) / 2, (min_lat + max_lat) / 2, self.tile_size)

    async def fetch_features(self, query):
        self.calls.append(query)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            tile_id = self._tile_of(query)
            if tile_id in self.fail:
                raise FeatureServiceError('WFS error: HTTP 500', status=500)
            min_lon, min_lat = query.bbox[0], query.bbox[1]
            step = self.tile_size / (self.per_tile + 1)
            return [
                make_feature(min_lon + step * (i + 0.5), min_lat + step * (i + 0.5))
                for i in range(self.per_tile)
            ]
        finally:
            self.active -= 1


@pytest.fixture
def fake_client():
    return FakeFeatureClient()


@pytest.fixture
def center_tile():
    """Tile (2566, 722) for tile_size 0.03, around lon 77.0 lat 21.68."""
    return TileId(2566, 722)
