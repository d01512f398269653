"""Fixed lon/lat grid: point -> tile id, tile id -> bounds, required sets."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from domain.models import TileBounds, TileId

if TYPE_CHECKING:
    from domain.models import CameraState


def _check_tile_size(tile_size: float) -> None:
    if not tile_size > 0:
        msg = f'tile_size must be positive, got {tile_size!r}'
        raise ValueError(msg)


def _cell_index(value: float, tile_size: float) -> int:
    index = math.floor(value / tile_size)
    # Division may round across a cell edge; keep the index consistent with
    # the bounds computed by multiplication in bounds_for().
    if value < index * tile_size:
        index -= 1
    elif value >= (index + 1) * tile_size:
        index += 1
    return index


def tile_id_for(lon: float, lat: float, tile_size: float) -> TileId:
    _check_tile_size(tile_size)
    return TileId(_cell_index(lon, tile_size), _cell_index(lat, tile_size))


def bounds_for(tile_id: TileId, tile_size: float) -> TileBounds:
    _check_tile_size(tile_size)
    return TileBounds(
        min_lon=tile_id.x * tile_size,
        min_lat=tile_id.y * tile_size,
        max_lon=(tile_id.x + 1) * tile_size,
        max_lat=(tile_id.y + 1) * tile_size,
    )


def neighborhood(center: TileId, radius: int = 1) -> list[TileId]:
    """Return the (2r+1)x(2r+1) block around center, row-major by dx then dy."""
    if radius < 0:
        msg = f'radius must not be negative, got {radius}'
        raise ValueError(msg)
    return [
        center.offset(dx, dy)
        for dx in range(-radius, radius + 1)
        for dy in range(-radius, radius + 1)
    ]


def required_tiles(
    camera: CameraState,
    tile_size: float,
    radius: int = 1,
) -> list[TileId]:
    """
    Tiles that must be visible for the given camera.

    The view is approximated by a fixed neighborhood around the tile under the
    footprint center; tilted cameras may see tiles outside of it.
    """
    center = tile_id_for(camera.center_lon, camera.center_lat, tile_size)
    return neighborhood(center, radius)


class SpatialTileIndexer:
    """Grid functions bound to one tile size."""

    def __init__(self, tile_size: float, radius: int = 1) -> None:
        _check_tile_size(tile_size)
        self.tile_size = tile_size
        self.radius = radius

    def tile_id_for(self, lon: float, lat: float) -> TileId:
        return tile_id_for(lon, lat, self.tile_size)

    def bounds_for(self, tile_id: TileId) -> TileBounds:
        return bounds_for(tile_id, self.tile_size)

    def required_tiles(self, camera: CameraState) -> list[TileId]:
        return required_tiles(camera, self.tile_size, self.radius)
