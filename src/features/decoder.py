"""
Conversion of GeoJSON building features into extruded entities.

Decoding is best-effort: open building datasets are heterogeneous, so a
feature that cannot be turned into a footprint is rejected with a reason
instead of raising.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from domain.models import BuildingEntity, Decoded, Rejected
from shared.constants import (
    DEFAULT_BUILDING_HEIGHT_M,
    FLOOR_COUNT_PROPERTY_KEYS,
    HEIGHT_PROPERTY_KEYS,
    MAX_BUILDING_HEIGHT_M,
    METERS_PER_FLOOR,
    MIN_POLYGON_VERTICES,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from domain.models import DecodeResult, TileId

logger = logging.getLogger(__name__)

_LEADING_NUMBER_RE = re.compile(r'^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


def parse_number(value: Any) -> float | None:
    """
    Read a number the lenient way attribute tables need.

    Strings are read up to the first non-numeric character (``"15m"`` -> 15).
    Returns None for empty, unparseable, non-finite or out-of-range values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = _LEADING_NUMBER_RE.match(str(value))
        if match is None:
            return None
        number = float(match.group(0))
    if not math.isfinite(number):
        return None
    return number


def _first_present(props: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = props.get(key.lower())
        if value is not None and value != '':
            return value
    return None


def infer_height(properties: Mapping[str, Any] | None) -> float:
    """
    Extrusion height for a building.

    Order: explicit height (A16), then floor count (A26, GRO_FLO_CO) times
    METERS_PER_FLOOR, then DEFAULT_BUILDING_HEIGHT_M. The result never exceeds
    MAX_BUILDING_HEIGHT_M.
    """
    props = {str(k).lower(): v for k, v in (properties or {}).items()}

    height = parse_number(_first_present(props, HEIGHT_PROPERTY_KEYS)) or 0.0
    if height <= 0:
        floors = parse_number(_first_present(props, FLOOR_COUNT_PROPERTY_KEYS)) or 0.0
        if floors > 0:
            height = floors * METERS_PER_FLOOR
    if height <= 0:
        height = DEFAULT_BUILDING_HEIGHT_M
    return min(height, MAX_BUILDING_HEIGHT_M)


def _exterior_ring(geometry: Mapping[str, Any]) -> Any:
    # Holes and further polygons of a MultiPolygon are not rendered
    coords = geometry.get('coordinates')
    if not coords:
        raise ValueError('missing coordinates')
    geom_type = geometry.get('type')
    if geom_type == 'Polygon':
        return coords[0]
    if geom_type == 'MultiPolygon':
        return coords[0][0]
    msg = f'unsupported geometry type: {geom_type!r}'
    raise ValueError(msg)


def _ring_positions(ring: Any) -> tuple[tuple[float, float], ...]:
    positions = []
    for point in ring:
        lon, lat = float(point[0]), float(point[1])
        if not (math.isfinite(lon) and math.isfinite(lat)):
            raise ValueError('non-finite coordinate')
        positions.append((lon, lat))
    if len(positions) < MIN_POLYGON_VERTICES:
        msg = f'ring has {len(positions)} vertices'
        raise ValueError(msg)
    return tuple(positions)


def decode(raw: Any, tile_id: TileId | None = None) -> DecodeResult:
    if not isinstance(raw, Mapping):
        return Rejected('feature is not an object')
    geometry = raw.get('geometry')
    if not isinstance(geometry, Mapping):
        return Rejected('missing geometry')
    properties = raw.get('properties')
    if not isinstance(properties, Mapping):
        properties = {}
    try:
        positions = _ring_positions(_exterior_ring(geometry))
        height = infer_height(properties)
    except (ValueError, TypeError, IndexError, KeyError, OverflowError) as e:
        return Rejected(str(e) or type(e).__name__)

    feature_id = raw.get('id')
    return Decoded(
        BuildingEntity(
            positions=positions,
            extruded_height=height,
            tile_id=tile_id,
            feature_id=None if feature_id is None else str(feature_id),
            properties=dict(properties),
        )
    )


def decode_or_none(raw: Any, tile_id: TileId | None = None) -> BuildingEntity | None:
    result = decode(raw, tile_id)
    return result.entity if isinstance(result, Decoded) else None


def decode_many(
    features: Iterable[Any],
    tile_id: TileId | None = None,
) -> tuple[list[BuildingEntity], int]:
    """Decode a feature collection; returns entities and the rejected count."""
    entities: list[BuildingEntity] = []
    rejected = 0
    for raw in features:
        result = decode(raw, tile_id)
        if isinstance(result, Decoded):
            entities.append(result.entity)
        else:
            rejected += 1
            logger.debug('Feature dropped in tile %s: %s', tile_id, result.reason)
    return entities, rejected


class FeatureDecoder:
    """Object form of the module functions, for injection into fetchers."""

    def decode(self, raw: Any, tile_id: TileId | None = None) -> DecodeResult:
        return decode(raw, tile_id)

    def decode_or_none(self, raw: Any, tile_id: TileId | None = None) -> BuildingEntity | None:
        return decode_or_none(raw, tile_id)

    def decode_many(
        self,
        features: Iterable[Any],
        tile_id: TileId | None = None,
    ) -> tuple[list[BuildingEntity], int]:
        return decode_many(features, tile_id)
