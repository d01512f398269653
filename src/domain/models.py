"""Value types shared by the tiling, decoding and reconciliation layers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

RawFeature = dict[str, Any]


@dataclass(frozen=True, order=True)
class TileId:
    """One cell of the fixed lon/lat grid."""

    x: int
    y: int

    def __str__(self) -> str:
        return f'{self.x}_{self.y}'

    @classmethod
    def parse(cls, text: str) -> TileId:
        """Parse the ``"x_y"`` form produced by ``str()``."""
        try:
            x_str, y_str = text.rsplit('_', 1)
            return cls(int(x_str), int(y_str))
        except ValueError:
            msg = f'Invalid tile id: {text!r}'
            raise ValueError(msg) from None

    def offset(self, dx: int, dy: int) -> TileId:
        return TileId(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class TileBounds:
    """Axis-aligned lon/lat rectangle of a tile."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def contains(self, lon: float, lat: float) -> bool:
        # Half-open: the max edges belong to the neighbouring tile
        return (
            self.min_lon <= lon < self.max_lon
            and self.min_lat <= lat < self.max_lat
        )

    @property
    def center(self) -> tuple[float, float]:
        return (
            (self.min_lon + self.max_lon) / 2.0,
            (self.min_lat + self.max_lat) / 2.0,
        )


@dataclass(eq=False)
class BuildingEntity:
    """
    Renderable extruded building footprint.

    Entities compare and hash by identity: two buildings with identical
    footprints are still two scene objects.
    """

    positions: tuple[tuple[float, float], ...]
    extruded_height: float
    tile_id: TileId | None = None
    feature_id: str | None = None
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Decoded:
    entity: BuildingEntity


@dataclass(frozen=True)
class Rejected:
    reason: str


DecodeResult = Decoded | Rejected


@dataclass(frozen=True)
class Tile:
    """Cached result of one tile fetch."""

    tile_id: TileId
    entities: tuple[BuildingEntity, ...] = ()
    failed: bool = False
    rejected: int = 0
    loaded_at: float = field(default_factory=time.monotonic)

    def __len__(self) -> int:
        return len(self.entities)


@dataclass(frozen=True)
class CameraState:
    """Camera footprint center (degrees) and height above the surface (m)."""

    center_lon: float
    center_lat: float
    height: float


class ReconcileState(str, Enum):
    SETTLED = 'settled'
    ALL_HIDDEN = 'all_hidden'
    DISABLED = 'disabled'


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation pass."""

    state: ReconcileState
    required: list[TileId] = field(default_factory=list)
    attached: list[TileId] = field(default_factory=list)
    started: list[TileId] = field(default_factory=list)
    skipped: list[TileId] = field(default_factory=list)
    in_flight: list[TileId] = field(default_factory=list)
    pruned_entities: int = 0
    evicted: list[TileId] = field(default_factory=list)
