"""In-memory collaborators for headless runs and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from domain.models import CameraState

if TYPE_CHECKING:
    from domain.models import BuildingEntity

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class InMemoryLayer:
    """Scene layer that only records which entities it holds."""

    name: str
    entities: list[BuildingEntity] = field(default_factory=list)
    attach_calls: int = 0
    detach_calls: int = 0

    def attach(self, entity: BuildingEntity) -> None:
        self.attach_calls += 1
        self.entities.append(entity)

    def detach(self, entity: BuildingEntity) -> None:
        self.detach_calls += 1
        self.entities.remove(entity)

    def detach_all(self) -> None:
        self.entities.clear()


class InMemorySceneHost:
    def __init__(self) -> None:
        self.layers: list[InMemoryLayer] = []
        self.removed: list[InMemoryLayer] = []

    def add_layer(self, name: str) -> InMemoryLayer:
        layer = InMemoryLayer(name)
        self.layers.append(layer)
        return layer

    def remove_layer(self, layer: InMemoryLayer) -> None:
        self.layers.remove(layer)
        self.removed.append(layer)

    @property
    def current(self) -> InMemoryLayer | None:
        return self.layers[-1] if self.layers else None


class StaticViewport:
    """Viewport whose camera is moved by assignment."""

    def __init__(self, lon: float, lat: float, height: float) -> None:
        self.camera = CameraState(center_lon=lon, center_lat=lat, height=height)

    def move_to(self, lon: float, lat: float, height: float | None = None) -> None:
        self.camera = CameraState(
            center_lon=lon,
            center_lat=lat,
            height=self.camera.height if height is None else height,
        )

    def camera_state(self) -> CameraState:
        return self.camera


class LoggingNotifier:
    def notify(self, message: str, level: str) -> None:
        logger.log(logging.WARNING if level == 'warning' else logging.INFO, '[%s] %s', level, message)
