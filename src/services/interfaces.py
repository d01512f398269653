"""Narrow interfaces of the external collaborators.

The rendering engine, the feature service and the UI are not part of this
package; they are reached only through these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from domain.models import BuildingEntity, CameraState, RawFeature
    from features.query import QueryDescriptor


@runtime_checkable
class FeatureClient(Protocol):
    async def fetch_features(self, query: QueryDescriptor) -> list[RawFeature]: ...


@runtime_checkable
class SceneAttachment(Protocol):
    """Mutable entity collection of the rendering engine."""

    def attach(self, entity: BuildingEntity) -> None: ...

    def detach(self, entity: BuildingEntity) -> None: ...

    def detach_all(self) -> None: ...


@runtime_checkable
class SceneHost(Protocol):
    """Creates and removes the layer that holds building entities."""

    def add_layer(self, name: str) -> SceneAttachment: ...

    def remove_layer(self, layer: SceneAttachment) -> None: ...


@runtime_checkable
class ViewportSource(Protocol):
    def camera_state(self) -> CameraState: ...


@runtime_checkable
class NotificationSink(Protocol):
    def notify(self, message: str, level: str) -> None: ...
