"""Services package - reconciliation and the public loader surface."""

from services.interfaces import (
    FeatureClient,
    NotificationSink,
    SceneAttachment,
    SceneHost,
    ViewportSource,
)
from services.orchestrator import TileLoadOrchestrator
from services.reconciler import VisibilityReconciler
from services.scene import (
    InMemoryLayer,
    InMemorySceneHost,
    LoggingNotifier,
    StaticViewport,
)

__all__ = [
    'FeatureClient',
    'InMemoryLayer',
    'InMemorySceneHost',
    'LoggingNotifier',
    'NotificationSink',
    'SceneAttachment',
    'SceneHost',
    'StaticViewport',
    'TileLoadOrchestrator',
    'ViewportSource',
    'VisibilityReconciler',
]
