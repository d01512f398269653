"""Domain layer - value types, settings and profiles."""
from domain.errors import ConfigurationError, FeatureServiceError
from domain.models import (
    BuildingEntity,
    CameraState,
    Decoded,
    DecodeResult,
    RawFeature,
    ReconcileReport,
    ReconcileState,
    Rejected,
    Tile,
    TileBounds,
    TileId,
)
from domain.profiles import list_profiles, load_settings, save_settings
from domain.settings import TileLoadSettings

__all__ = [
    'BuildingEntity',
    'CameraState',
    'ConfigurationError',
    'DecodeResult',
    'Decoded',
    'FeatureServiceError',
    'RawFeature',
    'ReconcileReport',
    'ReconcileState',
    'Rejected',
    'Tile',
    'TileBounds',
    'TileId',
    'TileLoadSettings',
    'list_profiles',
    'load_settings',
    'save_settings',
]
