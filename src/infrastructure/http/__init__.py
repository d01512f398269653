"""HTTP client infrastructure."""
from infrastructure.http.client import (
    WfsFeatureClient,
    make_http_session,
    resolve_cache_dir,
    session_from_settings,
)

__all__ = [
    'WfsFeatureClient',
    'make_http_session',
    'resolve_cache_dir',
    'session_from_settings',
]
