from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import sqlite3
import ssl
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiohttp
import certifi
from aiohttp_client_cache import CachedSession, SQLiteBackend

from domain.errors import FeatureServiceError
from shared.constants import (
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_BACKOFF_FACTOR,
    HTTP_CACHE_DIR,
    HTTP_CACHE_EXPIRE_HOURS,
    HTTP_FORBIDDEN,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
)

if TYPE_CHECKING:
    from domain.models import RawFeature
    from domain.settings import TileLoadSettings
    from features.query import QueryDescriptor

logger = logging.getLogger(__name__)


def resolve_cache_dir(raw: str | Path = HTTP_CACHE_DIR) -> Path:
    raw_dir = Path(raw)
    if raw_dir.is_absolute():
        return raw_dir
    cache_home = os.getenv('XDG_CACHE_HOME')
    if cache_home:
        return (Path(cache_home) / 'building-tiles' / raw_dir.name).resolve()
    return (Path.home() / '.building_tiles_cache' / raw_dir.name).resolve()


def make_http_session(
    cache_dir: Path | None,
    *,
    expire_hours: int = HTTP_CACHE_EXPIRE_HOURS,
) -> aiohttp.ClientSession:
    """Create an HTTP session; responses are cached in SQLite when cache_dir is set."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)

    if cache_dir is None:
        return aiohttp.ClientSession(connector=connector)

    cache_dir.mkdir(parents=True, exist_ok=True)
    cache_path = cache_dir / 'wfs_cache.sqlite'
    with contextlib.suppress(sqlite3.Error):
        if not cache_path.exists():
            with sqlite3.connect(cache_path) as _conn:
                _conn.execute('PRAGMA journal_mode=WAL;')
    expire_td = timedelta(hours=max(0, int(expire_hours)))
    backend = SQLiteBackend(str(cache_path), expire_after=expire_td)
    return CachedSession(cache=backend, connector=connector, expire_after=expire_td)


def session_from_settings(settings: TileLoadSettings) -> aiohttp.ClientSession:
    cache_dir = resolve_cache_dir(settings.http_cache_dir) if settings.http_cache_enabled else None
    return make_http_session(cache_dir, expire_hours=settings.http_cache_expire_hours)


def _parse_feature_collection(text: str) -> list[RawFeature]:
    try:
        body = json.loads(text)
    except ValueError as e:
        msg = f'Malformed JSON in WFS response: {e}'
        raise FeatureServiceError(msg) from None
    if not isinstance(body, dict):
        msg = f'Unexpected WFS response body of type {type(body).__name__}'
        raise FeatureServiceError(msg)
    features = body.get('features') or []
    if not isinstance(features, list):
        msg = f'WFS "features" is {type(features).__name__}, expected a list'
        raise FeatureServiceError(msg)
    return features


class WfsFeatureClient:
    """
    GeoServer WFS client returning GeoJSON features.

    - 401/403/404 fail immediately.
    - 429/5xx and connection errors are retried with exponential backoff.
    - Malformed bodies fail immediately.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        *,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        retries: int = HTTP_RETRIES_DEFAULT,
        backoff: float = HTTP_BACKOFF_FACTOR,
    ) -> None:
        self.session = session
        self.base_url = base_url
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff

    @classmethod
    def from_settings(
        cls,
        session: aiohttp.ClientSession,
        settings: TileLoadSettings,
    ) -> WfsFeatureClient:
        return cls(
            session,
            settings.wfs_url,
            timeout=settings.http_timeout_s,
            retries=settings.http_retries,
            backoff=settings.http_backoff,
        )

    async def _get_once(self, params: dict[str, str]) -> tuple[int, str]:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with self.session.get(self.base_url, params=params, timeout=timeout) as resp:
            status = resp.status
            text = await resp.text() if status == HTTP_OK else ''
            return status, text

    async def fetch_features(self, query: QueryDescriptor) -> list[RawFeature]:
        params = query.to_params()
        last_exc: Exception | None = None
        for attempt in range(self.retries):
            if attempt:
                await asyncio.sleep(self.backoff**attempt)
            try:
                status, text = await self._get_once(params)
            except (aiohttp.ClientError, TimeoutError) as e:
                last_exc = e
                logger.debug('WFS request failed (attempt %d): %s', attempt + 1, e)
                continue

            logger.debug('WFS response %s for bbox=%s', status, query.bbox_param)
            if status == HTTP_OK:
                return _parse_feature_collection(text)
            if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN, HTTP_NOT_FOUND):
                msg = f'WFS error: HTTP {status} for layer {query.layer_name}'
                raise FeatureServiceError(msg, status=status)
            is_rate_or_5xx = status == HTTP_TOO_MANY_REQUESTS or (
                HTTP_5XX_MIN <= status < HTTP_5XX_MAX
            )
            if not is_rate_or_5xx:
                msg = f'Unexpected WFS response: HTTP {status}'
                raise FeatureServiceError(msg, status=status)
            last_exc = FeatureServiceError(f'WFS error: HTTP {status}', status=status)

        msg = f'WFS request failed after {self.retries} attempts: {last_exc}'
        status = getattr(last_exc, 'status', None)
        raise FeatureServiceError(msg, status=status)
