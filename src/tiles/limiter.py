from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from shared.constants import MAX_CONCURRENT_LOADS

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    Non-blocking cap on in-flight tile fetches.

    Unlike asyncio.Semaphore, callers never wait for a slot: a tile that cannot
    acquire one is skipped and retried on the next reconciliation pass.
    """

    def __init__(self, max_concurrent: int = MAX_CONCURRENT_LOADS) -> None:
        if max_concurrent < 1:
            msg = f'max_concurrent must be at least 1, got {max_concurrent}'
            raise ValueError(msg)
        self.max_concurrent = max_concurrent
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def available(self) -> int:
        return self.max_concurrent - self._in_flight

    @property
    def peak(self) -> int:
        return self._peak

    def try_acquire(self) -> bool:
        if self._in_flight >= self.max_concurrent:
            return False
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        return True

    def release(self) -> None:
        if self._in_flight <= 0:
            msg = 'ConcurrencyLimiter.release() called without a matching acquire'
            raise RuntimeError(msg)
        self._in_flight -= 1

    @contextlib.contextmanager
    def slot(self) -> Iterator[None]:
        """Hold an already acquired slot; released on every exit path."""
        try:
            yield
        finally:
            self.release()
