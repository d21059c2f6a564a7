"""In-memory cache backend"""

import asyncio
import logging
import math
import time
from collections.abc import Mapping
from typing import Any

from redisbox.cache.base import CacheResult
from redisbox.cache.keys import KeyRouter, ResolvedAddress
from redisbox.cache.store import EnvelopeStore
from redisbox.config import StoreConfig

logger = logging.getLogger(__name__)


class MemoryCacheBackend(EnvelopeStore):
    """In-memory cache backend using a dictionary

    Good for development and testing, but data is not persistent
    and is not shared between processes. Records use the same envelope
    encoding as the Redis backend.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        max_size: int = 1000,
        **kwargs: Any,
    ):
        self.config = StoreConfig.from_options(options, **kwargs)
        self.router = KeyRouter(self.config.partition, self.config.segment)
        self._cache: dict[str, tuple[dict[str, str], float | None]] = {}
        self._max_size = max_size
        self._lock = asyncio.Lock()
        self._connected = False

    async def start(self) -> CacheResult:
        await asyncio.sleep(0)
        if not self._connected:
            self._connected = True
            logger.info("Memory cache started")
        return CacheResult.ok()

    def stop(self) -> None:
        """Disconnect and discard all records"""
        if self._connected:
            self._connected = False
            self._cache.clear()
            logger.info("Memory cache stopped")

    def is_ready(self) -> bool:
        return self._connected

    async def _read(self, address: ResolvedAddress) -> tuple[Mapping[str, str], int | None]:
        async with self._lock:
            key = address.storage_key
            if key not in self._cache:
                return {}, None

            record, expires_at = self._cache[key]
            if expires_at is None:
                return dict(record), None

            remaining = expires_at - time.time()
            # Check if expired
            if remaining <= 0:
                del self._cache[key]
                return {}, None

            return dict(record), math.ceil(remaining)

    async def _write(self, address: ResolvedAddress, record: dict[str, str], ttl: int) -> None:
        async with self._lock:
            key = address.storage_key
            expires_at = time.time() + ttl if ttl > 0 else None

            # Evict oldest entries if at max size
            if len(self._cache) >= self._max_size and key not in self._cache:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]

            # Replacing moves the key to the end of the eviction order
            self._cache.pop(key, None)
            self._cache[key] = (dict(record), expires_at)

    async def _remove(self, address: ResolvedAddress) -> bool:
        async with self._lock:
            return self._cache.pop(address.storage_key, None) is not None

    def size(self) -> int:
        """Get current cache size (for testing/debugging)"""
        return len(self._cache)
