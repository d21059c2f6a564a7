"""Generic cache client consuming a cache backend"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

from redisbox.cache.base import CacheBackend, CacheResult
from redisbox.cache.envelope import Envelope, now_ms
from redisbox.cache.errors import InvalidKeyError
from redisbox.cache.keys import CacheKey, StructuredKey

logger = logging.getLogger(__name__)


class CachedItem(BaseModel):
    """A fresh cached value as seen by cache consumers"""

    item: Any
    stored: int
    ttl: float | None = None  # seconds of freshness left, None if it never goes stale


def to_cached_item(envelope: Envelope) -> CachedItem | None:
    """Convert an envelope to a CachedItem, None if it is stale"""
    if envelope.ttl <= 0:
        return CachedItem(item=envelope.item, stored=envelope.stored)

    remaining_ms = envelope.stored + envelope.ttl * 1000 - now_ms()
    if remaining_ms <= 0:
        return None

    return CachedItem(item=envelope.item, stored=envelope.stored, ttl=remaining_ms / 1000)


class CacheClient:
    """Cache client applying freshness rules on top of a backend

    Backend errors are passed through unchanged. Envelopes that outlived
    their ttl are reported as misses even if the store has not expired them
    yet.
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    async def start(self) -> CacheResult:
        return await self.backend.start()

    def stop(self) -> None:
        self.backend.stop()

    async def close(self) -> None:
        await self.backend.close()

    def is_ready(self) -> bool:
        return self.backend.is_ready()

    async def get(self, key: CacheKey | None) -> CacheResult:
        """Get a fresh item

        Returns:
            Result with a CachedItem, or with None on a miss (including a
            None key)
        """
        if key is None:
            return CacheResult.ok(None)

        result = await self.backend.get(key)
        if not result.success or result.value is None:
            return result

        item = to_cached_item(result.value)
        if item is None:
            logger.debug(f"Stale cache entry for key {key!r}")
        return CacheResult.ok(item)

    async def set(self, key: CacheKey | None, value: Any, ttl: int) -> CacheResult:
        """Cache a value for ttl seconds

        A non-positive ttl means the value is already expired, so nothing is
        written.
        """
        if key is None:
            return CacheResult.fail(InvalidKeyError())

        if isinstance(ttl, int) and ttl <= 0:
            return CacheResult.ok()

        return await self.backend.set(key, value, ttl)

    async def drop(self, key: CacheKey | None) -> CacheResult:
        if key is None:
            return CacheResult.fail(InvalidKeyError())

        return await self.backend.drop(key)

    def segment(self, name: str, default_ttl: int = 3600) -> "Segment":
        """Get a segment bound to this client

        Raises:
            InvalidSegmentNameError: If the name is empty or contains a null character
        """
        error = self.backend.validate_segment_name(name)
        if error is not None:
            raise error
        return Segment(self, name, default_ttl)


class SegmentStats(BaseModel):
    """Operation counters for a segment"""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    errors: int = 0


class Segment:
    """Cache operations scoped to one segment"""

    def __init__(self, client: CacheClient, name: str, default_ttl: int = 3600):
        """Initialize segment

        Args:
            client: Cache client to use
            name: Segment name (already validated)
            default_ttl: Default TTL in seconds (1 hour)
        """
        self.client = client
        self.name = name
        self.default_ttl = default_ttl
        self.stats = SegmentStats()

    def key(self, id: str) -> StructuredKey:
        """Build the structured key for an identifier in this segment"""
        return StructuredKey(id=id, segment=self.name)

    async def get(self, id: str) -> CacheResult:
        result = await self.client.get(self.key(id))
        if not result.success:
            self.stats.errors += 1
        elif result.value is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return result

    async def set(self, id: str, value: Any, ttl: int | None = None) -> CacheResult:
        cache_ttl = ttl if ttl is not None else self.default_ttl
        result = await self.client.set(self.key(id), value, cache_ttl)
        if result.success:
            self.stats.sets += 1
        else:
            self.stats.errors += 1
        return result

    async def drop(self, id: str) -> CacheResult:
        result = await self.client.drop(self.key(id))
        if not result.success:
            self.stats.errors += 1
        return result

    async def get_or_generate(
        self,
        id: str,
        generate: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """Get a cached value, generating and caching it on a miss

        Cache errors are logged and never fail the call; errors raised by
        ``generate`` propagate.

        Args:
            id: Identifier within this segment
            generate: Coroutine function producing the value
            ttl: Time to live in seconds (uses default if None)

        Returns:
            The cached or freshly generated value
        """
        result = await self.get(id)
        if not result.success:
            logger.warning(f"Cache read error for {self.name}:{id}: {result.error}")
        elif result.value is not None:
            return result.value.item

        value = await generate()

        set_result = await self.set(id, value, ttl)
        if not set_result.success:
            logger.warning(f"Cache write error for {self.name}:{id}: {set_result.error}")

        return value
