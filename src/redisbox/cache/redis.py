"""Redis cache backend"""

from collections.abc import Mapping
from typing import Any

import redis.asyncio as redis

from redisbox.cache.base import CacheResult
from redisbox.cache.connection import ConnectionManager, Connector, redis_connector
from redisbox.cache.keys import KeyRouter, ResolvedAddress
from redisbox.cache.store import EnvelopeStore
from redisbox.config import StoreConfig


class RedisCacheBackend(EnvelopeStore):
    """Redis cache backend for persistent, distributed caching

    Each record is a Redis hash stored under ``namespace:segment:id``. Writes
    replace the whole hash inside a MULTI/EXEC transaction and set the key
    expiry from the ttl, so Redis expires records on its own.
    """

    store_errors = (redis.RedisError, OSError)
    # A failing EXPIRE inside MULTI/EXEC leaves the write in place
    max_ttl = 2**31 - 1

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        connector: Connector = redis_connector,
        **kwargs: Any,
    ):
        self.config = StoreConfig.from_options(options, **kwargs)
        self.router = KeyRouter(self.config.partition, self.config.segment)
        self.connection = ConnectionManager(self.config, connector)

    async def start(self) -> CacheResult:
        return await self.connection.start()

    def stop(self) -> None:
        self.connection.stop()

    async def close(self) -> None:
        """Stop and wait for the Redis connection to close"""
        await self.connection.aclose()

    def is_ready(self) -> bool:
        return self.connection.is_ready()

    def _client(self) -> redis.Redis:
        client = self.connection.client
        if client is None:
            # stop() ran between the readiness check and the store call
            raise redis.ConnectionError("Connection closed")
        return client

    async def _read(self, address: ResolvedAddress) -> tuple[Mapping[str, str], int | None]:
        async with self._client().pipeline(transaction=True) as pipe:
            pipe.hgetall(address.storage_key)
            pipe.ttl(address.storage_key)
            fields, remaining = await pipe.execute()

        # TTL answers -1 for keys without expiry and -2 for missing keys
        return fields, remaining if remaining >= 0 else None

    async def _write(self, address: ResolvedAddress, record: dict[str, str], ttl: int) -> None:
        async with self._client().pipeline(transaction=True) as pipe:
            pipe.delete(address.storage_key)
            pipe.hset(address.storage_key, mapping=record)
            if ttl > 0:
                pipe.expire(address.storage_key, ttl)
            await pipe.execute()

    async def _remove(self, address: ResolvedAddress) -> bool:
        removed = await self._client().delete(address.storage_key)
        return removed > 0
