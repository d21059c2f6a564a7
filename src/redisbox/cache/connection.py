"""Connection lifecycle for the backing store"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

import redis.asyncio as redis

from redisbox.cache.base import CacheResult
from redisbox.cache.errors import StoreConnectionError
from redisbox.config import HostConfig, StoreConfig

logger = logging.getLogger(__name__)

Connector = Callable[[HostConfig, dict[str, Any]], redis.Redis]


def redis_connector(host: HostConfig, options: dict[str, Any]) -> redis.Redis:
    """Create a Redis client for one host

    Records are read as text, so responses are always decoded.
    """
    return redis.Redis(
        host=host.address,
        port=host.port,
        **{**options, "decode_responses": True},
    )


class ConnectionState(str, Enum):
    """Lifecycle state of a connection"""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ConnectionManager:
    """Owns the single client handle of a cache backend"""

    def __init__(self, config: StoreConfig, connector: Connector = redis_connector):
        self.config = config
        self.connector = connector
        self._client: redis.Redis | None = None
        self._state = ConnectionState.DISCONNECTED
        self._closing: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def client(self) -> redis.Redis | None:
        """The live client, None while disconnected"""
        return self._client

    def is_ready(self) -> bool:
        return self._client is not None and self._state is ConnectionState.CONNECTED

    async def start(self) -> CacheResult:
        """Connect to the first reachable host

        Calling start while connected succeeds without reconnecting. When two
        calls race, the handle stored first is kept and the other is closed.
        """
        if self._client is not None:
            # Always complete asynchronously, even when already connected
            await asyncio.sleep(0)
            return CacheResult.ok()

        try:
            client = await self._connect()
        except StoreConnectionError as e:
            return CacheResult.fail(e)

        if self._client is not None:
            logger.debug("Concurrent start already connected, closing spare client")
            await self._close_client(client)
            return CacheResult.ok()

        self._client = client
        self._state = ConnectionState.CONNECTED
        return CacheResult.ok()

    def stop(self) -> None:
        """Drop the handle and schedule the client to close

        The close runs on the current event loop; without a running loop the
        client is released without waiting for its connections.
        """
        client = self._client
        if client is None:
            return

        self._client = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("Store connection stopped")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, client released without close")
            return

        task = loop.create_task(self._close_client(client))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def aclose(self) -> None:
        """Stop and wait until the client is closed"""
        client = self._client
        self.stop()
        if client is not None and self._closing:
            await asyncio.gather(*self._closing)

    async def _connect(self) -> redis.Redis:
        last_error: Exception | None = None

        for host in self.config.hosts:
            try:
                client = self.connector(host, self.config.passthrough_options)
            except (TypeError, ValueError) as e:
                # Rejected passthrough options fail every host the same way
                msg = f"Invalid connection options: {e}"
                raise StoreConnectionError(msg) from e

            try:
                await client.ping()
            except (redis.RedisError, OSError) as e:
                logger.warning(f"Could not connect to {host.address}:{host.port}: {e}")
                last_error = e
                await self._close_client(client)
                continue

            logger.info(f"Connected to store at {host.address}:{host.port}")
            return client

        msg = f"Could not connect to any configured host: {last_error}"
        raise StoreConnectionError(msg) from last_error

    async def _close_client(self, client: redis.Redis) -> None:
        try:
            await client.aclose()
        except (redis.RedisError, OSError) as e:
            logger.debug(f"Error while closing store client: {e}")
