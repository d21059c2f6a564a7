"""Base cache backend interface"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict

from redisbox.cache.errors import CacheError
from redisbox.cache.keys import CacheKey, KeyRouter, ResolvedAddress


class CacheResult(BaseModel):
    """Outcome of a cache operation

    Errors are carried in ``error`` instead of being raised, so a caller
    always gets a result back from an awaited operation.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = None
    error: CacheError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any = None) -> "CacheResult":
        return cls(value=value)

    @classmethod
    def fail(cls, error: CacheError) -> "CacheResult":
        return cls(error=error)

    def unwrap(self) -> Any:
        """Return the value, raising the carried error if there is one"""
        if self.error is not None:
            raise self.error
        return self.value


class CacheBackend(ABC):
    """Abstract base class for cache backends

    A backend owns one connection to its store and translates abstract cache
    keys into store addresses. Values are wrapped in an envelope on write and
    validated on read.
    """

    router: KeyRouter

    @abstractmethod
    async def start(self) -> CacheResult:
        """Connect to the store

        Returns:
            Empty result, or a result carrying StoreConnectionError
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release the connection (idempotent, does not wait)"""
        pass

    async def close(self) -> None:
        """Stop and wait until resources are released"""
        self.stop()

    @abstractmethod
    def is_ready(self) -> bool:
        """Check whether the backend holds a live connection"""
        pass

    def validate_segment_name(self, name: Any) -> CacheError | None:
        """Check a segment name

        Returns:
            None if the name is usable, otherwise the error describing why not
        """
        return self.router.validate_segment_name(name)

    def generate_key(self, key: CacheKey) -> ResolvedAddress | CacheError:
        """Resolve a cache key to its store address"""
        return self.router.resolve(key)

    @abstractmethod
    async def get(self, key: CacheKey) -> CacheResult:
        """Get an envelope from cache

        Args:
            key: Bare identifier or structured key

        Returns:
            Result with the Envelope, or with None when the key is not stored
        """
        pass

    @abstractmethod
    async def set(self, key: CacheKey, value: Any, ttl: int) -> CacheResult:
        """Store a value

        Args:
            key: Bare identifier or structured key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds
        """
        pass

    @abstractmethod
    async def drop(self, key: CacheKey) -> CacheResult:
        """Remove a value from cache"""
        pass
