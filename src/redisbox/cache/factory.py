"""Cache backend factory"""

from typing import Any

from redisbox.cache.base import CacheBackend
from redisbox.cache.memory import MemoryCacheBackend
from redisbox.cache.redis import RedisCacheBackend
from redisbox.cache.test_redis import FAKEREDIS_AVAILABLE, FakeRedisCacheBackend


def get_cache_backend(
    backend_type: str = "redis",
    options: dict[str, Any] | None = None,
    **kwargs: Any,
) -> CacheBackend:
    """Get a cache backend instance

    Args:
        backend_type: Type of cache backend ("redis", "memory", or "test_redis")
        options: Store options (hosts, segment, partition, passthrough options)
        **kwargs: Additional backend-specific arguments

    Returns:
        Cache backend instance

    Raises:
        ValueError: If backend type is not supported or options are invalid
        ImportError: If the fakeredis backend is requested but not available
    """
    if backend_type == "redis":
        return RedisCacheBackend(options, **kwargs)

    elif backend_type == "memory":
        return MemoryCacheBackend(options, **kwargs)

    elif backend_type == "test_redis":
        return FakeRedisCacheBackend(options, **kwargs)

    else:
        supported = get_supported_backends()
        msg = f"Unsupported cache backend: {backend_type}. Supported: {', '.join(supported)}"
        raise ValueError(msg)


def get_supported_backends() -> list[str]:
    """Get list of supported cache backend types"""
    backends = ["redis", "memory"]
    if FAKEREDIS_AVAILABLE:
        backends.append("test_redis")
    return backends
