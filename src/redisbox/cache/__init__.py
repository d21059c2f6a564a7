"""Caching package for redisbox"""

from redisbox.cache.base import CacheBackend, CacheResult
from redisbox.cache.client import CacheClient, CachedItem, Segment
from redisbox.cache.envelope import Envelope
from redisbox.cache.errors import (
    CacheError,
    DeleteError,
    EnvelopeMalformedError,
    InvalidKeyError,
    InvalidSegmentNameError,
    NotStartedError,
    ReadError,
    SerializationError,
    StoreConnectionError,
    WriteError,
)
from redisbox.cache.factory import get_cache_backend, get_supported_backends
from redisbox.cache.keys import ResolvedAddress, StructuredKey
from redisbox.cache.memory import MemoryCacheBackend
from redisbox.cache.redis import RedisCacheBackend

__all__ = [
    "CacheBackend",
    "CacheClient",
    "CacheError",
    "CacheResult",
    "CachedItem",
    "DeleteError",
    "Envelope",
    "EnvelopeMalformedError",
    "InvalidKeyError",
    "InvalidSegmentNameError",
    "MemoryCacheBackend",
    "NotStartedError",
    "ReadError",
    "RedisCacheBackend",
    "ResolvedAddress",
    "Segment",
    "SerializationError",
    "StoreConnectionError",
    "StructuredKey",
    "WriteError",
    "get_cache_backend",
    "get_supported_backends",
]
