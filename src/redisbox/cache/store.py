"""Envelope protocol shared by store-backed cache backends"""

import logging
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from redisbox.cache.base import CacheBackend, CacheResult
from redisbox.cache.envelope import build_envelope, decode_record, encode_record
from redisbox.cache.errors import (
    CacheError,
    DeleteError,
    NotStartedError,
    ReadError,
    WriteError,
    chain,
)
from redisbox.cache.keys import CacheKey, ResolvedAddress

logger = logging.getLogger(__name__)


class EnvelopeStore(CacheBackend):
    """Implements get/set/drop on top of three store primitives

    Subclasses provide the lifecycle and ``_read``/``_write``/``_remove``.
    Exceptions listed in ``store_errors`` raised by the primitives are mapped
    onto ReadError, WriteError and DeleteError.
    """

    store_errors: tuple[type[BaseException], ...] = ()
    # Largest ttl the store can expire records after, None for no limit
    max_ttl: int | None = None

    @abstractmethod
    async def _read(self, address: ResolvedAddress) -> tuple[Mapping[str, str], int | None]:
        """Read a record's fields and remaining expiry (empty fields if missing)"""
        pass

    @abstractmethod
    async def _write(self, address: ResolvedAddress, record: dict[str, str], ttl: int) -> None:
        """Create or replace a record, expiring it after ttl seconds if ttl > 0"""
        pass

    @abstractmethod
    async def _remove(self, address: ResolvedAddress) -> bool:
        """Remove a record, returning whether it existed"""
        pass

    def _address(self, key: CacheKey) -> ResolvedAddress | CacheError:
        if not self.is_ready():
            return NotStartedError()
        return self.router.resolve(key)

    async def get(self, key: CacheKey) -> CacheResult:
        address = self._address(key)
        if isinstance(address, CacheError):
            return CacheResult.fail(address)

        try:
            fields, expires_in = await self._read(address)
        except self.store_errors as e:
            logger.warning(f"Cache get failed for {address.storage_key}: {e}")
            return CacheResult.fail(chain(ReadError(), e))

        if not fields:
            logger.debug(f"Cache miss for {address.storage_key}")
            return CacheResult.ok(None)

        envelope = decode_record(address, fields, expires_in)
        if isinstance(envelope, CacheError):
            logger.warning(f"Malformed record at {address.storage_key}: {envelope}")
            return CacheResult.fail(envelope)

        return CacheResult.ok(envelope)

    async def set(self, key: CacheKey, value: Any, ttl: int) -> CacheResult:
        address = self._address(key)
        if isinstance(address, CacheError):
            return CacheResult.fail(address)

        if isinstance(ttl, bool) or not isinstance(ttl, int):
            return CacheResult.fail(WriteError(f"Error writing data: invalid ttl {ttl!r}"))

        if self.max_ttl is not None and ttl > self.max_ttl:
            msg = f"Error writing data: ttl {ttl} exceeds {self.max_ttl}"
            return CacheResult.fail(WriteError(msg))

        record = encode_record(build_envelope(address, value, ttl))
        if isinstance(record, CacheError):
            logger.warning(f"Cannot serialize value for {address.storage_key}: {record}")
            return CacheResult.fail(record)

        try:
            await self._write(address, record, ttl)
        except self.store_errors as e:
            logger.warning(f"Cache set failed for {address.storage_key}: {e}")
            return CacheResult.fail(chain(WriteError(), e))

        return CacheResult.ok()

    async def drop(self, key: CacheKey) -> CacheResult:
        """Remove a value from cache

        Removing a key that is not stored succeeds; the result value tells
        whether a record existed.
        """
        address = self._address(key)
        if isinstance(address, CacheError):
            return CacheResult.fail(address)

        try:
            existed = await self._remove(address)
        except self.store_errors as e:
            logger.warning(f"Cache drop failed for {address.storage_key}: {e}")
            return CacheResult.fail(chain(DeleteError(), e))

        return CacheResult.ok(existed)
