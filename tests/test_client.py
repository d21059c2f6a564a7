"""Tests for the generic cache client"""

from unittest.mock import AsyncMock, patch

import pytest

from redisbox.cache import (
    CacheClient,
    CachedItem,
    CacheResult,
    InvalidKeyError,
    InvalidSegmentNameError,
    MemoryCacheBackend,
    ReadError,
)
from redisbox.cache.client import Segment, SegmentStats, to_cached_item
from redisbox.cache.envelope import Envelope


@pytest.fixture
def client():
    return CacheClient(MemoryCacheBackend())


class TestToCachedItem:
    """Test freshness computation"""

    def test_fresh_envelope(self):
        envelope = Envelope(primary_key="x", item="v", stored=1_000_000, ttl=10)

        with patch("redisbox.cache.client.now_ms", return_value=1_004_000):
            item = to_cached_item(envelope)

        assert item == CachedItem(item="v", stored=1_000_000, ttl=6.0)

    def test_stale_envelope(self):
        envelope = Envelope(primary_key="x", item="v", stored=1_000_000, ttl=10)

        with patch("redisbox.cache.client.now_ms", return_value=1_010_000):
            assert to_cached_item(envelope) is None

    def test_envelope_without_ttl_never_goes_stale(self):
        envelope = Envelope(primary_key="x", item="v", stored=1, ttl=0)

        assert to_cached_item(envelope) == CachedItem(item="v", stored=1, ttl=None)


class TestCacheClient:
    """Test cache client operations"""

    @pytest.mark.asyncio
    async def test_lifecycle(self, client):
        assert client.is_ready() is False

        assert (await client.start()).success
        assert client.is_ready() is True

        client.stop()
        assert client.is_ready() is False

    @pytest.mark.asyncio
    async def test_set_and_get(self, client):
        await client.start()

        await client.set({"id": "x"}, "123", 500)
        result = await client.get({"id": "x"})

        assert isinstance(result.value, CachedItem)
        assert result.value.item == "123"
        assert 0 < result.value.ttl <= 500

    @pytest.mark.asyncio
    async def test_get_none_key_is_a_miss(self, client):
        await client.start()

        result = await client.get(None)

        assert result.error is None
        assert result.value is None

    @pytest.mark.asyncio
    async def test_set_and_drop_none_key_fail(self, client):
        await client.start()

        assert isinstance((await client.set(None, {}, 1000)).error, InvalidKeyError)
        assert isinstance((await client.drop(None)).error, InvalidKeyError)

    @pytest.mark.asyncio
    async def test_non_positive_ttl_is_ignored(self, client):
        await client.start()

        result = await client.set({"id": "x"}, "y", 0)

        assert result.success
        assert (await client.get({"id": "x"})).value is None

    @pytest.mark.asyncio
    async def test_stale_entry_is_a_miss(self, client):
        await client.start()
        await client.set("x", "y", 10)

        with patch("redisbox.cache.client.now_ms", return_value=10**15):
            result = await client.get("x")

        assert result.success
        assert result.value is None

    @pytest.mark.asyncio
    async def test_backend_errors_pass_through(self, client):
        result = await client.get("x")

        assert not result.success
        assert str(result.error) == "Connection not started"

    @pytest.mark.asyncio
    async def test_close(self, client):
        await client.start()

        await client.close()

        assert client.is_ready() is False


class TestSegment:
    """Test segment scoped operations"""

    def test_invalid_segment_names_raise(self, client):
        with pytest.raises(InvalidSegmentNameError, match="Empty string"):
            client.segment("")

        with pytest.raises(InvalidSegmentNameError, match="Includes null character"):
            client.segment("a\0b")

    def test_segment_keys(self, client):
        segment = client.segment("users")

        key = segment.key("42")

        assert key.segment == "users"
        assert key.id == "42"
        assert key.namespace is None

    @pytest.mark.asyncio
    async def test_segments_are_isolated(self, client):
        await client.start()
        users = client.segment("users")
        posts = client.segment("posts")

        await users.set("1", "alice")
        await posts.set("1", "hello")

        assert (await users.get("1")).value.item == "alice"
        assert (await posts.get("1")).value.item == "hello"

    @pytest.mark.asyncio
    async def test_default_ttl(self, client):
        await client.start()
        segment = client.segment("users", default_ttl=120)

        await segment.set("1", "alice")
        envelope = (await client.backend.get({"id": "1", "segment": "users"})).value

        assert envelope.ttl == 120

    @pytest.mark.asyncio
    async def test_stats(self, client):
        await client.start()
        segment = client.segment("users")

        await segment.get("1")
        await segment.set("1", "alice")
        await segment.get("1")
        await segment.drop("1")
        client.stop()
        await segment.get("1")

        assert segment.stats == SegmentStats(hits=1, misses=1, sets=1, errors=1)

    @pytest.mark.asyncio
    async def test_get_or_generate(self, client):
        await client.start()
        segment = client.segment("reports")
        generate = AsyncMock(return_value={"total": 3})

        first = await segment.get_or_generate("daily", generate)
        second = await segment.get_or_generate("daily", generate)

        assert first == second == {"total": 3}
        generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_or_generate_caches_none(self, client):
        await client.start()
        segment = client.segment("reports")
        generate = AsyncMock(return_value=None)

        await segment.get_or_generate("empty", generate)
        await segment.get_or_generate("empty", generate)

        generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_or_generate_survives_cache_errors(self):
        backend = MemoryCacheBackend()
        backend.get = AsyncMock(return_value=CacheResult.fail(ReadError()))
        client = CacheClient(backend)
        await client.start()
        segment = client.segment("reports")

        value = await segment.get_or_generate("daily", AsyncMock(return_value=7))

        assert value == 7
        assert segment.stats.errors == 1
        assert segment.stats.sets == 1

    @pytest.mark.asyncio
    async def test_get_or_generate_propagates_generator_errors(self, client):
        await client.start()
        segment = client.segment("reports")

        with pytest.raises(RuntimeError, match="boom"):
            await segment.get_or_generate("daily", AsyncMock(side_effect=RuntimeError("boom")))

    def test_segment_is_constructed_by_client(self, client):
        assert isinstance(client.segment("ok"), Segment)
