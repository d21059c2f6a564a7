import fakeredis
import fakeredis.aioredis as fake_redis
import pytest
from hypothesis import Verbosity, settings

from redisbox.cache.test_redis import FakeRedisCacheBackend

# Register test profiles
settings.register_profile("dev", max_examples=10)
settings.register_profile("ci", max_examples=100)
settings.register_profile("debug", max_examples=1000, verbosity=Verbosity.verbose)


@pytest.fixture
def fake_server():
    """Fresh in-process Redis server"""
    return fakeredis.FakeServer()


@pytest.fixture
def backend(fake_server):
    """Redis backend talking to the fake server (not started)"""
    return FakeRedisCacheBackend(server=fake_server)


@pytest.fixture
def raw_redis(fake_server):
    """Direct client on the fake server, bypassing the backend"""
    return fake_redis.FakeRedis(server=fake_server, decode_responses=True)
