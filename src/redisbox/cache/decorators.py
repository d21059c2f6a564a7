"""Cache decorators for coroutine functions"""

from collections.abc import Callable
from functools import wraps
from typing import Any

from redisbox.cache.client import Segment
from redisbox.cache.keys import hash_call


def cached(
    segment: Segment,
    ttl: int | None = None,
    key_func: Callable[..., str] | None = None,
) -> Callable:
    """Decorator to serve a coroutine function's results from cache

    Args:
        segment: Segment to cache results in
        ttl: Time to live in seconds (overrides the segment default)
        key_func: Builds the cache identifier from the call arguments.
            Defaults to a hash of the function name and JSON encoded arguments.

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if key_func is not None:
                cache_id = key_func(*args, **kwargs)
            else:
                cache_id = hash_call(func.__qualname__, args, kwargs)

            async def generate() -> Any:
                return await func(*args, **kwargs)

            return await segment.get_or_generate(cache_id, generate, ttl)

        return wrapper

    return decorator
