"""Generic caching utilities."""

import functools
import threading
from collections.abc import Callable
from typing import Any

from argscaffold.utils import Sentinel


class _CACHE_MISS(Sentinel):  # noqa: N801
    """Sentinel for cache misses (distinct from None which is a valid result)."""


def cache(key_func: Callable[..., tuple]) -> Callable[[Callable], Callable]:
    """Decorator that caches function results based on a custom key function.

    Similar to functools.lru_cache, but with custom key generation and no eviction.
    A failing call is not cached. The decorated function gets a ``cache_clear()`` method.

    Parameters
    ----------
    key_func
        Function that takes the same arguments as the decorated function
        and returns a hashable cache key tuple.

    Example
    -------
    >>> @cache(lambda cls: (cls,))
    ... def build(cls):
    ...     return expensive_introspection(cls)
    >>> build.cache_clear()  # Clear the cache
    """

    def decorator(func: Callable) -> Callable:
        func_cache: dict[tuple, Any] = {}
        lock = threading.RLock()

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache_key = key_func(*args, **kwargs)
            cached = func_cache.get(cache_key, _CACHE_MISS)
            if cached is not _CACHE_MISS:
                return cached

            # Two threads racing on a cold key must observe the same object.
            with lock:
                cached = func_cache.get(cache_key, _CACHE_MISS)
                if cached is not _CACHE_MISS:
                    return cached
                result = func(*args, **kwargs)
                func_cache[cache_key] = result
            return result

        wrapper.cache_clear = func_cache.clear  # type: ignore[attr-defined]
        return wrapper

    return decorator
