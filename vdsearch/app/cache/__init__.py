"""Cache adapter implementations for geolocation lookups."""

from .adapters import (
    BaseCacheAdapter,
    CacheError,
    InMemoryCacheAdapter,
    RedisCacheAdapter,
)

__all__ = [
    "BaseCacheAdapter",
    "CacheError",
    "InMemoryCacheAdapter",
    "RedisCacheAdapter",
]
