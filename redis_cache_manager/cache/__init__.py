"""
Redis Cache Manager — Cache Module

Typed cache operations and the named manager registry.

Usage:
    from redis_cache_manager.cache import create_cache_manager

    cache = create_cache_manager()
    await cache.set("key", {"value": 1}, expiry=3600)
    value = await cache.get("key")
"""

from .factory import (
    close_all_cache_managers,
    create_cache_manager,
    get_cache_manager,
    list_cache_managers,
    reset_cache_factory,
)
from .interface import CacheManagerInterface
from .manager import RedisCacheManager

__all__ = [
    # Registry
    "create_cache_manager",
    "get_cache_manager",
    "close_all_cache_managers",
    "list_cache_managers",
    "reset_cache_factory",
    # Managers
    "CacheManagerInterface",
    "RedisCacheManager",
]
