"""
Redis Cache Manager

Typed cache facade over Redis with a lazily shared connection and
Redlock-based distributed locks over the same endpoints.
"""

__version__ = "1.0.0"

# Export main components for external use
from .cache import (
    CacheManagerInterface,
    RedisCacheManager,
    close_all_cache_managers,
    create_cache_manager,
    get_cache_manager,
)
from .config import RedisSettings
from .errors import (
    CacheConnectionError,
    CacheError,
    ConfigurationError,
    LockError,
    RedisCacheManagerError,
)

__all__ = [
    "CacheManagerInterface",
    "RedisCacheManager",
    "RedisSettings",
    "create_cache_manager",
    "get_cache_manager",
    "close_all_cache_managers",
    "CacheConnectionError",
    "CacheError",
    "ConfigurationError",
    "LockError",
    "RedisCacheManagerError",
]
