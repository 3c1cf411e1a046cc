"""
Redis Cache Manager — Cache Factory

Named registry of cache managers, one shared instance per name for the
lifetime of the process (or until closed).

Examples:
    from redis_cache_manager.cache.factory import create_cache_manager, get_cache_manager

    # Uses REDIS_CONNECTION_STRING from the environment / .env
    cache = create_cache_manager()

    # Or explicitly supply settings (e.g., for tests)
    from redis_cache_manager.config import RedisSettings
    cache = create_cache_manager(RedisSettings(connection_string="localhost:6379"), name="sessions")

    # On shutdown
    await close_all_cache_managers()
"""

from __future__ import annotations

import logging

from ..config import RedisSettings, get_config
from ..connection import ClientFactory, create_redis_client
from .interface import CacheManagerInterface
from .manager import RedisCacheManager

logger = logging.getLogger(__name__)

# Global cache manager registry
_cache_instances: dict[str, CacheManagerInterface] = {}


def create_cache_manager(
    settings: RedisSettings | None = None,
    name: str = "default",
    client_factory: ClientFactory = create_redis_client,
) -> CacheManagerInterface:
    """
    Create (or return the already registered) cache manager for ``name``.

    Args:
        settings: Redis settings (uses global config if not provided)
        name: Registry name (for multiple independent managers)
        client_factory: Client factory handed to the manager

    Returns:
        Registered cache manager

    Raises:
        ConfigurationError: If the connection string is missing or invalid
    """
    if name in _cache_instances:
        logger.debug("Returning existing cache manager: %s", name)
        return _cache_instances[name]

    if settings is None:
        settings = get_config().redis

    manager = RedisCacheManager(settings, client_factory=client_factory)
    _cache_instances[name] = manager

    logger.info(
        "Cache manager '%s' created",
        name,
        extra={"cache_name": name, **manager.options.describe()},
    )
    return manager


def get_cache_manager(name: str = "default") -> CacheManagerInterface:
    """
    Get a registered cache manager, creating it from global config if missing.

    Args:
        name: Registry name

    Returns:
        Cache manager instance
    """
    if name not in _cache_instances:
        logger.debug("Cache manager '%s' not found, creating new instance", name)
        return create_cache_manager(name=name)

    return _cache_instances[name]


async def close_all_cache_managers() -> None:
    """
    Close every registered cache manager and empty the registry.

    Call during graceful shutdown.
    """
    if not _cache_instances:
        logger.debug("No cache managers to close")
        return

    logger.info("Closing %d cache manager(s)...", len(_cache_instances))

    for name, manager in list(_cache_instances.items()):
        try:
            await manager.close()
            logger.info("Closed cache manager: %s", name)
        except Exception as e:
            logger.error(
                "Error closing cache manager '%s': %s",
                name,
                e,
                extra={"cache_name": name, "error": str(e)},
                exc_info=True,
            )

    _cache_instances.clear()


def reset_cache_factory() -> None:
    """
    Forget every registered manager without closing it.

    Warning: Only use this in testing contexts.
    """
    count = len(_cache_instances)
    _cache_instances.clear()
    logger.debug("Reset cache factory, cleared %d instance reference(s)", count)


def list_cache_managers() -> list[str]:
    """List all registered cache manager names."""
    return list(_cache_instances.keys())
