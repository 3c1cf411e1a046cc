"""
Redis Cache Manager — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    CacheManagerConfig,
    Environment,
    LogFormat,
    LogLevel,
    RedisSettings,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "CacheManagerConfig",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Config sections
    "RedisSettings",
]
