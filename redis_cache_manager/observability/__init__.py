"""
Redis Cache Manager — Observability Module

Structured logging setup for the package.

Usage:
    from redis_cache_manager.observability import setup_logging

    setup_logging(level="DEBUG", fmt="json")
"""

from .monitoring import (
    PACKAGE_LOGGER,
    JSONFormatter,
    configure_logging_from_config,
    setup_logging,
)

__all__ = [
    "PACKAGE_LOGGER",
    "JSONFormatter",
    "configure_logging_from_config",
    "setup_logging",
]
