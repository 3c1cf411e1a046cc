"""
Redis Cache Manager — Lock Factory Builder

Builds the lock factory from the same resolved endpoint set and security
parameters as the cache connection. Called once per manager, at construction.
"""

from __future__ import annotations

import logging

from ..connection.endpoints import ConnectionOptions
from ..connection.guardian import ClientFactory, create_redis_client
from .redlock import LockEndpoint, RedLockFactory

logger = logging.getLogger(__name__)


def build_lock_factory(
    options: ConnectionOptions,
    client_factory: ClientFactory = create_redis_client,
) -> RedLockFactory:
    """
    Pair every endpoint with the shared parameters and build a RedLockFactory.

    No network I/O happens here.
    """
    lock_endpoints = [
        LockEndpoint(
            endpoint=endpoint,
            password=options.password,
            user=options.user,
            ssl=options.ssl,
            redis_database=options.default_database,
            config_check_seconds=options.config_check_seconds,
            connection_timeout_ms=options.connect_timeout_ms,
            sync_timeout_ms=options.sync_timeout_ms,
        )
        for endpoint in options.endpoints
    ]

    logger.debug(
        "Built lock factory over %d endpoint(s)",
        len(lock_endpoints),
        extra=options.describe(),
    )
    return RedLockFactory(lock_endpoints, client_factory=client_factory)
