"""
Redis Cache Manager — Connection Module

Endpoint resolution and the shared, lazily (re)established store connection.
"""

from .endpoints import ConnectionOptions, Endpoint, parse_connection_string
from .guardian import (
    ClientFactory,
    ConnectionGuardian,
    ConnectionHandle,
    DatabaseHandle,
    create_redis_client,
)

__all__ = [
    # Endpoint resolution
    "ConnectionOptions",
    "Endpoint",
    "parse_connection_string",
    # Connection lifecycle
    "ClientFactory",
    "ConnectionGuardian",
    "ConnectionHandle",
    "DatabaseHandle",
    "create_redis_client",
]
