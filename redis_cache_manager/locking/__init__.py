"""
Redis Cache Manager — Distributed Locking

Redlock-style locks over the same endpoint set as the cache connection.

Usage:
    factory = build_lock_factory(options)
    async with factory.create_lock("orders:42", expiry=timedelta(seconds=10)):
        ...
"""

from .factory import build_lock_factory
from .redlock import LockEndpoint, RedLock, RedLockFactory

__all__ = [
    "build_lock_factory",
    "LockEndpoint",
    "RedLock",
    "RedLockFactory",
]
