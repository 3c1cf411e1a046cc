"""
Redis Cache Manager — Cache Manager

Typed cache operations over a lazily established, shared Redis connection,
plus a Redlock factory built from the same endpoint set.

Example:
    manager = RedisCacheManager(RedisSettings(connection_string="localhost:6379"))
    await manager.set("customer:1", customer, expiry=timedelta(minutes=5))
    customer = await manager.get("customer:1", Customer)
    await manager.close()

Read-side decode failures are a deliberate silent degrade: a payload that is
not valid JSON, or does not validate against the requested type, is logged
and reported as a miss (None).
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Any

from pydantic import ValidationError

from ..config import RedisSettings
from ..connection import (
    ClientFactory,
    ConnectionGuardian,
    ConnectionOptions,
    DatabaseHandle,
    create_redis_client,
    parse_connection_string,
)
from ..errors import CacheOperationError, ConfigurationError
from ..locking import RedLock, RedLockFactory, build_lock_factory
from .interface import CacheManagerInterface
from .serialization import decode, encode

logger = logging.getLogger(__name__)

# Keys requested per SCAN round trip and deleted per DEL during clear()
CLEAR_BATCH_SIZE = 1000


def _expiry_ms(expiry: timedelta | float) -> int:
    seconds = expiry.total_seconds() if isinstance(expiry, timedelta) else float(expiry)
    if seconds <= 0:
        raise CacheOperationError(
            f"Cache expiry must be positive, got {expiry!r}",
            details={"expiry": str(expiry)},
        )
    return math.ceil(seconds * 1000)


class RedisCacheManager(CacheManagerInterface):
    """
    Cache manager over one shared Redis connection.

    Notes:
    - The connection is opened on first use, checked before every reuse and
      replaced when it was seen failing; nothing is retried automatically.
    - The lock factory is built once at construction from the parsed
      endpoint set and is not rebuilt when the connection is replaced.
    - Values are stored as UTF-8 JSON.
    """

    def __init__(
        self,
        settings: RedisSettings | None,
        client_factory: ClientFactory = create_redis_client,
    ) -> None:
        """
        Initialize the cache manager. Performs no network I/O.

        Args:
            settings: Settings carrying the connection string
            client_factory: Builds a redis.asyncio client per endpoint
                (override to inject a test double)

        Raises:
            ConfigurationError: If the connection string is missing or malformed
        """
        if settings is None or not settings.connection_string:
            raise ConfigurationError(
                "Redis connection string is null or empty; set a valid connection string",
                details={"field": "connection_string"},
            )

        self._connection_string = settings.connection_string
        self.options: ConnectionOptions = parse_connection_string(self._connection_string)
        self._guardian = ConnectionGuardian(self.options, client_factory)
        self._lock_factory = build_lock_factory(self.options, client_factory)
        self._closed = False

        logger.debug("Cache manager created", extra=self.options.describe())

    # ------------ Connection access ------------

    @property
    def guardian(self) -> ConnectionGuardian:
        return self._guardian

    @property
    def lock_factory(self) -> RedLockFactory:
        return self._lock_factory

    @property
    def closed(self) -> bool:
        return self._closed

    async def get_database(self, db: int | None = None) -> DatabaseHandle:
        """Obtain a database view through the live shared connection."""
        handle = await self._guardian.acquire()
        return handle.get_database(db)

    def create_lock(
        self,
        resource: str,
        expiry: timedelta | float,
        wait: timedelta | float | None = None,
        retry: timedelta | float | None = None,
    ) -> RedLock:
        """Create a distributed lock on ``resource`` (see RedLockFactory.create_lock)."""
        return self._lock_factory.create_lock(resource, expiry, wait=wait, retry=retry)

    # ------------ Helpers ------------

    def _decode(self, key: str, data: bytes, type_: Any) -> Any | None:
        try:
            return decode(data, type_)
        except ValidationError as e:
            logger.warning(
                "Failed to decode cached value for key '%s', treating as miss",
                key,
                extra={
                    "key": key,
                    "target_type": getattr(type_, "__name__", str(type_)),
                    "error_count": e.error_count(),
                },
            )
            return None

    # ------------ Core Interface ------------

    async def get(self, key: str, type_: Any = None) -> Any | None:
        db = await self.get_database()
        if not await db.exists(key):
            return None

        data = await db.get(key)
        if data is None:
            # Expired between EXISTS and GET
            return None
        return self._decode(key, data, type_)

    async def get_many(self, key: str, item_type: Any = None) -> list[Any] | None:
        db = await self.get_database()
        if not await db.exists(key):
            return None

        data = await db.get(key)
        if data is None:
            return None

        items = self._decode(key, data, list[Any] if item_type is None else list[item_type])
        if not items:
            return None
        return items

    async def set(
        self,
        key: str,
        value: Any,
        expiry: timedelta | float | None = None,
    ) -> bool:
        if value is None:
            logger.debug("Skipping set of None value for key '%s'", key)
            return False

        payload = encode(value)
        px = None if expiry is None else _expiry_ms(expiry)

        db = await self.get_database()
        return await db.set(key, payload, expiry_ms=px)

    async def is_set(self, key: str) -> bool:
        db = await self.get_database()
        return await db.exists(key)

    async def remove(self, key: str) -> bool:
        db = await self.get_database()
        return bool(await db.delete(key))

    async def get_key_remaining_timeout(self, key: str) -> timedelta | None:
        db = await self.get_database()
        ttl_ms = await db.pttl(key)
        # -2: key does not exist, -1: key has no expiry
        if ttl_ms < 0:
            return None
        return timedelta(milliseconds=ttl_ms)

    async def clear(self) -> int:
        """
        Delete the keys of the bound database, as seen through the primary.

        Keys are enumerated with SCAN on every endpoint but deleted in
        batches through the primary, which suits a primary/replica
        deployment. Keys that exist only on an independent secondary (for
        example its redlock:* keys) are not removed. FLUSHDB is not used
        because it needs admin rights. Not atomic: keys written while a clear
        runs may survive.
        """
        handle = await self._guardian.acquire()
        db = handle.get_database()
        total_deleted = 0

        for endpoint in handle.endpoints:
            server = handle.get_server(endpoint, db.database)
            keys: list[bytes] = []
            with handle.translate_errors("SCAN", endpoint=str(endpoint)):
                async for key in server.scan_iter(count=CLEAR_BATCH_SIZE):
                    keys.append(key)

            for i in range(0, len(keys), CLEAR_BATCH_SIZE):
                total_deleted += await db.delete(*keys[i : i + CLEAR_BATCH_SIZE])

        logger.info(
            "Cleared %d keys from database %d",
            total_deleted,
            db.database,
            extra={"deleted": total_deleted, "database": db.database, "endpoints": len(handle.endpoints)},
        )
        return total_deleted

    async def close(self) -> None:
        """Close the shared connection and the lock factory, attempting both."""
        if self._closed:
            return
        self._closed = True

        try:
            await self._guardian.close()
        except Exception as e:
            logger.error("Error closing cache connection: %s", e, extra={"error": str(e)}, exc_info=True)

        try:
            await self._lock_factory.close()
        except Exception as e:
            logger.error("Error closing lock factory: %s", e, extra={"error": str(e)}, exc_info=True)

        logger.info("Closed Redis cache manager", extra=self.options.describe())
