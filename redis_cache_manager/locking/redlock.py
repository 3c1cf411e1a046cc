"""
Redis Cache Manager — Redlock

Quorum-based distributed lock across independent Redis endpoints.

Each lock attempt sets ``redlock:<resource>`` with NX/PX and a per-lock owner
token on every endpoint in parallel. The lock is held when a majority of
endpoints accepted it and the remaining validity (expiry minus elapsed time
minus clock drift) is still positive. Release and extend only touch keys that
still carry the owner token, via compare-and-act Lua scripts.

The factory opens no connections when constructed; per-endpoint clients are
created on the first lock attempt.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Sequence
from datetime import timedelta
from types import TracebackType

from pydantic import BaseModel, ConfigDict, Field
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..connection.endpoints import ConnectionOptions, Endpoint
from ..connection.guardian import ClientFactory, close_clients, create_redis_client
from ..errors import LockError

logger = logging.getLogger(__name__)

CLOCK_DRIFT_FACTOR = 0.01
KEY_PREFIX = "redlock:"
DEFAULT_RETRY = timedelta(milliseconds=200)

RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


def _to_ms(value: timedelta | float) -> int:
    """Durations are timedelta or seconds."""
    if isinstance(value, timedelta):
        return int(value.total_seconds() * 1000)
    return int(value * 1000)


class LockEndpoint(BaseModel):
    """One lock endpoint with the security and timeout parameters it is reached with."""

    endpoint: Endpoint
    password: str | None = Field(default=None, repr=False)
    user: str | None = None
    ssl: bool = False
    redis_database: int = 0
    config_check_seconds: int = 60
    connection_timeout_ms: int = 5000
    sync_timeout_ms: int = 5000

    model_config = ConfigDict(frozen=True)

    def to_connection_options(self) -> ConnectionOptions:
        """Connection parameters for a client dedicated to this endpoint."""
        return ConnectionOptions(
            endpoints=(self.endpoint,),
            password=self.password,
            user=self.user,
            ssl=self.ssl,
            default_database=self.redis_database,
            connect_timeout_ms=self.connection_timeout_ms,
            sync_timeout_ms=self.sync_timeout_ms,
            config_check_seconds=self.config_check_seconds,
        )


class RedLockFactory:
    """Creates RedLock instances over a fixed list of lock endpoints."""

    def __init__(
        self,
        endpoints: Sequence[LockEndpoint],
        client_factory: ClientFactory = create_redis_client,
    ) -> None:
        if not endpoints:
            raise LockError("A lock factory needs at least one endpoint")
        self.endpoints: tuple[LockEndpoint, ...] = tuple(endpoints)
        self._client_factory = client_factory
        self._clients: dict[LockEndpoint, Redis] = {}
        self._closed = False

    @property
    def quorum(self) -> int:
        return len(self.endpoints) // 2 + 1

    @property
    def closed(self) -> bool:
        return self._closed

    def client_for(self, lock_endpoint: LockEndpoint) -> Redis:
        """Client for one endpoint, created on first use."""
        if self._closed:
            raise LockError("Lock factory has been closed")
        client = self._clients.get(lock_endpoint)
        if client is None:
            client = self._client_factory(lock_endpoint.endpoint, lock_endpoint.to_connection_options())
            self._clients[lock_endpoint] = client
        return client

    def create_lock(
        self,
        resource: str,
        expiry: timedelta | float,
        wait: timedelta | float | None = None,
        retry: timedelta | float | None = None,
    ) -> RedLock:
        """
        Create an (unacquired) lock on ``resource``.

        Args:
            resource: Name of the resource to lock
            expiry: How long the lock is held before the store expires it
            wait: Keep retrying for this long; None means a single attempt
            retry: Pause between attempts (default 200 ms)
        """
        if self._closed:
            raise LockError("Lock factory has been closed", details={"resource": resource})
        if not resource:
            raise LockError("Lock resource name must not be empty")
        expiry_ms = _to_ms(expiry)
        if expiry_ms <= 0:
            raise LockError("Lock expiry must be positive", details={"resource": resource})

        return RedLock(
            factory=self,
            resource=resource,
            expiry_ms=expiry_ms,
            wait_ms=None if wait is None else _to_ms(wait),
            retry_ms=_to_ms(DEFAULT_RETRY if retry is None else retry),
        )

    async def close(self) -> None:
        """Close every endpoint client created so far. Idempotent."""
        if self._closed:
            return
        self._closed = True
        clients = list(self._clients.values())
        self._clients.clear()
        await close_clients(clients)
        logger.debug("Closed lock factory (%d endpoint clients)", len(clients))


class RedLock:
    """A named lock; use ``async with`` or acquire()/release()."""

    def __init__(
        self,
        factory: RedLockFactory,
        resource: str,
        expiry_ms: int,
        wait_ms: int | None,
        retry_ms: int,
    ) -> None:
        self.resource = resource
        self.key = f"{KEY_PREFIX}{resource}"
        self.lock_id = uuid.uuid4().hex
        self.expiry_ms = expiry_ms
        self.wait_ms = wait_ms
        self.retry_ms = retry_ms
        self.validity_ms = 0
        self._factory = factory
        self._acquired = False

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    async def _lock_instance(self, lock_endpoint: LockEndpoint) -> bool:
        try:
            client = self._factory.client_for(lock_endpoint)
            return bool(await client.set(self.key, self.lock_id, nx=True, px=self.expiry_ms))
        except (RedisError, OSError):
            logger.warning(
                "Failed to acquire lock on %s",
                lock_endpoint.endpoint,
                extra={"resource": self.resource, "endpoint": str(lock_endpoint.endpoint)},
                exc_info=True,
            )
            return False

    async def _run_script(self, lock_endpoint: LockEndpoint, script: str, *args: str | int) -> bool:
        try:
            client = self._factory.client_for(lock_endpoint)
            return bool(await client.eval(script, 1, self.key, self.lock_id, *args))
        except (RedisError, OSError):
            logger.warning(
                "Lock script failed on %s",
                lock_endpoint.endpoint,
                extra={"resource": self.resource, "endpoint": str(lock_endpoint.endpoint)},
                exc_info=True,
            )
            return False

    async def _unlock_all(self) -> int:
        results = await asyncio.gather(
            *(self._run_script(ep, RELEASE_SCRIPT) for ep in self._factory.endpoints)
        )
        return sum(results)

    async def acquire(self) -> bool:
        """
        Try to take the lock, retrying until ``wait`` elapses.

        Returns:
            True if a quorum of endpoints granted the lock in time
        """
        if self._acquired:
            return True

        deadline = None if self.wait_ms is None else time.monotonic() + self.wait_ms / 1000
        drift_ms = int(self.expiry_ms * CLOCK_DRIFT_FACTOR) + 2

        while True:
            start = time.monotonic()
            results = await asyncio.gather(*(self._lock_instance(ep) for ep in self._factory.endpoints))
            elapsed_ms = int((time.monotonic() - start) * 1000)
            validity_ms = self.expiry_ms - elapsed_ms - drift_ms

            if sum(results) >= self._factory.quorum and validity_ms > 0:
                self._acquired = True
                self.validity_ms = validity_ms
                logger.debug(
                    "Acquired lock %s",
                    self.resource,
                    extra={"resource": self.resource, "granted": sum(results), "validity_ms": validity_ms},
                )
                return True

            # Partial grants must not linger until expiry
            await self._unlock_all()

            if deadline is None or time.monotonic() + self.retry_ms / 1000 > deadline:
                logger.debug(
                    "Could not acquire lock %s",
                    self.resource,
                    extra={"resource": self.resource, "granted": sum(results), "quorum": self._factory.quorum},
                )
                return False
            await asyncio.sleep(self.retry_ms / 1000)

    async def release(self) -> bool:
        """Release the lock on every endpoint still holding our token."""
        if not self._acquired:
            return False
        self._acquired = False
        self.validity_ms = 0
        released = await self._unlock_all()
        return released > 0

    async def extend(self, expiry: timedelta | float | None = None) -> bool:
        """
        Push the expiry of a held lock forward.

        Returns:
            True if a quorum of endpoints accepted the extension
        """
        if not self._acquired:
            return False
        expiry_ms = self.expiry_ms if expiry is None else _to_ms(expiry)
        results = await asyncio.gather(
            *(self._run_script(ep, EXTEND_SCRIPT, expiry_ms) for ep in self._factory.endpoints)
        )
        if sum(results) >= self._factory.quorum:
            self.expiry_ms = expiry_ms
            self.validity_ms = expiry_ms
            return True
        return False

    async def __aenter__(self) -> RedLock:
        if not await self.acquire():
            raise LockError(
                f"Failed to acquire lock: {self.resource}",
                details={"resource": self.resource, "quorum": self._factory.quorum},
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.release()
