"""
Redis Cache Manager — Redlock Tests

Quorum acquisition, contention, release/extend ownership checks and the
lock factory builder, against the in-memory fake Redis.
"""

import asyncio
from datetime import timedelta

import pytest

from redis_cache_manager.connection import parse_connection_string
from redis_cache_manager.errors import LockError
from redis_cache_manager.locking import RedLockFactory, build_lock_factory
from tests.fakes import FakeRedisCluster

THREE_NODES = "node-a:6379,node-b:6379,node-c:6379,password=pw,defaultDatabase=1,connectTimeout=1500"


@pytest.fixture
def lock_factory(fake_cluster: FakeRedisCluster) -> RedLockFactory:
    return build_lock_factory(parse_connection_string(THREE_NODES), client_factory=fake_cluster)


def _holders(fake_cluster: FakeRedisCluster, key: str) -> int:
    return sum(1 for server in fake_cluster.servers.values() if key in server.databases.get(1, {}))


class TestBuildLockFactory:
    """The builder mirrors the endpoint set and shared parameters."""

    def test_endpoints_mirror_descriptor(self, lock_factory: RedLockFactory) -> None:
        assert [str(ep.endpoint) for ep in lock_factory.endpoints] == ["node-a:6379", "node-b:6379", "node-c:6379"]
        for ep in lock_factory.endpoints:
            assert ep.password == "pw"
            assert ep.redis_database == 1
            assert ep.connection_timeout_ms == 1500
            assert ep.sync_timeout_ms == 5000
            assert ep.config_check_seconds == 60
        assert lock_factory.quorum == 2

    def test_no_network_io_at_construction(self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster) -> None:
        assert fake_cluster.clients == []

    def test_empty_endpoint_list_rejected(self) -> None:
        with pytest.raises(LockError):
            RedLockFactory([])


class TestRedLock:
    """Lock semantics."""

    async def test_acquire_and_release(self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster) -> None:
        lock = lock_factory.create_lock("orders", expiry=timedelta(seconds=5))

        assert await lock.acquire() is True
        assert lock.is_acquired
        assert 0 < lock.validity_ms <= 5000
        assert _holders(fake_cluster, "redlock:orders") == 3

        assert await lock.release() is True
        assert not lock.is_acquired
        assert _holders(fake_cluster, "redlock:orders") == 0

    async def test_clients_are_bound_to_lock_database(
        self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster
    ) -> None:
        await lock_factory.create_lock("orders", expiry=5).acquire()

        assert len(fake_cluster.clients) == 3
        assert all(client.db == 1 for client in fake_cluster.clients)

    async def test_contention(self, lock_factory: RedLockFactory) -> None:
        first = lock_factory.create_lock("orders", expiry=5)
        second = lock_factory.create_lock("orders", expiry=5)

        assert await first.acquire() is True
        assert await second.acquire() is False

        await first.release()
        assert await second.acquire() is True

    async def test_quorum_with_one_node_down(self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster) -> None:
        fake_cluster.server("node-c", 6379).down = True

        lock = lock_factory.create_lock("orders", expiry=5)

        assert await lock.acquire() is True

    async def test_no_quorum_releases_partial_grants(
        self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster
    ) -> None:
        fake_cluster.server("node-b", 6379).down = True
        fake_cluster.server("node-c", 6379).down = True

        lock = lock_factory.create_lock("orders", expiry=5)

        assert await lock.acquire() is False
        assert _holders(fake_cluster, "redlock:orders") == 0

    async def test_release_does_not_touch_foreign_lock(
        self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster
    ) -> None:
        owner = lock_factory.create_lock("orders", expiry=5)
        intruder = lock_factory.create_lock("orders", expiry=5)
        await owner.acquire()

        assert await intruder.release() is False
        assert _holders(fake_cluster, "redlock:orders") == 3

    async def test_lock_expires(self, lock_factory: RedLockFactory) -> None:
        first = lock_factory.create_lock("orders", expiry=timedelta(milliseconds=100))
        await first.acquire()

        await asyncio.sleep(0.15)

        assert await lock_factory.create_lock("orders", expiry=5).acquire() is True

    async def test_extend(self, lock_factory: RedLockFactory) -> None:
        lock = lock_factory.create_lock("orders", expiry=timedelta(milliseconds=100))
        await lock.acquire()

        assert await lock.extend(timedelta(seconds=5)) is True
        await asyncio.sleep(0.15)

        assert await lock_factory.create_lock("orders", expiry=5).acquire() is False

    async def test_extend_requires_ownership(self, lock_factory: RedLockFactory) -> None:
        lock = lock_factory.create_lock("orders", expiry=5)

        assert await lock.extend() is False

    async def test_wait_retries_until_free(self, lock_factory: RedLockFactory) -> None:
        holder = lock_factory.create_lock("orders", expiry=timedelta(milliseconds=150))
        await holder.acquire()

        waiter = lock_factory.create_lock(
            "orders",
            expiry=5,
            wait=timedelta(seconds=1),
            retry=timedelta(milliseconds=50),
        )

        assert await waiter.acquire() is True

    async def test_context_manager(self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster) -> None:
        async with lock_factory.create_lock("orders", expiry=5) as lock:
            assert lock.is_acquired
            assert _holders(fake_cluster, "redlock:orders") == 3

        assert _holders(fake_cluster, "redlock:orders") == 0

    async def test_context_manager_raises_when_busy(self, lock_factory: RedLockFactory) -> None:
        await lock_factory.create_lock("orders", expiry=5).acquire()

        with pytest.raises(LockError, match="Failed to acquire lock"):
            async with lock_factory.create_lock("orders", expiry=5):
                pass

    @pytest.mark.parametrize("expiry", [0, -5, timedelta(0)])
    def test_invalid_expiry(self, lock_factory: RedLockFactory, expiry: float | timedelta) -> None:
        with pytest.raises(LockError):
            lock_factory.create_lock("orders", expiry=expiry)

    def test_empty_resource(self, lock_factory: RedLockFactory) -> None:
        with pytest.raises(LockError):
            lock_factory.create_lock("", expiry=5)

    async def test_close_releases_clients(self, lock_factory: RedLockFactory, fake_cluster: FakeRedisCluster) -> None:
        await lock_factory.create_lock("orders", expiry=5).acquire()

        await lock_factory.close()
        await lock_factory.close()

        assert lock_factory.closed
        assert all(client.closed for client in fake_cluster.clients)
        with pytest.raises(LockError):
            lock_factory.create_lock("orders", expiry=5)
