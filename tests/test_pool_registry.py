"""Tests for the LRU connection pool registry."""

import threading

import pytest

from querygate.adapters import PoolRegistry
from querygate.errors import ConnectivityError


class FakePool:
    def __init__(self, connection_string, max_connections):
        self.connection_string = connection_string
        self.max_connections = max_connections
        self.close_calls = 0
        self.holders = 0

    def close(self):
        self.close_calls += 1

    def retain(self):
        self.holders += 1

    def release(self):
        self.holders -= 1


class FakeFactory:
    def __init__(self):
        self.created = []

    def __call__(self, connection_string, max_connections):
        pool = FakePool(connection_string, max_connections)
        self.created.append(pool)
        return pool


class TestPoolRegistry:
    def test_same_key_reuses_pool(self):
        factory = FakeFactory()
        registry = PoolRegistry(capacity=2, max_connections=5, pool_factory=factory)
        assert registry.get_pool("db://a") is registry.get_pool("db://a")
        assert len(factory.created) == 1
        assert factory.created[0].max_connections == 5

    def test_capacity_is_never_exceeded(self):
        registry = PoolRegistry(capacity=2, max_connections=1, pool_factory=FakeFactory())
        for key in ("db://a", "db://b", "db://c", "db://d"):
            registry.get_pool(key)
            assert len(registry) <= 2

    def test_evicts_least_recently_used_and_closes_it(self):
        factory = FakeFactory()
        registry = PoolRegistry(capacity=2, max_connections=1, pool_factory=factory)
        a = registry.get_pool("db://a")
        b = registry.get_pool("db://b")
        registry.get_pool("db://a")  # a becomes most recent
        registry.get_pool("db://c")

        assert "db://b" not in registry
        assert b.close_calls == 1
        assert a.close_calls == 0
        assert registry.keys() == ["db://a", "db://c"]

    def test_evicted_key_gets_a_new_pool(self):
        factory = FakeFactory()
        registry = PoolRegistry(capacity=1, max_connections=1, pool_factory=factory)
        first = registry.get_pool("db://a")
        registry.get_pool("db://b")
        second = registry.get_pool("db://a")
        assert second is not first
        assert first.close_calls == 1

    def test_acquire_retains_the_pool(self):
        registry = PoolRegistry(capacity=2, max_connections=1, pool_factory=FakeFactory())
        created = registry.acquire("db://a")
        hit = registry.acquire("db://a")
        assert hit is created
        assert created.holders == 2
        assert registry.get_pool("db://a").holders == 2

    def test_eviction_of_acquired_pool_leaves_the_hold_in_place(self):
        registry = PoolRegistry(capacity=1, max_connections=1, pool_factory=FakeFactory())
        held = registry.acquire("db://a")
        registry.get_pool("db://b")

        assert "db://a" not in registry
        assert held.close_calls == 1
        assert held.holders == 1
        held.release()
        assert held.holders == 0

    def test_factory_failure_propagates_and_registers_nothing(self):
        def failing_factory(connection_string, max_connections):
            raise ConnectivityError("unreachable")

        registry = PoolRegistry(capacity=2, max_connections=1, pool_factory=failing_factory)
        with pytest.raises(ConnectivityError):
            registry.get_pool("db://a")
        assert len(registry) == 0

    def test_close_all(self):
        factory = FakeFactory()
        registry = PoolRegistry(capacity=3, max_connections=1, pool_factory=factory)
        registry.get_pool("db://a")
        registry.get_pool("db://b")
        registry.close_all()
        assert len(registry) == 0
        assert all(p.close_calls == 1 for p in factory.created)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            PoolRegistry(capacity=0, max_connections=1, pool_factory=FakeFactory())

    def test_concurrent_lookups_share_one_pool(self):
        factory = FakeFactory()
        registry = PoolRegistry(capacity=4, max_connections=1, pool_factory=factory)
        results = []

        def worker():
            results.append(registry.get_pool("db://shared"))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 1
        assert len({id(p) for p in results}) == 1
        # any pool built by a losing racer was closed, never leaked
        leaked = [p for p in factory.created if p is not results[0] and p.close_calls == 0]
        assert leaked == []
