"""Tests for the lock stores (in-memory, SQL and Redis)."""

from __future__ import annotations

import sqlite3
import threading
from unittest.mock import MagicMock

import pytest
import redis

from jobspine.core.errors import LockStoreUnavailableError
from jobspine.locks.memory import InMemoryLockStore
from jobspine.locks.redis import RELEASE_SCRIPT, RedisLockStore
from jobspine.locks.sql import SqlLockStore
from jobspine.locks.store import LockStore


class TestInMemoryLockStore:
    def test_set_if_absent_is_exclusive(self, memory_store):
        assert memory_store.set_if_absent("report", "a:1", 5)
        assert not memory_store.set_if_absent("report", "b:1", 5)
        assert memory_store.get_holder("report") == "a:1"

    def test_independent_keys(self, memory_store):
        assert memory_store.set_if_absent("report", "a:1", 5)
        assert memory_store.set_if_absent("cleanup", "b:1", 5)
        assert memory_store.keys() == ["cleanup", "report"]
        assert len(memory_store) == 2

    def test_expiry_boundary(self, memory_store, monotonic):
        assert memory_store.set_if_absent("report", "a:1", 5)

        monotonic.advance(4.9)
        assert not memory_store.set_if_absent("report", "b:1", 5)

        monotonic.now = 5.0
        assert memory_store.get_holder("report") is None
        assert memory_store.set_if_absent("report", "b:1", 5)
        assert memory_store.get_holder("report") == "b:1"

    def test_delete_requires_matching_holder(self, memory_store):
        memory_store.set_if_absent("report", "a:1", 5)

        assert not memory_store.delete_if_holder("report", "b:1")
        assert memory_store.get_holder("report") == "a:1"
        assert memory_store.delete_if_holder("report", "a:1")
        assert memory_store.get_holder("report") is None

    def test_expired_holder_cannot_delete_successor(self, memory_store, monotonic):
        memory_store.set_if_absent("report", "a:1", 5)
        monotonic.advance(6)
        memory_store.set_if_absent("report", "b:1", 5)

        assert not memory_store.delete_if_holder("report", "a:1")
        assert memory_store.get_holder("report") == "b:1"

    def test_satisfies_protocol(self, memory_store):
        assert isinstance(memory_store, LockStore)


class TestSqlLockStore:
    @pytest.fixture
    def now(self):
        return [1_000.0]

    @pytest.fixture
    def store(self, conn, now):
        store = SqlLockStore(conn, clock=lambda: now[0])
        store.initialize()
        return store

    def test_set_if_absent_is_exclusive(self, store):
        assert store.set_if_absent("report", "a:1", 5)
        assert not store.set_if_absent("report", "b:1", 5)
        assert store.get_holder("report") == "a:1"

    def test_expired_row_is_replaced(self, store, now):
        store.set_if_absent("report", "a:1", 5)

        now[0] = 1_004.9
        assert not store.set_if_absent("report", "b:1", 5)
        now[0] = 1_005.0
        assert store.set_if_absent("report", "b:1", 5)
        assert store.get_holder("report") == "b:1"

    def test_delete_requires_matching_holder(self, store):
        store.set_if_absent("report", "a:1", 5)

        assert not store.delete_if_holder("report", "b:1")
        assert store.delete_if_holder("report", "a:1")
        assert store.get_holder("report") is None

    def test_expired_holder_cannot_delete_successor(self, store, now):
        store.set_if_absent("report", "a:1", 5)
        now[0] += 10
        store.set_if_absent("report", "b:1", 5)

        assert not store.delete_if_holder("report", "a:1")
        assert store.get_holder("report") == "b:1"

    def test_cleanup_and_list_active(self, store, now):
        store.set_if_absent("old", "a:1", 5)
        now[0] += 10
        store.set_if_absent("fresh", "b:1", 60)

        active = store.list_active()
        assert [lock["key"] for lock in active] == ["fresh"]
        assert active[0]["holder"] == "b:1"
        assert store.cleanup_expired() == 1
        assert store.cleanup_expired() == 0

    def test_missing_table_is_store_unavailable(self, conn):
        store = SqlLockStore(conn)
        with pytest.raises(LockStoreUnavailableError) as exc_info:
            store.set_if_absent("report", "a:1", 5)
        assert exc_info.value.context.lock_key == "report"
        assert exc_info.value.context.backend == "sql"

    def test_closed_connection_is_store_unavailable(self):
        conn = sqlite3.connect(":memory:")
        store = SqlLockStore(conn)
        store.initialize()
        conn.close()

        with pytest.raises(LockStoreUnavailableError):
            store.get_holder("report")

    def test_shared_connection_across_threads(self, store):
        guard = threading.Lock()
        holding = [0]
        peak = [0]
        errors: list[Exception] = []

        def worker(worker_id: int) -> None:
            for attempt in range(50):
                holder = f"worker-{worker_id}:{attempt}"
                try:
                    if not store.set_if_absent("report", holder, 60):
                        continue
                    with guard:
                        holding[0] += 1
                        peak[0] = max(peak[0], holding[0])
                    with guard:
                        holding[0] -= 1
                    assert store.delete_if_holder("report", holder)
                except Exception as e:
                    errors.append(e)
                    return

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert peak[0] == 1
        assert store.get_holder("report") is None


class TestRedisLockStore:
    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.release = MagicMock(return_value=1)
        client.register_script.return_value = client.release
        return client

    @pytest.fixture
    def store(self, client):
        return RedisLockStore(client)

    def test_registers_release_script(self, client, store):
        client.register_script.assert_called_once_with(RELEASE_SCRIPT)

    def test_set_uses_nx_px(self, client, store):
        client.set.return_value = True

        assert store.set_if_absent("report", "a:1", 1.5)
        client.set.assert_called_once_with("jobspine:lock:report", "a:1", nx=True, px=1500)

    def test_set_returns_false_when_key_exists(self, client, store):
        client.set.return_value = None
        assert not store.set_if_absent("report", "b:1", 5)

    def test_sub_millisecond_ttl_rounds_up(self, client, store):
        client.set.return_value = True
        store.set_if_absent("report", "a:1", 0.0001)
        assert client.set.call_args.kwargs["px"] == 1

    def test_release_runs_compare_and_delete(self, client, store):
        assert store.delete_if_holder("report", "a:1")
        client.release.assert_called_once_with(keys=["jobspine:lock:report"], args=["a:1"])

    def test_release_of_foreign_lock_returns_false(self, client, store):
        client.release.return_value = 0
        assert not store.delete_if_holder("report", "b:1")

    def test_get_holder_decodes_bytes(self, client, store):
        client.get.return_value = b"a:1"
        assert store.get_holder("report") == "a:1"

    def test_custom_prefix(self, client):
        client.set.return_value = True
        RedisLockStore(client, key_prefix="svc:").set_if_absent("report", "a:1", 1)
        assert client.set.call_args.args[0] == "svc:report"

    @pytest.mark.parametrize("method,args", [
        ("set_if_absent", ("report", "a:1", 5)),
        ("get_holder", ("report",)),
    ])
    def test_redis_errors_become_store_unavailable(self, client, store, method, args):
        client.set.side_effect = redis.ConnectionError("connection refused")
        client.get.side_effect = redis.ConnectionError("connection refused")

        with pytest.raises(LockStoreUnavailableError) as exc_info:
            getattr(store, method)(*args)
        assert isinstance(exc_info.value.__cause__, redis.ConnectionError)
        assert exc_info.value.context.backend == "redis"

    def test_release_error_becomes_store_unavailable(self, client, store):
        client.release.side_effect = redis.TimeoutError("timed out")
        with pytest.raises(LockStoreUnavailableError):
            store.delete_if_holder("report", "a:1")

    def test_from_url(self, monkeypatch):
        fake = MagicMock()
        from_url = MagicMock(return_value=fake)
        monkeypatch.setattr(redis.Redis, "from_url", from_url)

        store = RedisLockStore.from_url("redis://cache:6379/0", socket_timeout=2.0)

        assert store.name == "redis"
        from_url.assert_called_once_with(
            "redis://cache:6379/0",
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        fake.register_script.assert_called_once_with(RELEASE_SCRIPT)
