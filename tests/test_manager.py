"""
Tests for the session-level transactional cache manager.
"""

from __future__ import annotations

import pytest

from txcache.cache import InMemoryCache, LockingCache, TransactionalCacheManager
from txcache.exceptions import CacheStoreError, TransactionStateError

from conftest import FlakyCache


class TestTransactionalCacheManager:
    """Tests for TransactionalCacheManager."""

    def test_one_view_per_cache(self, store: InMemoryCache) -> None:
        """Test that the same shared cache yields the same view."""
        manager = TransactionalCacheManager()
        other = InMemoryCache("other")

        first = manager.get_transactional_cache(store)
        assert manager.get_transactional_cache(store) is first
        assert manager.get_transactional_cache(other) is not first

    def test_equal_stores_share_a_view(self) -> None:
        """Test that stores with the same id are treated as one cache."""
        manager = TransactionalCacheManager()
        view = manager.get_transactional_cache(InMemoryCache("same"))
        assert manager.get_transactional_cache(InMemoryCache("same")) is view

    def test_commit_flushes_every_cache(self, store: InMemoryCache) -> None:
        """Test that commit publishes writes across caches."""
        other = InMemoryCache("other")
        manager = TransactionalCacheManager()
        manager.put(store, "a", 1)
        manager.put(other, "b", 2)

        assert store.get("a") is None
        manager.commit()

        assert store.get("a") == 1
        assert other.get("b") == 2

    def test_rollback_discards_every_cache(self, store: InMemoryCache) -> None:
        """Test that rollback drops writes across caches."""
        other = InMemoryCache("other")
        manager = TransactionalCacheManager()
        manager.put(store, "a", 1)
        manager.clear(other)
        other.put("kept", True)

        manager.rollback()

        assert "a" not in store
        assert other.get("kept") is True

    def test_reads_through_session_view(self, store: InMemoryCache) -> None:
        """Test that get goes through the session view and honours clear."""
        store.put("k", "v")
        manager = TransactionalCacheManager()

        assert manager.get(store, "k") == "v"
        manager.clear(store)
        assert manager.get(store, "k") is None

    def test_commit_failure_rolls_back_remaining(self, flaky_store: FlakyCache, store: InMemoryCache) -> None:
        """Test that a failing cache does not leave later caches locked."""
        failing = LockingCache(flaky_store, timeout_ms=5_000)
        healthy = LockingCache(store, timeout_ms=5_000)
        flaky_store.fail_put_keys.add("x")
        manager = TransactionalCacheManager()
        manager.put(failing, "x", 1)
        assert manager.get(healthy, "y") is None
        manager.put(healthy, "z", 3)

        with pytest.raises(CacheStoreError):
            manager.commit()

        assert healthy.held_keys() == []
        assert "z" not in store

    def test_view_ids_derive_from_session(self, store: InMemoryCache) -> None:
        """Test that views carry the session id for log correlation."""
        manager = TransactionalCacheManager(session_id="session_1")
        view = manager.get_transactional_cache(store)
        assert view.tx_id.startswith("session_1:")

    def test_close_rolls_back_and_refuses_use(self, locking: LockingCache) -> None:
        """Test that closing releases locks and blocks further use."""
        manager = TransactionalCacheManager()
        assert manager.get(locking, "k") is None

        manager.close()
        manager.close()

        assert manager.closed is True
        assert locking.held_keys() == []
        with pytest.raises(TransactionStateError):
            manager.get(locking, "k")

    def test_commit_and_rollback_refused_after_close(self, store: InMemoryCache) -> None:
        """Test that ending a unit of work on a closed manager raises."""
        manager = TransactionalCacheManager(session_id="session_2")
        manager.put(store, "k", 1)
        manager.close()

        with pytest.raises(TransactionStateError) as exc_info:
            manager.commit()
        assert exc_info.value.context["tx_id"] == "session_2"
        with pytest.raises(TransactionStateError):
            manager.rollback()
        assert "k" not in store
