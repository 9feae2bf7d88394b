"""
TransactionalCacheManager: the transactional views of one session.

A session (for example one database session) may read and write several
shared caches. The manager hands out one TransactionalCache per shared cache
and ends all of them together.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

from txcache.cache.base import Cache
from txcache.cache.transactional import TransactionalCache
from txcache.exceptions import TransactionStateError
from txcache.logging import get_logger, log_context
from txcache.types import generate_id

logger = get_logger(__name__)


class TransactionalCacheManager:
    """Registry of transactional views for a single thread of control."""

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or generate_id("session")
        self._views: dict[Cache, TransactionalCache] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_transactional_cache(self, cache: Cache) -> TransactionalCache:
        """Return this session's view of ``cache``, creating it on first use."""
        self._ensure_open(cache_id=cache.id)
        view = self._views.get(cache)
        if view is None:
            view = TransactionalCache(cache, tx_id=f"{self.session_id}:{len(self._views)}")
            self._views[cache] = view
        return view

    def get(self, cache: Cache, key: Hashable) -> Any | None:
        return self.get_transactional_cache(cache).get(key)

    def put(self, cache: Cache, key: Hashable, value: Any) -> None:
        self.get_transactional_cache(cache).put(key, value)

    def clear(self, cache: Cache) -> None:
        self.get_transactional_cache(cache).clear()

    def commit(self) -> None:
        """Commit every view. The first delegate failure propagates.

        Views after a failing one are rolled back so their locks are released.
        """
        self._ensure_open()
        with log_context(tx_id=self.session_id):
            views = list(self._views.values())
            for index, view in enumerate(views):
                try:
                    view.commit()
                except Exception:
                    for remaining in views[index + 1 :]:
                        remaining.rollback()
                    raise
            logger.debug("Committed session caches", caches=len(views))

    def rollback(self) -> None:
        """Roll back every view."""
        self._ensure_open()
        with log_context(tx_id=self.session_id):
            for view in self._views.values():
                view.rollback()
            logger.debug("Rolled back session caches", caches=len(self._views))

    def close(self) -> None:
        """Roll back outstanding work and refuse further use."""
        if self._closed:
            return
        self.rollback()
        self._views.clear()
        self._closed = True

    def _ensure_open(self, **context: Any) -> None:
        if self._closed:
            raise TransactionStateError(
                "Transactional cache manager is closed",
                context={"tx_id": self.session_id, **context},
            )
