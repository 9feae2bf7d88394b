"""
Assembly of the shared cache stack from settings.
"""

from __future__ import annotations

from txcache.cache.base import Cache
from txcache.cache.kv_cache import InMemoryCache
from txcache.cache.locking import LockingCache
from txcache.config import Settings, get_settings
from txcache.exceptions import ConfigurationError


def build_cache_stack(
    cache_id: str,
    *,
    store: Cache | None = None,
    blocking: bool | None = None,
    lock_timeout_ms: int | None = None,
    settings: Settings | None = None,
) -> Cache:
    """Build the shared cache that transactional views wrap.

    Args:
        cache_id: Id for the default in-memory store.
        store: Store to wrap. Defaults to ``InMemoryCache(cache_id)``.
        blocking: Wrap the store in a LockingCache. Defaults to CACHE_BLOCKING.
        lock_timeout_ms: Lock wait bound. Defaults to CACHE_LOCK_TIMEOUT_MS.
        settings: Settings to read defaults from. Defaults to get_settings().

    Returns:
        The store, lock-decorated when blocking is enabled.

    Raises:
        ConfigurationError: If blocking is requested over a LockingCache.
    """
    settings = settings or get_settings()
    if store is None:
        store = InMemoryCache(cache_id)
    if blocking is None:
        blocking = settings.CACHE_BLOCKING
    if lock_timeout_ms is None:
        lock_timeout_ms = settings.lock_timeout_ms

    if not blocking:
        return store
    if isinstance(store, LockingCache):
        raise ConfigurationError(
            "Store is already lock-decorated", context={"cache_id": store.id}
        )
    return LockingCache(
        store,
        timeout_ms=lock_timeout_ms,
        cancel_poll_ms=settings.CACHE_CANCEL_POLL_MS,
    )
