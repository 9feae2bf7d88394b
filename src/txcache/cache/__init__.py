"""
Cache package.

- Cache contract (base.py) shared by every layer
- In-memory store (kv_cache.py)
- LockingCache (locking.py): per-key miss resolution
- TransactionalCache (transactional.py): buffered writes per unit of work
- TransactionalCacheManager (manager.py): one view per cache per session
"""

from txcache.cache.base import Cache, CacheDecorator
from txcache.cache.builder import build_cache_stack
from txcache.cache.kv_cache import InMemoryCache
from txcache.cache.locking import LockingCache, cancellation
from txcache.cache.manager import TransactionalCacheManager
from txcache.cache.transactional import TransactionalCache

__all__ = [
    "Cache",
    "CacheDecorator",
    "InMemoryCache",
    "LockingCache",
    "TransactionalCache",
    "TransactionalCacheManager",
    "build_cache_stack",
    "cancellation",
]
