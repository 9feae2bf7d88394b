"""
txcache - transactional, stampede-preventing cache decorators.

Layers:
- LockingCache: per-key mutual exclusion so one caller resolves a miss
- TransactionalCache: per-unit-of-work write buffering with commit/rollback
- TransactionalCacheManager: session-level registry of transactional views
"""

from txcache.cache import (
    Cache,
    InMemoryCache,
    LockingCache,
    TransactionalCache,
    TransactionalCacheManager,
    build_cache_stack,
    cancellation,
)
from txcache.exceptions import (
    CacheStoreError,
    ConfigurationError,
    LockError,
    LockTimeoutError,
    LockWaitCancelledError,
    TransactionStateError,
    TxCacheError,
)

__version__ = "0.1.0"

__all__ = [
    "Cache",
    "CacheStoreError",
    "ConfigurationError",
    "InMemoryCache",
    "LockError",
    "LockTimeoutError",
    "LockWaitCancelledError",
    "LockingCache",
    "TransactionStateError",
    "TransactionalCache",
    "TransactionalCacheManager",
    "TxCacheError",
    "__version__",
    "build_cache_stack",
    "cancellation",
]
