"""
Custom exception hierarchy for txcache.

All exceptions inherit from TxCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class TxCacheError(Exception):
    """Base exception for all txcache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(TxCacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Negative lock timeout passed to build_cache_stack
        - Blocking requested over a store that is already lock-decorated
    """

    pass


class LockError(TxCacheError):
    """Base class for per-key lock acquisition failures.

    Context should include:
        - key: The cache key whose lock was requested
        - cache_id: The id of the lock-decorated cache
    """

    pass


class LockTimeoutError(LockError):
    """Raised when a bounded wait for a per-key lock expires.

    The caller must not assume the lock was acquired.

    Context should include:
        - timeout_ms: The configured wait bound
    """

    pass


class LockWaitCancelledError(LockError):
    """Raised when the waiting thread's cancellation event fires."""

    pass


class CacheStoreError(TxCacheError):
    """Raised by a cache store when its own storage operation fails.

    Context should include:
        - cache_id: The store id
        - operation: get, put, remove or clear
    """

    pass


class TransactionStateError(TxCacheError):
    """Raised when a transactional view is used outside its unit of work.

    Context should include:
        - tx_id: The session or transaction id
    """

    pass
