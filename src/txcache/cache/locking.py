"""
LockingCache: per-key mutual exclusion in front of a shared cache.

A ``get`` that misses keeps the key's lock held by the calling thread until
that thread supplies a value with ``put`` or gives up with ``release_lock``.
Every other thread asking for the same key blocks in ``get`` meanwhile, so a
burst of concurrent misses turns into one fetch and N-1 waiters.

Lock handles live in a table keyed by cache key. Handles are created on first
use and kept afterwards; ``sweep_locks`` drops the idle ones for processes
that see many distinct keys.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from typing import Any

from txcache.cache.base import Cache, CacheDecorator
from txcache.exceptions import ConfigurationError, LockTimeoutError, LockWaitCancelledError
from txcache.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CANCEL_POLL_MS = 50

_cancel_event_var: ContextVar[threading.Event | None] = ContextVar(
    "lock_cancel_event", default=None
)


@contextmanager
def cancellation(event: threading.Event) -> Iterator[threading.Event]:
    """Make lock waits in this thread of control abort when ``event`` is set.

    Example:
        stop = threading.Event()
        with cancellation(stop):
            value = locking_cache.get(key)  # LockWaitCancelledError once stop is set
    """
    token = _cancel_event_var.set(event)
    try:
        yield event
    finally:
        _cancel_event_var.reset(token)


class _WaitResult(str, Enum):
    ACQUIRED = "acquired"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class _KeyLock:
    """Owner-aware lock for a single cache key.

    The owning thread may acquire again without blocking; a single release
    frees the lock. ``refs`` counts threads that fetched the handle from the
    table and have not finished acquiring, so a sweep never drops a handle
    somebody is about to use. Lock order is table guard, then ``_cond``.
    """

    __slots__ = ("_cond", "owner", "refs")

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self.owner: int | None = None
        self.refs = 0

    def retain(self) -> None:
        with self._cond:
            self.refs += 1

    def acquire(
        self,
        timeout: float | None,
        cancel: threading.Event | None,
        poll: float,
    ) -> _WaitResult:
        me = threading.get_ident()
        deadline = time.monotonic() + timeout if timeout is not None else None
        with self._cond:
            try:
                if self.owner == me:
                    return _WaitResult.ACQUIRED
                while self.owner is not None:
                    if cancel is not None and cancel.is_set():
                        return _WaitResult.CANCELLED
                    wait: float | None = None
                    if deadline is not None:
                        wait = deadline - time.monotonic()
                        if wait <= 0:
                            return _WaitResult.TIMED_OUT
                    if cancel is not None:
                        wait = poll if wait is None else min(wait, poll)
                    self._cond.wait(wait)
                self.owner = me
                return _WaitResult.ACQUIRED
            finally:
                self.refs -= 1

    def release(self) -> bool:
        with self._cond:
            if self.owner != threading.get_ident():
                return False
            self.owner = None
            self._cond.notify()
            return True

    def is_held(self) -> bool:
        with self._cond:
            return self.owner is not None

    def is_idle(self) -> bool:
        with self._cond:
            return self.owner is None and self.refs == 0


class LockingCache(CacheDecorator):
    """Cache decorator that lets only one thread resolve a miss per key.

    ``get`` leaves the key locked on a miss. The thread that missed must then
    call ``put`` with the computed value or ``release_lock`` to abandon; both
    unblock the other waiters. ``remove`` deletes from the wrapped cache and
    likewise releases the caller's lock.

    Safe for concurrent use by any number of threads, provided the wrapped
    cache is.
    """

    def __init__(
        self,
        delegate: Cache,
        timeout_ms: int | None = None,
        *,
        cancel_poll_ms: int = DEFAULT_CANCEL_POLL_MS,
    ) -> None:
        super().__init__(delegate)
        if cancel_poll_ms <= 0:
            raise ConfigurationError(
                "cancel_poll_ms must be positive", context={"cancel_poll_ms": cancel_poll_ms}
            )
        self._timeout_ms = 0
        self.timeout_ms = timeout_ms
        self._poll = cancel_poll_ms / 1000.0
        self._locks: dict[Hashable, _KeyLock] = {}
        self._table_guard = threading.Lock()

    @property
    def cancel_poll_ms(self) -> int:
        """How often a blocked wait checks its cancellation event."""
        return round(self._poll * 1000)

    @property
    def timeout_ms(self) -> int | None:
        """Lock wait bound in milliseconds, None when waits are unbounded."""
        return self._timeout_ms or None

    @timeout_ms.setter
    def timeout_ms(self, value: int | None) -> None:
        if value is not None and value < 0:
            raise ConfigurationError(
                "Lock timeout must be >= 0", context={"timeout_ms": value}
            )
        self._timeout_ms = value or 0

    def get(self, key: Hashable) -> Any | None:
        lock = self._acquire(key)
        try:
            value = self._delegate.get(key)
        except BaseException:
            lock.release()
            raise
        if value is not None:
            lock.release()
        return value

    def put(self, key: Hashable, value: Any) -> None:
        try:
            self._delegate.put(key, value)
        finally:
            self.release_lock(key)

    def remove(self, key: Hashable) -> Any | None:
        try:
            return self._delegate.remove(key)
        finally:
            self.release_lock(key)

    def clear(self) -> None:
        self._delegate.clear()

    def release_lock(self, key: Hashable) -> None:
        with self._table_guard:
            lock = self._locks.get(key)
        if lock is not None:
            lock.release()

    def held_keys(self) -> list[Hashable]:
        """Keys whose lock is currently held by some thread."""
        with self._table_guard:
            items = list(self._locks.items())
        return [key for key, lock in items if lock.is_held()]

    def lock_count(self) -> int:
        """Number of lock handles in the table."""
        with self._table_guard:
            return len(self._locks)

    def sweep_locks(self) -> int:
        """Drop lock handles that are unheld and not being acquired.

        Returns:
            Number of handles removed.
        """
        with self._table_guard:
            idle = [key for key, lock in self._locks.items() if lock.is_idle()]
            for key in idle:
                del self._locks[key]
        if idle:
            logger.debug("Swept idle key locks", cache_id=self.id, removed=len(idle))
        return len(idle)

    def _lock_for(self, key: Hashable) -> _KeyLock:
        with self._table_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = _KeyLock()
            lock.retain()
            return lock

    def _acquire(self, key: Hashable) -> _KeyLock:
        lock = self._lock_for(key)
        timeout = self._timeout_ms / 1000.0 if self._timeout_ms else None
        result = lock.acquire(timeout, _cancel_event_var.get(), self._poll)

        if result is _WaitResult.TIMED_OUT:
            logger.warning(
                "Timed out waiting for key lock",
                cache_id=self.id,
                key=repr(key),
                timeout_ms=self._timeout_ms,
            )
            raise LockTimeoutError(
                f"Couldn't get a lock in {self._timeout_ms} ms",
                context={"key": key, "cache_id": self.id, "timeout_ms": self._timeout_ms},
            )
        if result is _WaitResult.CANCELLED:
            logger.debug("Key lock wait cancelled", cache_id=self.id, key=repr(key))
            raise LockWaitCancelledError(
                "Got cancelled while waiting for a key lock",
                context={"key": key, "cache_id": self.id},
            )
        return lock
