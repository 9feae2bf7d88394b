"""
TransactionalCache: write buffering for one unit of work.

Writes stay in a local buffer until ``commit``; ``rollback`` throws them away.
Reads go straight to the wrapped cache, and every miss is remembered so the
lock a LockingCache delegate took for that key is released exactly once,
either by the negative placeholder written at commit or by ``release_lock``
at rollback.

One instance serves one thread of control. It holds no internal lock.
"""

from __future__ import annotations

from collections.abc import Hashable
from types import TracebackType
from typing import Any

from txcache.cache.base import Cache, CacheDecorator
from txcache.logging import get_logger, log_context
from txcache.types import TxOutcome, TxState, generate_id, utc_now

logger = get_logger(__name__)


class TransactionalCache(CacheDecorator):
    """Cache view that defers every write to ``commit``.

    Usage:
        with TransactionalCache(shared) as tx:
            value = tx.get(key)
            if value is None:
                tx.put(key, compute(key))
        # committed on normal exit, rolled back if the block raised
    """

    def __init__(self, delegate: Cache, tx_id: str | None = None) -> None:
        super().__init__(delegate)
        self.tx_id = tx_id or generate_id("tx")
        self.state = TxState.ACTIVE
        self.last_outcome: TxOutcome | None = None
        self._clear_requested = False
        self._pending_writes: dict[Hashable, Any] = {}
        self._missed_keys: set[Hashable] = set()

    @property
    def clear_requested(self) -> bool:
        return self._clear_requested

    @property
    def pending_writes(self) -> dict[Hashable, Any]:
        """Copy of the writes buffered for commit."""
        return dict(self._pending_writes)

    @property
    def missed_keys(self) -> frozenset[Hashable]:
        return frozenset(self._missed_keys)

    def get(self, key: Hashable) -> Any | None:
        self.state = TxState.ACTIVE
        value = self._delegate.get(key)
        if value is None:
            self._missed_keys.add(key)
        # Once clear() was called this unit of work sees an empty cache,
        # even though the delegate is only cleared at commit.
        if self._clear_requested:
            return None
        return value

    def put(self, key: Hashable, value: Any) -> None:
        self.state = TxState.ACTIVE
        self._pending_writes[key] = value

    def remove(self, key: Hashable) -> Any | None:
        """Deletes are not buffered; route them through ``clear`` instead."""
        return None

    def clear(self) -> None:
        self.state = TxState.ACTIVE
        self._clear_requested = True
        self._pending_writes.clear()

    def commit(self) -> None:
        """Flush buffered writes to the delegate and end the unit of work.

        A delegate failure part-way through propagates after the buffers are
        reset and the remaining missed keys are unlocked; entries already
        flushed stay in the delegate.
        """
        with log_context(cache_id=self.id, tx_id=self.tx_id):
            cleared = self._clear_requested
            flushed = len(self._pending_writes)
            missed = len(self._missed_keys)
            try:
                if self._clear_requested:
                    self._delegate.clear()
                self._flush_pending_entries()
            except BaseException:
                # Keys the flush never reached would otherwise stay locked
                self._unlock_missed_entries()
                raise
            finally:
                self._finish(TxState.COMMITTED, cleared, flushed, missed)
            logger.debug(
                "Committed transactional cache",
                cleared=cleared,
                flushed=flushed,
                missed=missed,
            )

    def rollback(self) -> None:
        """Discard buffered writes and release locks taken for missed keys."""
        with log_context(cache_id=self.id, tx_id=self.tx_id):
            cleared = self._clear_requested
            flushed = len(self._pending_writes)
            missed = len(self._missed_keys)
            failures = 0
            try:
                failures = self._unlock_missed_entries()
            finally:
                self._finish(TxState.ROLLED_BACK, cleared, 0, missed, failures)
            logger.debug("Rolled back transactional cache", discarded=flushed, missed=missed)

    def _flush_pending_entries(self) -> None:
        for key, value in self._pending_writes.items():
            self._delegate.put(key, value)
        # Missed keys get a placeholder, which also releases the delegate's lock
        for key in self._missed_keys:
            if key not in self._pending_writes:
                self._delegate.put(key, None)

    def _unlock_missed_entries(self) -> int:
        failures = 0
        for key in self._missed_keys:
            try:
                self._delegate.release_lock(key)
            except Exception as e:
                failures += 1
                logger.warning(
                    "Unexpected exception while releasing a key lock on rollback; "
                    "the cache adapter may be outdated",
                    key=repr(key),
                    error=str(e),
                )
        return failures

    def _finish(
        self,
        state: TxState,
        cleared: bool,
        flushed: int,
        missed: int,
        release_failures: int = 0,
    ) -> None:
        self._clear_requested = False
        self._pending_writes.clear()
        self._missed_keys.clear()
        self.state = state
        self.last_outcome = TxOutcome(
            tx_id=self.tx_id,
            state=state,
            cleared=cleared,
            flushed=flushed,
            missed=missed,
            release_failures=release_failures,
            finished_at=utc_now(),
        )

    def __enter__(self) -> TransactionalCache:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
