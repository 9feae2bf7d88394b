"""
Base classes for caching.

Cache is the contract every layer of the stack implements and consumes:
a raw store, the LockingCache decorator and the TransactionalCache view all
expose the same operations and compose by wrapping one another at
construction time.

``None`` is the absent marker throughout: a ``get`` returning ``None`` is a miss.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Any


class Cache(ABC):
    """Abstract interface for cache implementations."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Identifier of the cache."""
        ...

    @abstractmethod
    def get(self, key: Hashable) -> Any | None:
        """Get a value from the cache, or None when absent."""
        ...

    @abstractmethod
    def put(self, key: Hashable, value: Any) -> None:
        """Store a value in the cache."""
        ...

    @abstractmethod
    def remove(self, key: Hashable) -> Any | None:
        """Delete a value from the cache, returning the previous value."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        ...

    @abstractmethod
    def size(self) -> int:
        """Number of entries currently held."""
        ...

    def release_lock(self, key: Hashable) -> None:
        """Release a lock the calling thread holds for ``key``.

        Stores without per-key locking have nothing to release.
        """
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"


class CacheDecorator(Cache):
    """Cache that wraps another cache and forwards identity and size to it."""

    def __init__(self, delegate: Cache) -> None:
        self._delegate = delegate

    @property
    def delegate(self) -> Cache:
        """The wrapped cache."""
        return self._delegate

    @property
    def id(self) -> str:
        return self._delegate.id

    def size(self) -> int:
        return self._delegate.size()
