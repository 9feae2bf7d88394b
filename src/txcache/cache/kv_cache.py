"""
Key-value cache implementation.

InMemoryCache is an unbounded dict-backed store. It implements no eviction
and is the default store placed under the decorator stack.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable
from typing import Any

from txcache.cache.base import Cache
from txcache.exceptions import ConfigurationError


class InMemoryCache(Cache):
    """Thread-safe, unbounded in-memory store.

    Two stores with the same id compare equal, so a store can be used as a
    registry key for the caches a session touches.
    """

    def __init__(self, cache_id: str) -> None:
        if not cache_id:
            raise ConfigurationError("Cache instances require an id")
        self._id = cache_id
        self._entries: dict[Hashable, Any] = {}
        self._mutex = threading.Lock()

    @property
    def id(self) -> str:
        return self._id

    def get(self, key: Hashable) -> Any | None:
        with self._mutex:
            return self._entries.get(key)

    def put(self, key: Hashable, value: Any) -> None:
        with self._mutex:
            self._entries[key] = value

    def remove(self, key: Hashable) -> Any | None:
        with self._mutex:
            return self._entries.pop(key, None)

    def clear(self) -> None:
        with self._mutex:
            self._entries.clear()

    def size(self) -> int:
        with self._mutex:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._mutex:
            return key in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InMemoryCache):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)
