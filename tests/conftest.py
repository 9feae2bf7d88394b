"""
Pytest configuration and fixtures for txcache tests.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Hashable
from typing import Any, Generator
from unittest.mock import patch

import pytest

from txcache.cache import InMemoryCache, LockingCache
from txcache.config import Settings, clear_settings_cache
from txcache.exceptions import CacheStoreError


class FlakyCache(InMemoryCache):
    """In-memory store that fails on demand."""

    def __init__(self, cache_id: str = "flaky") -> None:
        super().__init__(cache_id)
        self.fail_put_keys: set[Hashable] = set()
        self.fail_get = False
        self.clear_calls = 0

    def get(self, key: Hashable) -> Any | None:
        if self.fail_get:
            raise CacheStoreError("get failed", context={"cache_id": self.id, "operation": "get"})
        return super().get(key)

    def put(self, key: Hashable, value: Any) -> None:
        if key in self.fail_put_keys:
            raise CacheStoreError("put failed", context={"cache_id": self.id, "operation": "put"})
        super().put(key, value)

    def clear(self) -> None:
        self.clear_calls += 1
        super().clear()


@pytest.fixture
def store() -> InMemoryCache:
    """Provide an empty in-memory store."""
    return InMemoryCache("test-cache")


@pytest.fixture
def flaky_store() -> FlakyCache:
    """Provide a store that can be told to fail."""
    return FlakyCache()


@pytest.fixture
def locking(store: InMemoryCache) -> LockingCache:
    """Provide a LockingCache over the in-memory store.

    The wait bound turns an accidental deadlock into a LockTimeoutError
    instead of a hung test run.
    """
    return LockingCache(store, timeout_ms=5_000, cancel_poll_ms=10)


@pytest.fixture
def txcache_logs(caplog: pytest.LogCaptureFixture) -> Generator[pytest.LogCaptureFixture, None, None]:
    """Capture records from the txcache logger, which does not propagate."""
    logger = logging.getLogger("txcache")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="txcache")
    yield caplog
    logger.removeHandler(caplog.handler)


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "CACHE_BLOCKING": "true",
        "CACHE_LOCK_TIMEOUT_MS": "250",
        "CACHE_CANCEL_POLL_MS": "20",
        "LOG_LEVEL": "debug",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Settings:
    """Provide a Settings instance built from the mock environment."""
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
