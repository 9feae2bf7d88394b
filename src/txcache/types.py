"""
Core types for txcache.

- Enum for the lifecycle of a unit of work
- Frozen dataclass summarizing a finished commit/rollback
- Helper functions for ID generation and timestamps
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from uuid6 import uuid7


def generate_id(prefix: str = "") -> str:
    """Generate a time-ordered unique ID using UUID7.

    Args:
        prefix: Optional prefix for the ID (e.g., "tx", "session")

    Returns:
        A unique ID string, optionally prefixed.
    """
    uid = str(uuid7())
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class TxState(str, Enum):
    """State of a transactional view between unit-of-work boundaries."""

    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class TxOutcome:
    """Summary of the last unit of work ended on a transactional view."""

    tx_id: str
    state: TxState
    cleared: bool
    flushed: int
    missed: int
    finished_at: datetime
    release_failures: int = 0
