"""Millisecond wall clock and the token expiration policy."""

import time
from collections.abc import Callable
from typing import Protocol

Clock = Callable[[], int]


class HasExpiration(Protocol):
    """Anything carrying an epoch-millisecond expiration."""

    @property
    def expiration(self) -> int: ...


def now_millis() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def is_expired(token: HasExpiration, now: int) -> bool:
    """A token expiring exactly at ``now`` is still valid."""
    return token.expiration < now
