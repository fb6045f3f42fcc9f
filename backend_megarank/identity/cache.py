"""In-memory TTL cache with lazy expiry on read; owned by whoever constructs it."""

from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """
    Key -> (value, stored_at). Entries older than ttl_sec are dropped when read.

    No background eviction; prune() can be called to bound memory.
    """

    def __init__(self, ttl_sec: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_sec < 0:
            raise ValueError("ttl_sec must be non-negative")
        self._ttl = ttl_sec
        self._clock = clock
        self._entries: dict[str, tuple[V, float]] = {}

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (value, self._clock())

    def prune(self) -> int:
        """Drop expired entries; return how many were removed."""
        now = self._clock()
        expired = [k for k, (_, at) in self._entries.items() if now - at >= self._ttl]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
