"""
In-process TTL cache with an injectable clock.

Design goals:
- One explicit cache object per engine (no class-level state)
- Entries are written whole (value + timestamp) and only ever replaced
- Deterministic expiry in tests through a fake clock
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    timestamp: float


class TTLCache(Generic[V]):
    """Key → (value, timestamp) store; an entry is valid while now − timestamp < ttl."""

    def __init__(self, ttl_seconds: float, clock: Clock | None = None):
        if ttl_seconds <= 0:
            raise ValueError("TTL must be positive.")
        self.ttl_seconds = ttl_seconds
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry[V]] = {}

    def get(self, key: str) -> V | None:
        """Return the cached value when fresh, else None. Stale entries stay until overwritten."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp < self.ttl_seconds:
            return entry.value
        return None

    def set(self, key: str, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def evict(self, key: str | None = None) -> None:
        """Evict one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
