"""In-process LRU cache with per-entry expiry."""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

Clock = Callable[[], float]


@dataclass
class CacheStats:
    """Counters for one cache instance."""
    hits: int = 0
    misses: int = 0
    writes: int = 0
    invalidations: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "invalidations": self.invalidations,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 4),
        }


class LRUCache:
    """
    Bounded async cache for profiles, memory lookups and replies.

    Every entry may carry an expiry; once full, the entry touched longest
    ago is dropped. The clock is injectable so expiry can be driven from
    tests.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: Optional[float] = None,
        clock: Clock = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        # key -> (value, expiry or None)
        self._slots: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._slots)

    def _expired(self, expires_at: Optional[float], now: float) -> bool:
        return expires_at is not None and now >= expires_at

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                self.stats.misses += 1
                return default

            value, expires_at = slot
            if self._expired(expires_at, self._clock()):
                del self._slots[key]
                self.stats.misses += 1
                self.stats.evictions += 1
                return default

            self._slots.move_to_end(key)
            self.stats.hits += 1
            return value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value``; ``ttl`` falls back to the cache default."""
        ttl = ttl or self.default_ttl
        expires_at = self._clock() + ttl if ttl else None

        async with self._lock:
            self._slots.pop(key, None)
            while len(self._slots) >= self.max_size:
                self._slots.popitem(last=False)
                self.stats.evictions += 1
            self._slots[key] = (value, expires_at)
            self.stats.writes += 1

    async def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns how many."""
        async with self._lock:
            stale = [key for key in self._slots if key.startswith(prefix)]
            for key in stale:
                del self._slots[key]
            self.stats.invalidations += len(stale)
            return len(stale)

    async def purge_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            stale = [key for key, (_, expires_at) in self._slots.items() if self._expired(expires_at, now)]
            for key in stale:
                del self._slots[key]
            self.stats.evictions += len(stale)
            return len(stale)
