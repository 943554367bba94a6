"""Cooldown markers for rate-limited prompts such as upgrade offers."""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import asyncio
import time

import structlog

from ..cache.memory_cache import Clock

logger = structlog.get_logger(__name__)


class CooldownStore(ABC):
    """Set-if-absent markers with a TTL."""

    @abstractmethod
    async def is_active(self, key: str) -> bool:
        pass

    @abstractmethod
    async def acquire(self, key: str, ttl_seconds: int) -> bool:
        """Start a cooldown. Returns False if one is already running."""
        pass

    async def close(self) -> None:
        pass


class InMemoryCooldownStore(CooldownStore):
    """Process-local cooldowns driven by an injectable clock."""

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._expiry: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    def _active(self, key: str, now: float) -> bool:
        expires_at = self._expiry.get(key)
        if expires_at is None:
            return False
        if now >= expires_at:
            del self._expiry[key]
            return False
        return True

    async def is_active(self, key: str) -> bool:
        async with self._lock:
            return self._active(key, self._clock())

    async def acquire(self, key: str, ttl_seconds: int) -> bool:
        async with self._lock:
            now = self._clock()
            if self._active(key, now):
                return False
            self._expiry[key] = now + ttl_seconds
            return True


class RedisCooldownStore(CooldownStore):
    """Cooldowns shared across processes via Redis ``SET NX EX``."""

    def __init__(self, client=None, url: Optional[str] = None, prefix: str = "cooldown:"):
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.from_url(url or "redis://localhost:6379/0", decode_responses=True)
        self.client = client
        self.prefix = prefix

    async def is_active(self, key: str) -> bool:
        return bool(await self.client.exists(self.prefix + key))

    async def acquire(self, key: str, ttl_seconds: int) -> bool:
        acquired = await self.client.set(self.prefix + key, "1", ex=ttl_seconds, nx=True)
        return bool(acquired)

    async def close(self) -> None:
        await self.client.aclose()
