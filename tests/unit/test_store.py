"""Unit tests for the persistent store and cooldown stores."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from companion_core.config import EmotionCategory
from companion_core.errors import StoreError
from companion_core.models import Memory, MemoryFilter
from companion_core.store import InMemoryCooldownStore, InMemoryStore, RedisCooldownStore


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    @pytest.mark.asyncio
    async def test_unknown_profile(self, store):
        """Test unknown users have no profile."""
        assert await store.get_profile("usr_missing") is None

    @pytest.mark.asyncio
    async def test_profile_is_snapshot(self, store):
        """Test callers cannot mutate stored state through a read."""
        profile = await store.get_profile("usr_bonded")
        profile.relationship.trust_level = 99.0

        fresh = await store.get_profile("usr_bonded")
        assert fresh.trust_level == 50.0

    @pytest.mark.asyncio
    async def test_update_trust_clamps(self, store):
        """Test trust stays in range."""
        state = await store.update_trust("usr_new", -5.0)
        assert state.trust_level == 0.0
        assert state.interaction_count == 1

    @pytest.mark.asyncio
    async def test_update_trust_without_interaction(self, store):
        """Test interactions can be left untouched."""
        state = await store.update_trust("usr_bonded", 1.0, increment_interactions=False)
        assert state.interaction_count == 10

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, store):
        """Test updating a missing user raises StoreError."""
        with pytest.raises(StoreError):
            await store.update_trust("usr_missing", 0.5)

    @pytest.mark.asyncio
    async def test_find_memories(self, store):
        """Test filtering, ordering and limits."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i, significance in enumerate([2.0, 4.0, 6.0, 8.0]):
            await store.write_memory(Memory(
                user_id="usr_new",
                content=f"memory {i}",
                significance=significance,
                emotion=EmotionCategory.NEUTRAL,
                created_at=base + timedelta(hours=i),
            ))

        found = await store.find_memories(MemoryFilter(user_id="usr_new", min_significance=3.0, limit=2))

        assert [m.content for m in found] == ["memory 3", "memory 2"]


class TestInMemoryCooldownStore:
    """Tests for InMemoryCooldownStore."""

    @pytest.mark.asyncio
    async def test_acquire_once(self, clock):
        """Test a cooldown can only be claimed once while active."""
        cooldowns = InMemoryCooldownStore(clock=clock)

        assert await cooldowns.acquire("conversion:u1", 60)
        assert not await cooldowns.acquire("conversion:u1", 60)
        assert await cooldowns.is_active("conversion:u1")
        assert not await cooldowns.is_active("conversion:u2")

    @pytest.mark.asyncio
    async def test_expires(self, clock):
        """Test a cooldown lapses after its TTL."""
        cooldowns = InMemoryCooldownStore(clock=clock)
        await cooldowns.acquire("conversion:u1", 60)

        clock.advance(60)

        assert not await cooldowns.is_active("conversion:u1")
        assert await cooldowns.acquire("conversion:u1", 60)


class TestRedisCooldownStore:
    """Tests for RedisCooldownStore with a mocked client."""

    @pytest.mark.asyncio
    async def test_acquire_uses_set_nx(self):
        """Test acquisition is a single atomic SET NX EX."""
        client = AsyncMock()
        client.set.return_value = True
        cooldowns = RedisCooldownStore(client=client)

        assert await cooldowns.acquire("conversion:u1", 86400)

        client.set.assert_awaited_once_with("cooldown:conversion:u1", "1", ex=86400, nx=True)

    @pytest.mark.asyncio
    async def test_acquire_when_held(self):
        """Test a held key reports failure."""
        client = AsyncMock()
        client.set.return_value = None

        assert not await RedisCooldownStore(client=client).acquire("conversion:u1", 60)

    @pytest.mark.asyncio
    async def test_is_active(self):
        """Test activity is an EXISTS check."""
        client = AsyncMock()
        client.exists.return_value = 1

        assert await RedisCooldownStore(client=client, prefix="cd:").is_active("conversion:u1")
        client.exists.assert_awaited_once_with("cd:conversion:u1")

    @pytest.mark.asyncio
    async def test_close(self):
        """Test closing releases the client."""
        client = AsyncMock()
        await RedisCooldownStore(client=client).close()
        client.aclose.assert_awaited_once()
