"""In-memory persistent store for development and tests."""

import asyncio
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

import structlog

from ..errors import StoreError
from ..models import Memory, MemoryFilter, RelationshipState, UserProfile, clamp_trust
from .base import PersistentStore

logger = structlog.get_logger(__name__)


class InMemoryStore(PersistentStore):
    """Dict-backed store guarded by a single asyncio lock."""

    def __init__(self, profiles: Optional[List[UserProfile]] = None):
        self._profiles: Dict[str, UserProfile] = {}
        self._memories: Dict[str, List[Memory]] = defaultdict(list)
        self._lock = asyncio.Lock()
        for profile in profiles or []:
            self._profiles[profile.user_id] = profile

    async def add_profile(self, profile: UserProfile) -> None:
        async with self._lock:
            self._profiles[profile.user_id] = profile

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        async with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return None
            # Callers get a snapshot, not the live record.
            return replace(profile, relationship=replace(profile.relationship))

    async def update_trust(
        self,
        user_id: str,
        delta: float,
        increment_interactions: bool = True,
    ) -> RelationshipState:
        async with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                raise StoreError(f"Unknown user: {user_id}", details={"user_id": user_id})

            state = profile.relationship
            state.trust_level = clamp_trust(state.trust_level + delta)
            if increment_interactions:
                state.interaction_count += 1
            return replace(state)

    async def write_memory(self, memory: Memory) -> Memory:
        async with self._lock:
            self._memories[memory.user_id].append(memory)
        logger.debug("Memory written", user_id=memory.user_id, significance=memory.significance)
        return memory

    async def find_memories(self, query: MemoryFilter) -> List[Memory]:
        async with self._lock:
            candidates = [
                m for m in self._memories.get(query.user_id, [])
                if m.significance >= query.min_significance
            ]
        candidates.sort(key=lambda m: m.created_at, reverse=True)
        return candidates[:query.limit]

    async def all_memories(self, user_id: str) -> List[Memory]:
        async with self._lock:
            return list(self._memories.get(user_id, []))
