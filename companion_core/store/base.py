"""Persistent store interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Memory, MemoryFilter, RelationshipState, UserProfile


class PersistentStore(ABC):
    """
    Durable user, relationship and memory records.

    Implementations must clamp trust to [0, 100] inside update_trust so
    concurrent increments never leave the valid range.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Return the user's profile, or None if the user is unknown."""
        pass

    @abstractmethod
    async def update_trust(
        self,
        user_id: str,
        delta: float,
        increment_interactions: bool = True,
    ) -> RelationshipState:
        """Apply a trust delta and return the new relationship state."""
        pass

    @abstractmethod
    async def write_memory(self, memory: Memory) -> Memory:
        """Insert a memory. Memories are append-only."""
        pass

    @abstractmethod
    async def find_memories(self, query: MemoryFilter) -> List[Memory]:
        """Memories at or above the significance floor, newest first."""
        pass
