"""
Memory store adapter.

Reads relevant past moments for context building and writes new ones
after a turn. Retrieval results are cached per user and query prefix;
writing a memory drops that user's cached retrievals.
"""

from typing import List, Optional

import structlog

from ..cache.memory_cache import LRUCache
from ..config import MemoryConfig
from ..models import Memory, MemoryFilter, SentimentAssessment
from ..store.base import PersistentStore
from .significance import calculate_significance, memory_tags, relevance

logger = structlog.get_logger(__name__)


class MemoryAdapter:
    """Retrieval and significance-gated storage of memories."""

    def __init__(
        self,
        store: PersistentStore,
        config: Optional[MemoryConfig] = None,
        cache: Optional[LRUCache] = None,
        cache_ttl_seconds: int = 600,
    ):
        self.store = store
        self.config = config or MemoryConfig()
        self.cache = cache if cache is not None else LRUCache(max_size=1000, default_ttl=cache_ttl_seconds)
        self.cache_ttl_seconds = cache_ttl_seconds

    @staticmethod
    def _cache_prefix(user_id: str) -> str:
        return f"memories:{user_id}:"

    async def retrieve(self, query: str, user_id: str) -> List[Memory]:
        """At most ``retrieval_limit`` memories relevant to ``query``."""
        cache_key = f"{self._cache_prefix(user_id)}{query[:20].lower()}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        candidates = await self.store.find_memories(MemoryFilter(
            user_id=user_id,
            min_significance=self.config.significance_threshold,
            limit=self.config.candidate_limit,
        ))

        # Candidates arrive newest first; the stable sort keeps recency as tie-break.
        scored = [
            (relevance(query, memory.content, self.config.min_token_length), memory)
            for memory in candidates
        ]
        scored = [item for item in scored if item[0] > self.config.relevance_floor]
        scored.sort(key=lambda item: item[0], reverse=True)
        memories = [memory for _, memory in scored[:self.config.retrieval_limit]]

        await self.cache.set(cache_key, tuple(memories), ttl=self.cache_ttl_seconds)
        return memories

    async def store_memory(
        self,
        user_id: str,
        content: str,
        response: Optional[str],
        assessment: SentimentAssessment,
    ) -> Optional[Memory]:
        """Write a memory if the turn is significant enough, else return None."""
        significance = calculate_significance(assessment)
        if significance <= self.config.significance_threshold:
            return None

        memory = await self.store.write_memory(Memory(
            user_id=user_id,
            content=content,
            response=response,
            significance=significance,
            emotion=assessment.primary_emotion,
            tags=memory_tags(assessment),
        ))
        await self.cache.delete_prefix(self._cache_prefix(user_id))

        logger.info(
            "Memory stored",
            user_id=user_id,
            significance=significance,
            emotion=assessment.primary_emotion.value,
        )
        return memory
