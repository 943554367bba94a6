"""Unit tests for memory significance and retrieval."""

from datetime import datetime, timedelta, timezone

import pytest

from companion_core.config import CrisisIndicator, EmotionCategory, ResponseUrgency
from companion_core.memory import MemoryAdapter, calculate_significance, relevance, tokenize
from companion_core.models import CrisisAssessment, Memory, SentimentAssessment
from companion_core.store.memory import InMemoryStore


def assessment(intensity=6, authenticity=0.5, emotion=EmotionCategory.NEUTRAL, **kwargs):
    return SentimentAssessment(
        primary_emotion=emotion,
        intensity=intensity,
        authenticity=authenticity,
        **kwargs,
    )


def memory(user_id, content, significance=5.0, minutes_ago=0):
    return Memory(
        user_id=user_id,
        content=content,
        significance=significance,
        emotion=EmotionCategory.NEUTRAL,
        created_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    )


# =============================================================================
# Significance Tests
# =============================================================================


class TestSignificance:
    """Tests for calculate_significance."""

    def test_plain_turn(self):
        """Test an ordinary turn scores half its intensity."""
        assert calculate_significance(assessment()) == 3.0

    def test_resonant_emotion(self):
        """Test joy, love and sadness are more memorable."""
        assert calculate_significance(assessment(emotion=EmotionCategory.JOY)) == 4.0

    def test_authentic_turn(self):
        """Test authentic turns are more memorable."""
        assert calculate_significance(assessment(authenticity=0.8)) == 5.0

    def test_crisis_is_capped(self):
        """Test crisis turns are maximally significant."""
        crisis = assessment(
            intensity=10,
            emotion=EmotionCategory.SADNESS,
            crisis=CrisisAssessment(severity=10, indicators=frozenset({CrisisIndicator.SUICIDAL_IDEATION})),
            urgency=ResponseUrgency.CRISIS,
        )
        assert calculate_significance(crisis) == 10.0


class TestRelevance:
    """Tests for token overlap scoring."""

    def test_tokenize_drops_short_words(self):
        """Test tokens shorter than four characters are ignored."""
        assert tokenize("I love my dog Max") == frozenset({"love"})
        assert tokenize("the cat") == frozenset()

    def test_jaccard(self):
        """Test relevance is shared tokens over all tokens."""
        score = relevance("walking my dog in the park", "I took my dog to the park")
        assert score == pytest.approx(1 / 3)

    def test_no_tokens(self):
        """Test texts without usable tokens are irrelevant."""
        assert relevance("hi", "ok") == 0.0


# =============================================================================
# Memory Adapter Tests
# =============================================================================


class TestMemoryAdapter:
    """Tests for MemoryAdapter."""

    @pytest.mark.asyncio
    async def test_insignificant_turn_not_stored(self):
        """Test turns at or below the threshold are dropped."""
        store = InMemoryStore()
        adapter = MemoryAdapter(store)

        result = await adapter.store_memory("usr_1", "just chatting", "nice", assessment())

        assert result is None
        assert await store.all_memories("usr_1") == []

    @pytest.mark.asyncio
    async def test_significant_turn_stored(self):
        """Test significant turns are written with tags."""
        store = InMemoryStore()
        adapter = MemoryAdapter(store)

        result = await adapter.store_memory(
            "usr_1", "My sister got married!", "How wonderful!",
            assessment(intensity=8, emotion=EmotionCategory.JOY),
        )

        assert result is not None
        assert result.significance == 5.0
        assert result.response == "How wonderful!"
        assert "joy" in result.tags
        assert await store.all_memories("usr_1") == [result]

    @pytest.mark.asyncio
    async def test_retrieval_capped(self):
        """Test at most three memories are surfaced."""
        store = InMemoryStore()
        for i in range(5):
            await store.write_memory(memory("usr_1", "grandmother garden", minutes_ago=i))

        results = await MemoryAdapter(store).retrieve("grandmother garden", "usr_1")

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_ranked_by_relevance(self):
        """Test closer matches come first and irrelevant ones are dropped."""
        store = InMemoryStore()
        await store.write_memory(memory("usr_1", "grandmother garden roses", minutes_ago=0))
        await store.write_memory(memory("usr_1", "grandmother garden", minutes_ago=5))
        await store.write_memory(memory("usr_1", "astronomy lectures", minutes_ago=1))

        results = await MemoryAdapter(store).retrieve("grandmother garden", "usr_1")

        assert [m.content for m in results] == ["grandmother garden", "grandmother garden roses"]

    @pytest.mark.asyncio
    async def test_low_significance_excluded(self):
        """Test memories below the significance threshold are never candidates."""
        store = InMemoryStore()
        await store.write_memory(memory("usr_1", "grandmother garden", significance=2.0))

        assert await MemoryAdapter(store).retrieve("grandmother garden", "usr_1") == []

    @pytest.mark.asyncio
    async def test_users_isolated(self):
        """Test one user's memories never surface for another."""
        store = InMemoryStore()
        await store.write_memory(memory("usr_1", "grandmother garden"))

        assert await MemoryAdapter(store).retrieve("grandmother garden", "usr_2") == []

    @pytest.mark.asyncio
    async def test_store_invalidates_cached_retrieval(self):
        """Test a new memory is visible to the next retrieval."""
        store = InMemoryStore()
        adapter = MemoryAdapter(store)

        assert await adapter.retrieve("grandmother garden", "usr_1") == []

        stored = await adapter.store_memory(
            "usr_1", "grandmother garden was beautiful", None,
            assessment(intensity=8, authenticity=0.8, emotion=EmotionCategory.JOY),
        )

        assert await adapter.retrieve("grandmother garden", "usr_1") == [stored]
