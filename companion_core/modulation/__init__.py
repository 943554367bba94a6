"""Sentiment-aware voice modulation."""

from .engine import (
    BASE_MODULATION,
    RESPONSE_MATRIX,
    VOICE_EMOTION_BY_CATEGORY,
    ConversationMood,
    ModulationContext,
    ModulationEngine,
    ModulationSessions,
    emotional_trend,
)
from .personalities import (
    PERSONALITY_BY_ARCHETYPE,
    VOCAL_PERSONALITIES,
    VocalPersonality,
    personality_for,
    vector_for,
)

__all__ = [
    "BASE_MODULATION",
    "RESPONSE_MATRIX",
    "VOICE_EMOTION_BY_CATEGORY",
    "ConversationMood",
    "ModulationContext",
    "ModulationEngine",
    "ModulationSessions",
    "emotional_trend",
    "PERSONALITY_BY_ARCHETYPE",
    "VOCAL_PERSONALITIES",
    "VocalPersonality",
    "personality_for",
    "vector_for",
]
