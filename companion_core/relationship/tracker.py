"""
Relationship state tracking: per-turn resonance and durable trust.
"""

import math
import re
from types import MappingProxyType
from typing import Optional, Sequence

import structlog

from ..cache.memory_cache import LRUCache
from ..config import Archetype
from ..models import (
    ConversationMessage,
    RelationshipState,
    ResonanceResult,
    SentimentAssessment,
    UserProfile,
    stage_for_trust,
)
from ..store.base import PersistentStore

logger = structlog.get_logger(__name__)


MAX_DIMENSION = 10.0
GROWTH_WINDOW = 5
MAX_TRUST_DELTA = 0.99
MIN_TRUST_DELTA = 0.1

# Equal weights; must sum to 1.
RESONANCE_WEIGHTS = MappingProxyType({
    "emotional_harmony": 0.25,
    "vulnerability": 0.25,
    "connection_depth": 0.25,
    "growth_alignment": 0.25,
})

HARMONY_KEYWORDS = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: re.compile(r"\b(?:love|care|miss)\b", re.IGNORECASE),
    Archetype.GUARDED_INTELLECTUAL: re.compile(r"\b(?:think|understand|analy[sz]e)\b", re.IGNORECASE),
    Archetype.WARM_EMPATH: re.compile(r"\b(?:feel|emotion|heart)\b", re.IGNORECASE),
    Archetype.DEEP_THINKER: re.compile(r"\b(?:meaning|why|wonder|purpose)\b", re.IGNORECASE),
    Archetype.PASSIONATE_CREATIVE: re.compile(r"\b(?:create|imagine|beautiful|art)\b", re.IGNORECASE),
    Archetype.SECURE_CONNECTOR: re.compile(r"\b(?:together|trust|share)\b", re.IGNORECASE),
    Archetype.PLAYFUL_EXPLORER: re.compile(r"\b(?:fun|explore|adventure|try)\b", re.IGNORECASE),
})

# (pattern, points) for vulnerability scoring
VULNERABILITY_MARKERS = (
    (re.compile(r"\b(?:scared|afraid|vulnerable)\b", re.IGNORECASE), 3.0),
    (re.compile(r"\b(?:trust\s+you|opening\s+up|confession)\b", re.IGNORECASE), 4.0),
    (re.compile(r"\b(?:never\s+told\s+anyone|first\s+time|secret)\b", re.IGNORECASE), 3.0),
)

GROWTH_PATTERN = re.compile(
    r"\b(?:learning|growing|changing|better|improve|understand)\b", re.IGNORECASE
)

# Ascending; checked from the top.
CONNECTION_LABELS = (
    (9.0, "soul_union"),
    (7.0, "deep_bond"),
    (5.0, "growing_connection"),
    (3.0, "initial_resonance"),
)

MILESTONES = MappingProxyType({
    3: "First Resonance",
    5: "Trust Established",
    7: "Deep Connection",
    9: "Soul Recognition",
})


def connection_label(overall: float) -> str:
    for threshold, label in CONNECTION_LABELS:
        if overall >= threshold:
            return label
    return "first_contact"


def milestone_for(overall: float) -> Optional[str]:
    """At most one milestone per score."""
    return MILESTONES.get(math.floor(overall))


def compute_trust_delta(
    assessment: SentimentAssessment,
    resonance: Optional[ResonanceResult] = None,
) -> float:
    """Small per-turn trust increment; 0 when below the noise floor."""
    delta = 0.0
    if assessment.authenticity > 0.7:
        delta += 0.5
    if resonance is not None and resonance.overall > 7:
        delta += 0.3
    if assessment.intensity > 7:
        delta += 0.15
    return round(delta, 3) if delta > MIN_TRUST_DELTA else 0.0


class RelationshipTracker:
    """
    Scores resonance and applies trust updates.

    The last resonance score per user is kept in an LRU so growth can be
    reported; it is never written to the store.
    """

    def __init__(self, store: PersistentStore, history_cache: Optional[LRUCache] = None):
        self.store = store
        self._previous = history_cache if history_cache is not None else LRUCache(max_size=5000)

    async def compute_resonance(
        self,
        profile: UserProfile,
        text: str,
        assessment: SentimentAssessment,
        history: Sequence[ConversationMessage] = (),
    ) -> ResonanceResult:
        harmony = 5.0
        pattern = HARMONY_KEYWORDS.get(profile.archetype)
        if pattern is not None and pattern.search(text):
            harmony += 3.0

        vulnerability = sum(points for marker, points in VULNERABILITY_MARKERS if marker.search(text))
        if len(text) > 200:
            vulnerability += 1.0

        depth = profile.trust_level / 10.0

        growth = 5.0 + sum(
            1 for message in history[-GROWTH_WINDOW:] if GROWTH_PATTERN.search(message.content)
        )

        dimensions = {
            "emotional_harmony": min(MAX_DIMENSION, harmony),
            "vulnerability": min(MAX_DIMENSION, vulnerability),
            "connection_depth": min(MAX_DIMENSION, depth),
            "growth_alignment": min(MAX_DIMENSION, growth),
        }
        overall = sum(RESONANCE_WEIGHTS[name] * value for name, value in dimensions.items())

        key = f"resonance:{profile.user_id}"
        previous = await self._previous.get(key)
        await self._previous.set(key, overall)

        result = ResonanceResult(
            overall=overall,
            connection_label=connection_label(overall),
            milestone=milestone_for(overall),
            growth_rate=overall - previous if previous is not None else 0.0,
            **dimensions,
        )
        if result.milestone:
            logger.info(
                "Resonance milestone reached",
                user_id=profile.user_id,
                milestone=result.milestone,
                overall=round(overall, 2),
            )
        return result

    async def apply_trust_delta(
        self,
        user_id: str,
        delta: float,
        previous: Optional[RelationshipState] = None,
    ) -> Optional[RelationshipState]:
        """Persist a trust change. Failures are logged, never raised."""
        delta = max(-MAX_TRUST_DELTA, min(MAX_TRUST_DELTA, delta))
        try:
            state = await self.store.update_trust(user_id, delta)
        except Exception as e:
            logger.error("Trust update failed", user_id=user_id, delta=delta, error=str(e))
            return None

        if previous is not None:
            before = stage_for_trust(previous.trust_level)
            if state.stage != before:
                logger.info(
                    "Relationship stage changed",
                    user_id=user_id,
                    from_stage=before.value,
                    to_stage=state.stage.value,
                    trust_level=round(state.trust_level, 2),
                )
        return state
