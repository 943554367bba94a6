"""Upgrade prompt triggers for free-tier users."""

import random
from typing import List, Optional

import structlog

from ..config import ConversionConfig, EmotionCategory, SubscriptionTier
from ..models import ResonanceResult, SentimentAssessment, UserProfile
from ..store.cooldown import CooldownStore

logger = structlog.get_logger(__name__)


def active_triggers(
    profile: UserProfile,
    sentiment: SentimentAssessment,
    resonance: Optional[ResonanceResult] = None,
) -> List[str]:
    """Names of the conversion signals present this turn."""
    triggers = []
    if sentiment.intensity > 8 and sentiment.primary_emotion == EmotionCategory.JOY:
        triggers.append("emotional_peak")
    if resonance is not None and resonance.overall > 7:
        triggers.append("deep_resonance")
    trust = profile.trust_level
    if trust > 60 and int(trust) % 20 == 0:
        triggers.append("trust_milestone")
    if profile.relationship.interaction_count > 50:
        triggers.append("high_engagement")
    return triggers


class ConversionEvaluator:
    """Decides whether to surface an upgrade prompt, at most once per cooldown window."""

    def __init__(
        self,
        cooldowns: CooldownStore,
        config: Optional[ConversionConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.cooldowns = cooldowns
        self.config = config or ConversionConfig()
        self.rng = rng or random.Random()

    @staticmethod
    def cooldown_key(user_id: str) -> str:
        return f"conversion:{user_id}"

    async def evaluate(
        self,
        profile: UserProfile,
        sentiment: SentimentAssessment,
        resonance: Optional[ResonanceResult] = None,
    ) -> bool:
        if profile.subscription != SubscriptionTier.FREE:
            return False

        key = self.cooldown_key(profile.user_id)
        try:
            if await self.cooldowns.is_active(key):
                return False
        except Exception as e:
            logger.warning("Cooldown lookup failed", user_id=profile.user_id, error=str(e))
            return False

        triggers = active_triggers(profile, sentiment, resonance)
        probability = len(triggers) * self.config.trigger_weight
        if not triggers or self.rng.random() >= probability:
            return False

        try:
            acquired = await self.cooldowns.acquire(key, self.config.cooldown_seconds)
        except Exception as e:
            logger.warning("Cooldown write failed", user_id=profile.user_id, error=str(e))
            return False

        if acquired:
            logger.info("Conversion triggered", user_id=profile.user_id, triggers=triggers)
        return acquired
