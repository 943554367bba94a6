"""Model tier selection and per-archetype sampling parameters."""

from types import MappingProxyType

from ..config import Archetype, GenerationConfig, ModelTier, ResponseUrgency, SubscriptionTier

DEFAULT_TEMPERATURE = 0.8

TEMPERATURE_BY_ARCHETYPE = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: 0.8,
    Archetype.GUARDED_INTELLECTUAL: 0.6,
    Archetype.WARM_EMPATH: 0.9,
    Archetype.DEEP_THINKER: 0.7,
    Archetype.PASSIONATE_CREATIVE: 0.95,
    Archetype.SECURE_CONNECTOR: 0.75,
    Archetype.PLAYFUL_EXPLORER: 0.85,
})


def select_model_tier(urgency: ResponseUrgency, subscription: SubscriptionTier) -> ModelTier:
    """Crisis and paid plans get the strongest model; free users the cheapest."""
    if urgency == ResponseUrgency.CRISIS:
        return ModelTier.PREMIUM
    if subscription != SubscriptionTier.FREE:
        return ModelTier.PREMIUM
    if urgency == ResponseUrgency.HIGH:
        return ModelTier.STANDARD
    return ModelTier.ECONOMY


def model_for_tier(tier: ModelTier, config: GenerationConfig) -> str:
    return {
        ModelTier.ECONOMY: config.economy_model,
        ModelTier.STANDARD: config.standard_model,
        ModelTier.PREMIUM: config.premium_model,
    }[tier]


def temperature_for(archetype: Archetype) -> float:
    return TEMPERATURE_BY_ARCHETYPE.get(archetype, DEFAULT_TEMPERATURE)
