"""
Configuration for the Companion Core engine.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmotionCategory(str, Enum):
    """Primary emotion detected in a user message."""

    JOY = "joy"
    SADNESS = "sadness"
    ANXIETY = "anxiety"
    ANGER = "anger"
    PEACE = "peace"
    LOVE = "love"
    CONFUSION = "confusion"
    NEUTRAL = "neutral"


class HiddenEmotion(str, Enum):
    """Secondary emotions signalled beneath the surface text."""

    AMBIVALENCE = "ambivalence"
    UNCERTAINTY = "uncertainty"
    GUILT = "guilt"
    LONGING = "longing"


class EmotionalNeed(str, Enum):
    """What the user appears to need from the companion."""

    SUPPORT = "support"
    UNDERSTANDING = "understanding"
    CONNECTION = "connection"
    GUIDANCE = "guidance"
    COMPANIONSHIP = "companionship"


class CrisisIndicator(str, Enum):
    """Crisis classes recognised by the phrase detector."""

    SUICIDAL_IDEATION = "suicidal_ideation"
    SELF_HARM = "self_harm"
    VIOLENCE = "violence"
    MEDICAL_EMERGENCY = "medical_emergency"
    ABUSE = "abuse"
    HOPELESSNESS = "hopelessness"


class ResponseUrgency(str, Enum):
    """How urgently the turn must be handled."""

    NORMAL = "normal"
    HIGH = "high"
    CRISIS = "crisis"


class RelationshipStage(str, Enum):
    """Relationship stage, derived from trust level."""

    FIRST_CONTACT = "first_contact"
    BUILDING_TRUST = "building_trust"
    GROWING_BOND = "growing_bond"
    DEEP_CONNECTION = "deep_connection"
    SOUL_MATE = "soul_mate"
    ETERNAL_BOND = "eternal_bond"


class Archetype(str, Enum):
    """Attachment archetype assigned to a user at onboarding."""

    ANXIOUS_ROMANTIC = "anxious_romantic"
    GUARDED_INTELLECTUAL = "guarded_intellectual"
    WARM_EMPATH = "warm_empath"
    DEEP_THINKER = "deep_thinker"
    PASSIONATE_CREATIVE = "passionate_creative"
    SECURE_CONNECTOR = "secure_connector"
    PLAYFUL_EXPLORER = "playful_explorer"


class SubscriptionTier(str, Enum):
    """Billing plan of the user."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class ModelTier(str, Enum):
    """Capability tier of the generation model."""

    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"


class VoiceEmotion(str, Enum):
    """Emotion vocabulary of the voice modulation layer."""

    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    ANXIOUS = "anxious"
    EXCITED = "excited"
    CALM = "calm"
    ROMANTIC = "romantic"
    THOUGHTFUL = "thoughtful"
    NEUTRAL = "neutral"
    PLAYFUL = "playful"
    FRUSTRATED = "frustrated"
    FEARFUL = "fearful"
    SURPRISED = "surprised"
    DISGUSTED = "disgusted"


class EmotionTrend(str, Enum):
    """Direction of the user's recent emotional trajectory."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class LaughType(str, Enum):
    """How readily a vocal personality laughs."""

    SOFT = "soft"
    HEARTY = "hearty"
    NERVOUS = "nervous"
    VARIED = "varied"
    RARE = "rare"


class VocalTicType(str, Enum):
    """Cosmetic vocal flourishes."""

    PAUSE = "pause"
    LAUGH = "laugh"
    SIGH = "sigh"
    FILLER = "filler"


class CacheConfig(BaseSettings):
    """Configuration for the in-process caches."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    response_ttl_seconds: int = Field(default=1800, description="Response cache TTL")
    response_max_entries: int = Field(default=500, description="Response cache capacity")
    memory_ttl_seconds: int = Field(default=600, description="Memory retrieval cache TTL")
    memory_max_entries: int = Field(default=1000)
    weather_ttl_seconds: int = Field(default=3600)
    resonance_max_entries: int = Field(default=5000, description="Previous resonance per user")


class MemoryConfig(BaseSettings):
    """Configuration for durable memory."""

    model_config = SettingsConfigDict(env_prefix="MEMORY_")

    significance_threshold: float = Field(default=3.0, description="Memories at or below are dropped")
    relevance_floor: float = Field(default=0.2, description="Minimum token overlap to surface")
    retrieval_limit: int = Field(default=3)
    candidate_limit: int = Field(default=10)
    min_token_length: int = Field(default=4)


class GenerationConfig(BaseSettings):
    """Configuration for the text generation service."""

    model_config = SettingsConfigDict(env_prefix="GENERATION_")

    provider: str = Field(default="mock", description="openai or mock")
    openai_api_key: Optional[str] = Field(default=None)
    openai_base_url: Optional[str] = Field(default=None)

    economy_model: str = "gpt-3.5-turbo"
    standard_model: str = "gpt-4o-mini"
    premium_model: str = "gpt-4o"

    timeout_seconds: float = Field(default=20.0, ge=0.1)
    max_tokens: int = 400
    crisis_max_tokens: int = 500
    crisis_temperature: float = 0.7
    presence_penalty: float = 0.6
    frequency_penalty: float = 0.3
    history_turns: int = Field(default=5, description="History turns sent to the model")


class ConversionConfig(BaseSettings):
    """Configuration for upgrade prompts."""

    model_config = SettingsConfigDict(env_prefix="CONVERSION_")

    trigger_weight: float = Field(default=0.25, description="Probability per active trigger")
    cooldown_seconds: int = Field(default=86400)
    cooldown_backend: str = Field(default="memory", description="memory or redis")
    redis_url: str = "redis://localhost:6379/0"


class ModulationConfig(BaseSettings):
    """Configuration for voice modulation."""

    model_config = SettingsConfigDict(env_prefix="MODULATION_")

    adaptation_speed: float = Field(default=0.3, gt=0.0, le=1.0)
    trend_window: int = Field(default=5)
    max_mirror_strength: float = Field(default=0.7)
    mirror_intensity_threshold: float = Field(default=0.7)
    max_sessions: int = Field(default=10000)


class Settings(BaseSettings):
    """Main service settings."""

    model_config = SettingsConfigDict(
        env_prefix="COMPANION_",
        env_file=".env",
        extra="ignore",
    )

    service_name: str = "companion-core"
    host: str = "0.0.0.0"
    port: int = 8090
    log_level: str = "INFO"
    json_logs: bool = True
    companion_name: str = "Luna"

    # Enrichment gates
    weather_min_interactions: int = 5
    resonance_min_trust: float = 10.0

    cache: CacheConfig = Field(default_factory=CacheConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    modulation: ModulationConfig = Field(default_factory=ModulationConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
