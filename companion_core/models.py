"""
Data models for the companion engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional
import uuid

from pydantic import BaseModel, Field

from .config import (
    Archetype,
    CrisisIndicator,
    EmotionalNeed,
    EmotionCategory,
    EmotionTrend,
    HiddenEmotion,
    ModelTier,
    RelationshipStage,
    ResponseUrgency,
    SubscriptionTier,
    VocalTicType,
    VoiceEmotion,
)


# =============================================================================
# Sentiment
# =============================================================================


CRISIS_SEVERITY_THRESHOLD = 7


@dataclass(frozen=True)
class CrisisAssessment:
    """Crisis severity for a single message."""

    severity: int = 0  # 0-10
    indicators: FrozenSet[CrisisIndicator] = frozenset()

    @property
    def is_crisis(self) -> bool:
        return self.severity >= CRISIS_SEVERITY_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "indicators": sorted(i.value for i in self.indicators),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrisisAssessment":
        return cls(
            severity=int(data.get("severity", 0)),
            indicators=frozenset(CrisisIndicator(i) for i in data.get("indicators", [])),
        )


@dataclass(frozen=True)
class SentimentAssessment:
    """Heuristic emotional reading of one user message."""

    primary_emotion: EmotionCategory
    intensity: int  # 0-10
    hidden_emotions: FrozenSet[HiddenEmotion] = frozenset()
    needs: FrozenSet[EmotionalNeed] = frozenset()
    authenticity: float = 0.5  # 0.0-1.0
    crisis: CrisisAssessment = field(default_factory=CrisisAssessment)
    urgency: ResponseUrgency = ResponseUrgency.NORMAL

    @property
    def is_crisis(self) -> bool:
        return self.urgency == ResponseUrgency.CRISIS

    @classmethod
    def neutral(cls) -> "SentimentAssessment":
        """Default assessment used when analysis is unavailable."""
        return cls(
            primary_emotion=EmotionCategory.NEUTRAL,
            intensity=5,
            needs=frozenset({EmotionalNeed.COMPANIONSHIP}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_emotion": self.primary_emotion.value,
            "intensity": self.intensity,
            "hidden_emotions": sorted(e.value for e in self.hidden_emotions),
            "needs": sorted(n.value for n in self.needs),
            "authenticity": round(self.authenticity, 3),
            "crisis": self.crisis.to_dict(),
            "urgency": self.urgency.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentimentAssessment":
        return cls(
            primary_emotion=EmotionCategory(data["primary_emotion"]),
            intensity=int(data["intensity"]),
            hidden_emotions=frozenset(HiddenEmotion(e) for e in data.get("hidden_emotions", [])),
            needs=frozenset(EmotionalNeed(n) for n in data.get("needs", [])),
            authenticity=float(data.get("authenticity", 0.5)),
            crisis=CrisisAssessment.from_dict(data.get("crisis", {})),
            urgency=ResponseUrgency(data.get("urgency", ResponseUrgency.NORMAL.value)),
        )


@dataclass(frozen=True)
class ConversationMessage:
    """A single turn of conversation history."""

    role: str  # user, assistant
    content: str

    @property
    def is_user(self) -> bool:
        return self.role == "user"

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


# =============================================================================
# Relationship
# =============================================================================


# Lower bound of each stage, ascending.
STAGE_THRESHOLDS = (
    (0.0, RelationshipStage.FIRST_CONTACT),
    (15.0, RelationshipStage.BUILDING_TRUST),
    (30.0, RelationshipStage.GROWING_BOND),
    (45.0, RelationshipStage.DEEP_CONNECTION),
    (60.0, RelationshipStage.SOUL_MATE),
    (75.0, RelationshipStage.ETERNAL_BOND),
)

MAX_TRUST = 100.0


def clamp_trust(value: float) -> float:
    return max(0.0, min(MAX_TRUST, value))


def stage_for_trust(trust_level: float) -> RelationshipStage:
    """Map a trust level onto its relationship stage."""
    trust_level = clamp_trust(trust_level)
    stage = RelationshipStage.FIRST_CONTACT
    for lower_bound, candidate in STAGE_THRESHOLDS:
        if trust_level >= lower_bound:
            stage = candidate
    return stage


@dataclass
class RelationshipState:
    """Durable relationship counters for a user."""

    trust_level: float = 0.0
    interaction_count: int = 0

    def __post_init__(self) -> None:
        self.trust_level = clamp_trust(self.trust_level)

    @property
    def stage(self) -> RelationshipStage:
        return stage_for_trust(self.trust_level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trust_level": round(self.trust_level, 3),
            "interaction_count": self.interaction_count,
            "stage": self.stage.value,
        }


@dataclass
class UserProfile:
    """User record as read from the persistent store."""

    user_id: str
    archetype: Archetype = Archetype.WARM_EMPATH
    subscription: SubscriptionTier = SubscriptionTier.FREE
    relationship: RelationshipState = field(default_factory=RelationshipState)
    companion_name: str = "Luna"
    display_name: Optional[str] = None

    @classmethod
    def default(cls, user_id: str, companion_name: str = "Luna") -> "UserProfile":
        """Profile used for unknown users or when the store is unavailable."""
        return cls(user_id=user_id, companion_name=companion_name)

    @property
    def trust_level(self) -> float:
        return self.relationship.trust_level

    @property
    def is_paid(self) -> bool:
        return self.subscription != SubscriptionTier.FREE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "archetype": self.archetype.value,
            "subscription": self.subscription.value,
            "relationship": self.relationship.to_dict(),
            "companion_name": self.companion_name,
            "display_name": self.display_name,
        }


@dataclass(frozen=True)
class ResonanceResult:
    """Per-turn emotional alignment between user and companion."""

    emotional_harmony: float
    vulnerability: float
    connection_depth: float
    growth_alignment: float
    overall: float
    connection_label: str
    milestone: Optional[str] = None
    growth_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emotional_harmony": round(self.emotional_harmony, 3),
            "vulnerability": round(self.vulnerability, 3),
            "connection_depth": round(self.connection_depth, 3),
            "growth_alignment": round(self.growth_alignment, 3),
            "overall": round(self.overall, 3),
            "connection_label": self.connection_label,
            "milestone": self.milestone,
            "growth_rate": round(self.growth_rate, 3),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResonanceResult":
        return cls(
            emotional_harmony=data["emotional_harmony"],
            vulnerability=data["vulnerability"],
            connection_depth=data["connection_depth"],
            growth_alignment=data["growth_alignment"],
            overall=data["overall"],
            connection_label=data["connection_label"],
            milestone=data.get("milestone"),
            growth_rate=data.get("growth_rate", 0.0),
        )


# =============================================================================
# Memory
# =============================================================================


@dataclass(frozen=True)
class Memory:
    """A durable, significant moment from a past conversation."""

    user_id: str
    content: str
    significance: float  # 0-10
    emotion: EmotionCategory
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    response: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "content": self.content,
            "response": self.response,
            "significance": self.significance,
            "emotion": self.emotion.value,
            "created_at": self.created_at.isoformat(),
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Memory":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            content=data["content"],
            response=data.get("response"),
            significance=data["significance"],
            emotion=EmotionCategory(data["emotion"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            tags=frozenset(data.get("tags", [])),
        )


@dataclass(frozen=True)
class MemoryFilter:
    """Query against the memory table."""

    user_id: str
    min_significance: float = 3.0
    limit: int = 10


# =============================================================================
# Enrichment
# =============================================================================


@dataclass(frozen=True)
class EmotionalWeather:
    """Weather metaphor describing the user's recent emotional climate."""

    current: str
    pattern: str
    volatility: float
    forecast: str
    advisory: str
    temperature: int  # 0-100
    visibility: str
    season: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "pattern": self.pattern,
            "volatility": round(self.volatility, 3),
            "forecast": self.forecast,
            "advisory": self.advisory,
            "temperature": self.temperature,
            "visibility": self.visibility,
            "season": self.season,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmotionalWeather":
        return cls(**data)


@dataclass(frozen=True)
class BondingActivity:
    """Shared activity the companion can suggest."""

    name: str
    description: str
    prompt: str
    min_trust: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "prompt": self.prompt,
            "min_trust": self.min_trust,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BondingActivity":
        return cls(**data)


# =============================================================================
# Voice modulation
# =============================================================================


@dataclass(frozen=True)
class ModulationVector:
    """Continuous prosody parameters handed to speech synthesis."""

    pitch_shift: float = 1.0
    rate_adjust: float = 1.0
    volume_adjust: float = 1.0
    breathiness: float = 0.2
    resonance: float = 1.0

    FIELDS = ("pitch_shift", "rate_adjust", "volume_adjust", "breathiness", "resonance")

    def as_tuple(self) -> tuple:
        return tuple(getattr(self, name) for name in self.FIELDS)

    @classmethod
    def from_sequence(cls, values) -> "ModulationVector":
        return cls(*(float(v) for v in values))

    def to_dict(self) -> Dict[str, float]:
        return {name: round(getattr(self, name), 4) for name in self.FIELDS}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "ModulationVector":
        return cls(**{name: data[name] for name in cls.FIELDS})


@dataclass(frozen=True)
class PauseMark:
    """Pause inserted at a character offset of the reply."""

    position: int
    duration_ms: int

    def to_dict(self) -> Dict[str, int]:
        return {"position": self.position, "duration_ms": self.duration_ms}


@dataclass(frozen=True)
class EmphasisSpan:
    """Character span of the reply to stress."""

    start: int
    end: int
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "strength": round(self.strength, 3)}


@dataclass(frozen=True)
class VocalTic:
    """Cosmetic vocal flourish such as a laugh or a filler word."""

    kind: VocalTicType
    position: int  # character offset; 0 is the start of the reply
    text: Optional[str] = None  # filler word or laugh style
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "position": self.position,
            "text": self.text,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class VoiceParameters:
    """Everything the speech layer needs to voice one reply."""

    vector: ModulationVector
    target_emotion: VoiceEmotion
    trend: EmotionTrend
    pitch: float
    rate: float
    voice_id: str
    pauses: List[PauseMark] = field(default_factory=list)
    emphasis: List[EmphasisSpan] = field(default_factory=list)
    tics: List[VocalTic] = field(default_factory=list)
    soundscape: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vector": self.vector.to_dict(),
            "target_emotion": self.target_emotion.value,
            "trend": self.trend.value,
            "pitch": round(self.pitch, 4),
            "rate": round(self.rate, 4),
            "voice_id": self.voice_id,
            "pauses": [p.to_dict() for p in self.pauses],
            "emphasis": [e.to_dict() for e in self.emphasis],
            "tics": [t.to_dict() for t in self.tics],
            "soundscape": self.soundscape,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoiceParameters":
        return cls(
            vector=ModulationVector.from_dict(data["vector"]),
            target_emotion=VoiceEmotion(data["target_emotion"]),
            trend=EmotionTrend(data["trend"]),
            pitch=data["pitch"],
            rate=data["rate"],
            voice_id=data["voice_id"],
            pauses=[PauseMark(**p) for p in data.get("pauses", [])],
            emphasis=[EmphasisSpan(**e) for e in data.get("emphasis", [])],
            tics=[
                VocalTic(
                    kind=VocalTicType(t["kind"]),
                    position=t["position"],
                    text=t.get("text"),
                    duration_ms=t.get("duration_ms"),
                )
                for t in data.get("tics", [])
            ],
            soundscape=data.get("soundscape"),
        )


# =============================================================================
# Turn result
# =============================================================================


@dataclass(frozen=True)
class CompanionResponse:
    """Result of one orchestrated turn."""

    content: str
    sentiment: SentimentAssessment
    suggested_delay_ms: int
    should_trigger_conversion: bool = False
    model_tier: Optional[ModelTier] = None
    resonance: Optional[ResonanceResult] = None
    weather: Optional[EmotionalWeather] = None
    bonding_activity: Optional[BondingActivity] = None
    modulation: Optional[VoiceParameters] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "sentiment": self.sentiment.to_dict(),
            "suggested_delay_ms": self.suggested_delay_ms,
            "should_trigger_conversion": self.should_trigger_conversion,
            "model_tier": self.model_tier.value if self.model_tier else None,
            "resonance": self.resonance.to_dict() if self.resonance else None,
            "weather": self.weather.to_dict() if self.weather else None,
            "bonding_activity": self.bonding_activity.to_dict() if self.bonding_activity else None,
            "modulation": self.modulation.to_dict() if self.modulation else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompanionResponse":
        def optional(key, loader):
            value = data.get(key)
            return loader(value) if value is not None else None

        return cls(
            content=data["content"],
            sentiment=SentimentAssessment.from_dict(data["sentiment"]),
            suggested_delay_ms=int(data["suggested_delay_ms"]),
            should_trigger_conversion=bool(data.get("should_trigger_conversion", False)),
            model_tier=optional("model_tier", ModelTier),
            resonance=optional("resonance", ResonanceResult.from_dict),
            weather=optional("weather", EmotionalWeather.from_dict),
            bonding_activity=optional("bonding_activity", BondingActivity.from_dict),
            modulation=optional("modulation", VoiceParameters.from_dict),
        )


# =============================================================================
# API Models
# =============================================================================


class MessageIn(BaseModel):
    """One prior conversation turn."""

    role: str = Field(..., pattern="^(user|assistant)$")
    content: str


class RespondRequest(BaseModel):
    """Request for a companion reply."""

    user_id: str = Field(..., min_length=1)
    message: str
    history: List[MessageIn] = Field(default_factory=list)
    session_id: Optional[str] = None

    def history_messages(self) -> List[ConversationMessage]:
        return [ConversationMessage(role=m.role, content=m.content) for m in self.history]


class RespondResponse(BaseModel):
    """Companion reply plus turn metadata."""

    response: Dict[str, Any]
    processing_time_ms: float


class CreateSessionRequest(BaseModel):
    session_id: Optional[str] = None
    archetype: Archetype = Archetype.WARM_EMPATH


class CreateSessionResponse(BaseModel):
    session_id: str
    personality: str
    voice_id: str


class ModulationRequest(BaseModel):
    """Text to voice plus the emotional context it is spoken in."""

    text: str
    user_emotion: VoiceEmotion = VoiceEmotion.NEUTRAL
    intensity: float = Field(default=0.5, ge=0.0, le=1.0)
    trust_level: float = Field(default=0.0, ge=0.0, le=100.0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    uptime_seconds: float
    active_sessions: int
    generation_provider: str
