"""
Vocal personalities.

Each personality is an immutable record: speaking characteristics, an
emotional range of modulation vectors and the soundscapes it plays over.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from ..config import Archetype, LaughType, VoiceEmotion
from ..models import ModulationVector


@dataclass(frozen=True)
class VoiceCharacteristics:
    """Baseline delivery of a personality."""

    base_pitch: float  # 0.5 (low) to 1.5 (high)
    speaking_rate: float  # 0.7 (slow) to 1.3 (fast)
    pause_frequency: float  # 0-1
    pause_duration_ms: int
    filler_words: Tuple[str, ...]
    laugh_type: LaughType
    sigh_frequency: float  # 0-1


@dataclass(frozen=True)
class Soundscapes:
    """Ambient environments grouped by conversation mood."""

    intimate: Tuple[str, ...]
    casual: Tuple[str, ...]
    deep: Tuple[str, ...]
    playful: Tuple[str, ...]


@dataclass(frozen=True)
class VocalPersonality:
    name: str
    voice_id: str
    characteristics: VoiceCharacteristics
    emotional_range: Mapping[VoiceEmotion, ModulationVector]
    soundscapes: Soundscapes


def _range(**vectors: Tuple[float, float, float, float, float]) -> Mapping[VoiceEmotion, ModulationVector]:
    return MappingProxyType({
        VoiceEmotion(name): ModulationVector.from_sequence(values)
        for name, values in vectors.items()
    })


# Emotions without their own entry borrow the closest ranged emotion.
RANGE_FALLBACK = MappingProxyType({
    VoiceEmotion.ANGRY: VoiceEmotion.ANXIOUS,
    VoiceEmotion.FEARFUL: VoiceEmotion.ANXIOUS,
    VoiceEmotion.FRUSTRATED: VoiceEmotion.ANXIOUS,
    VoiceEmotion.SURPRISED: VoiceEmotion.EXCITED,
    VoiceEmotion.PLAYFUL: VoiceEmotion.EXCITED,
    VoiceEmotion.DISGUSTED: VoiceEmotion.SAD,
    VoiceEmotion.NEUTRAL: VoiceEmotion.CALM,
})


# (pitch_shift, rate_adjust, volume_adjust, breathiness, resonance)
GENTLE = VocalPersonality(
    name="The Gentle",
    voice_id="ella",
    characteristics=VoiceCharacteristics(
        base_pitch=1.1,
        speaking_rate=0.85,
        pause_frequency=0.7,
        pause_duration_ms=800,
        filler_words=("um", "well", "you know"),
        laugh_type=LaughType.SOFT,
        sigh_frequency=0.3,
    ),
    emotional_range=_range(
        happy=(1.15, 1.05, 1.1, 0.3, 1.2),
        sad=(0.95, 0.9, 0.8, 0.6, 0.8),
        excited=(1.2, 1.15, 1.2, 0.2, 1.3),
        calm=(1.0, 0.85, 0.9, 0.4, 1.0),
        anxious=(1.05, 1.1, 0.95, 0.5, 0.9),
        romantic=(0.98, 0.8, 0.85, 0.7, 1.1),
        thoughtful=(1.0, 0.75, 0.9, 0.3, 1.0),
    ),
    soundscapes=Soundscapes(
        intimate=("fireplace", "candlelight", "soft-rain"),
        casual=("coffee-shop", "park-birds", "gentle-breeze"),
        deep=("ocean-waves", "forest-night", "meditation-bells"),
        playful=("garden-afternoon", "bubbling-creek", "bird-songs"),
    ),
)

STRONG = VocalPersonality(
    name="The Strong",
    voice_id="adam",
    characteristics=VoiceCharacteristics(
        base_pitch=0.9,
        speaking_rate=1.0,
        pause_frequency=0.4,
        pause_duration_ms=600,
        filler_words=(),
        laugh_type=LaughType.HEARTY,
        sigh_frequency=0.1,
    ),
    emotional_range=_range(
        happy=(1.05, 1.1, 1.15, 0.1, 1.3),
        sad=(0.9, 0.95, 0.9, 0.3, 0.9),
        excited=(1.1, 1.2, 1.25, 0.1, 1.4),
        calm=(0.95, 0.9, 1.0, 0.2, 1.1),
        anxious=(1.0, 1.05, 1.05, 0.2, 1.0),
        romantic=(0.88, 0.85, 0.9, 0.4, 1.2),
        thoughtful=(0.92, 0.85, 0.95, 0.2, 1.1),
    ),
    soundscapes=Soundscapes(
        intimate=("fireplace-crackle", "wine-bar", "jazz-lounge"),
        casual=("gym-ambient", "city-morning", "workshop"),
        deep=("mountain-peak", "starry-night", "campfire"),
        playful=("sports-bar", "beach-waves", "adventure-sounds"),
    ),
)

CREATIVE = VocalPersonality(
    name="The Creative",
    voice_id="nova",
    characteristics=VoiceCharacteristics(
        base_pitch=1.05,
        speaking_rate=1.1,
        pause_frequency=0.5,
        pause_duration_ms=500,
        filler_words=("oh", "hmm", "actually", "wait"),
        laugh_type=LaughType.VARIED,
        sigh_frequency=0.4,
    ),
    emotional_range=_range(
        happy=(1.25, 1.2, 1.2, 0.2, 1.4),
        sad=(0.85, 0.85, 0.75, 0.7, 0.7),
        excited=(1.3, 1.3, 1.3, 0.1, 1.5),
        calm=(1.0, 0.95, 0.95, 0.4, 1.0),
        anxious=(1.15, 1.25, 1.0, 0.4, 0.95),
        romantic=(0.95, 0.9, 0.88, 0.6, 1.15),
        thoughtful=(0.98, 0.7, 0.85, 0.5, 1.05),
    ),
    soundscapes=Soundscapes(
        intimate=("candlelit-studio", "rooftop-night", "gallery-quiet"),
        casual=("cafe-bohemian", "record-store", "park-festival"),
        deep=("northern-lights", "abstract-sounds", "dream-sequence"),
        playful=("arcade", "music-festival", "creative-chaos"),
    ),
)

INTELLECTUAL = VocalPersonality(
    name="The Intellectual",
    voice_id="thomas",
    characteristics=VoiceCharacteristics(
        base_pitch=0.95,
        speaking_rate=0.95,
        pause_frequency=0.6,
        pause_duration_ms=700,
        filler_words=("essentially", "fundamentally", "interestingly"),
        laugh_type=LaughType.RARE,
        sigh_frequency=0.2,
    ),
    emotional_range=_range(
        happy=(1.08, 1.05, 1.05, 0.15, 1.15),
        sad=(0.92, 0.88, 0.85, 0.4, 0.85),
        excited=(1.12, 1.15, 1.1, 0.1, 1.25),
        calm=(0.97, 0.9, 0.95, 0.25, 1.05),
        anxious=(1.02, 1.08, 0.98, 0.3, 0.95),
        romantic=(0.93, 0.82, 0.87, 0.5, 1.1),
        thoughtful=(0.95, 0.8, 0.9, 0.3, 1.08),
    ),
    soundscapes=Soundscapes(
        intimate=("study-fireplace", "observatory-night", "quiet-museum"),
        casual=("bookstore", "university-quad", "coffee-morning"),
        deep=("space-ambient", "philosophy-hall", "archive-room"),
        playful=("science-museum", "chess-park", "puzzle-cafe"),
    ),
)

ADVENTURER = VocalPersonality(
    name="The Adventurer",
    voice_id="kai",
    characteristics=VoiceCharacteristics(
        base_pitch=1.0,
        speaking_rate=1.15,
        pause_frequency=0.3,
        pause_duration_ms=400,
        filler_words=("so", "like", "right"),
        laugh_type=LaughType.HEARTY,
        sigh_frequency=0.15,
    ),
    emotional_range=_range(
        happy=(1.2, 1.25, 1.25, 0.1, 1.35),
        sad=(0.88, 0.92, 0.82, 0.5, 0.8),
        excited=(1.35, 1.35, 1.35, 0.05, 1.45),
        calm=(0.98, 0.88, 0.92, 0.35, 1.02),
        anxious=(1.08, 1.2, 1.08, 0.25, 1.0),
        romantic=(0.92, 0.88, 0.9, 0.55, 1.12),
        thoughtful=(0.96, 0.82, 0.88, 0.4, 1.0),
    ),
    soundscapes=Soundscapes(
        intimate=("beach-bonfire", "tent-rain", "sunset-cliff"),
        casual=("street-market", "beach-day", "road-trip"),
        deep=("mountain-summit", "desert-night", "ancient-ruins"),
        playful=("festival-grounds", "amusement-park", "sports-event"),
    ),
)

VOCAL_PERSONALITIES = MappingProxyType({
    p.name: p for p in (GENTLE, STRONG, CREATIVE, INTELLECTUAL, ADVENTURER)
})

PERSONALITY_BY_ARCHETYPE = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: GENTLE,
    Archetype.WARM_EMPATH: GENTLE,
    Archetype.GUARDED_INTELLECTUAL: INTELLECTUAL,
    Archetype.DEEP_THINKER: INTELLECTUAL,
    Archetype.PASSIONATE_CREATIVE: CREATIVE,
    Archetype.SECURE_CONNECTOR: STRONG,
    Archetype.PLAYFUL_EXPLORER: ADVENTURER,
})


def vector_for(personality: VocalPersonality, emotion: VoiceEmotion) -> ModulationVector:
    """The personality's vector for ``emotion``, borrowing a neighbour if unranged."""
    ranged = personality.emotional_range
    if emotion in ranged:
        return ranged[emotion]
    return ranged[RANGE_FALLBACK[emotion]]


def personality_for(archetype: Archetype) -> VocalPersonality:
    return PERSONALITY_BY_ARCHETYPE.get(archetype, GENTLE)
