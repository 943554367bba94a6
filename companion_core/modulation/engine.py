"""
Sentiment-aware voice modulation.

One engine per conversation session. The engine retains its current
modulation vector between calls and moves it toward each new target by
linear interpolation, so the voice never jumps between turns.
"""

import random
import re
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Deque, List, Optional, Sequence

import numpy as np
import structlog

from ..config import (
    Archetype,
    EmotionCategory,
    EmotionTrend,
    LaughType,
    ModulationConfig,
    VocalTicType,
    VoiceEmotion,
)
from ..errors import SessionNotFoundError
from ..models import (
    EmphasisSpan,
    ModulationVector,
    PauseMark,
    SentimentAssessment,
    VocalTic,
    VoiceParameters,
)
from .personalities import VocalPersonality, personality_for, vector_for

logger = structlog.get_logger(__name__)


BASE_MODULATION = ModulationVector(1.0, 1.0, 1.0, 0.2, 1.0)

POSITIVE_EMOTIONS = frozenset({
    VoiceEmotion.HAPPY, VoiceEmotion.EXCITED, VoiceEmotion.PLAYFUL, VoiceEmotion.ROMANTIC,
})
NEGATIVE_EMOTIONS = frozenset({
    VoiceEmotion.SAD, VoiceEmotion.ANGRY, VoiceEmotion.ANXIOUS, VoiceEmotion.FRUSTRATED,
})

_I, _S, _D = EmotionTrend.IMPROVING, EmotionTrend.STABLE, EmotionTrend.DECLINING
_E = VoiceEmotion

# user emotion -> trend -> companion emotion
RESPONSE_MATRIX = MappingProxyType({
    _E.HAPPY: {_I: _E.EXCITED, _S: _E.HAPPY, _D: _E.THOUGHTFUL},
    _E.SAD: {_I: _E.THOUGHTFUL, _S: _E.CALM, _D: _E.SAD},
    _E.ANGRY: {_I: _E.CALM, _S: _E.THOUGHTFUL, _D: _E.CALM},
    _E.ANXIOUS: {_I: _E.CALM, _S: _E.THOUGHTFUL, _D: _E.CALM},
    _E.EXCITED: {_I: _E.EXCITED, _S: _E.HAPPY, _D: _E.HAPPY},
    _E.CALM: {_I: _E.CALM, _S: _E.CALM, _D: _E.THOUGHTFUL},
    _E.ROMANTIC: {_I: _E.ROMANTIC, _S: _E.ROMANTIC, _D: _E.THOUGHTFUL},
    _E.THOUGHTFUL: {_I: _E.THOUGHTFUL, _S: _E.THOUGHTFUL, _D: _E.CALM},
    _E.NEUTRAL: {_I: _E.HAPPY, _S: _E.NEUTRAL, _D: _E.THOUGHTFUL},
    _E.PLAYFUL: {_I: _E.PLAYFUL, _S: _E.PLAYFUL, _D: _E.HAPPY},
    _E.FRUSTRATED: {_I: _E.CALM, _S: _E.THOUGHTFUL, _D: _E.CALM},
    _E.FEARFUL: {_I: _E.CALM, _S: _E.CALM, _D: _E.CALM},
    _E.SURPRISED: {_I: _E.EXCITED, _S: _E.HAPPY, _D: _E.THOUGHTFUL},
    _E.DISGUSTED: {_I: _E.THOUGHTFUL, _S: _E.NEUTRAL, _D: _E.CALM},
})

VOICE_EMOTION_BY_CATEGORY = MappingProxyType({
    EmotionCategory.JOY: VoiceEmotion.HAPPY,
    EmotionCategory.SADNESS: VoiceEmotion.SAD,
    EmotionCategory.ANXIETY: VoiceEmotion.ANXIOUS,
    EmotionCategory.ANGER: VoiceEmotion.ANGRY,
    EmotionCategory.LOVE: VoiceEmotion.ROMANTIC,
    EmotionCategory.PEACE: VoiceEmotion.CALM,
    EmotionCategory.CONFUSION: VoiceEmotion.THOUGHTFUL,
    EmotionCategory.NEUTRAL: VoiceEmotion.NEUTRAL,
})

EMPHASIS_KEYWORDS = MappingProxyType({
    _E.ROMANTIC: ("love", "beautiful", "special", "together", "always"),
    _E.HAPPY: ("wonderful", "amazing", "great", "fantastic", "love"),
    _E.SAD: ("sorry", "understand", "difficult", "hard", "pain"),
    _E.THOUGHTFUL: ("think", "believe", "wonder", "perhaps", "maybe"),
    _E.EXCITED: ("wow", "incredible", "awesome", "can't wait", "amazing"),
    _E.CALM: ("peaceful", "relax", "breathe", "gentle", "quiet"),
    _E.ANXIOUS: ("worried", "concerned", "nervous", "uncertain"),
    _E.ANGRY: ("frustrated", "upset", "annoyed", "bothered"),
    _E.PLAYFUL: ("fun", "silly", "laugh", "play", "joke"),
    _E.NEUTRAL: (),
    _E.FEARFUL: ("scared", "afraid", "worry", "fear"),
    _E.SURPRISED: ("wow", "really", "seriously", "what"),
    _E.DISGUSTED: ("awful", "terrible", "gross", "bad"),
    _E.FRUSTRATED: ("difficult", "hard", "challenging", "stuck"),
})

PAUSE_INDICATORS = (",", " but ", " and ", " so ", " because ")
_SENTENCE_END = re.compile(r"[.!?]+")


@dataclass
class ConversationMood:
    """Qualitative feel of the conversation, each 0-1."""

    depth: float = 0.5
    energy: float = 0.5
    intimacy: float = 0.5
    playfulness: float = 0.5


@dataclass
class ModulationContext:
    """Inputs for one modulation step."""

    user_emotion: VoiceEmotion
    intensity: float  # 0-1
    trust_level: float = 0.0  # 0-100
    recent_emotions: Sequence[VoiceEmotion] = ()
    mood: ConversationMood = field(default_factory=ConversationMood)

    @classmethod
    def from_assessment(
        cls,
        assessment: SentimentAssessment,
        trust_level: float,
        recent_emotions: Sequence[VoiceEmotion] = (),
    ) -> "ModulationContext":
        joyful = assessment.primary_emotion == EmotionCategory.JOY
        loving = assessment.primary_emotion == EmotionCategory.LOVE
        return cls(
            user_emotion=VOICE_EMOTION_BY_CATEGORY[assessment.primary_emotion],
            intensity=assessment.intensity / 10.0,
            trust_level=trust_level,
            recent_emotions=recent_emotions,
            mood=ConversationMood(
                depth=assessment.authenticity,
                energy=assessment.intensity / 10.0,
                intimacy=min(1.0, trust_level / 100.0 + (0.2 if loving else 0.0)),
                playfulness=0.8 if joyful and assessment.intensity >= 6 else 0.3,
            ),
        )


def emotional_trend(emotions: Sequence[VoiceEmotion], window: int = 5) -> EmotionTrend:
    """Score negative-to-positive steps against positive-to-negative steps."""
    recent = list(emotions)[-window:]
    if len(recent) < 2:
        return EmotionTrend.STABLE

    score = 0
    for prev, curr in zip(recent, recent[1:]):
        if curr in POSITIVE_EMOTIONS and prev in NEGATIVE_EMOTIONS:
            score += 1
        elif curr in NEGATIVE_EMOTIONS and prev in POSITIVE_EMOTIONS:
            score -= 1

    if score > 1:
        return EmotionTrend.IMPROVING
    if score < -1:
        return EmotionTrend.DECLINING
    return EmotionTrend.STABLE


class ModulationEngine:
    """Stateful voice modulator for a single session."""

    def __init__(
        self,
        personality: VocalPersonality,
        config: Optional[ModulationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.personality = personality
        self.config = config or ModulationConfig()
        self.rng = rng or random.Random()
        self.state = BASE_MODULATION
        self.history: Deque[VoiceEmotion] = deque(maxlen=max(self.config.trend_window, 2))

    @property
    def adaptation_speed(self) -> float:
        return self.config.adaptation_speed

    def next_parameters(self, text: str, context: ModulationContext) -> VoiceParameters:
        """Advance the session state one step and voice ``text``."""
        self.history.append(context.user_emotion)
        emotions = context.recent_emotions or list(self.history)
        trend = emotional_trend(emotions, self.config.trend_window)

        target_emotion = RESPONSE_MATRIX[context.user_emotion][trend]
        target = self._mirror(vector_for(self.personality, target_emotion), context)
        self.state = self._smooth(self.state, target)

        chars = self.personality.characteristics
        return VoiceParameters(
            vector=self.state,
            target_emotion=target_emotion,
            trend=trend,
            pitch=chars.base_pitch * self.state.pitch_shift,
            rate=chars.speaking_rate * self.state.rate_adjust,
            voice_id=self.personality.voice_id,
            pauses=self._pauses(text, context.mood),
            emphasis=self._emphasis(text, context),
            tics=self._tics(text, context),
            soundscape=self._soundscape(context.mood),
        )

    def _mirror(self, vector: ModulationVector, context: ModulationContext) -> ModulationVector:
        """Lean toward an intense user's energy, more so as trust grows."""
        if context.intensity <= self.config.mirror_intensity_threshold:
            return vector

        strength = min(context.trust_level / 100.0, self.config.max_mirror_strength)
        boost = context.intensity * strength
        return ModulationVector(
            pitch_shift=vector.pitch_shift + boost * 0.1,
            rate_adjust=vector.rate_adjust + boost * 0.05,
            volume_adjust=vector.volume_adjust + boost * 0.1,
            breathiness=vector.breathiness,
            resonance=vector.resonance,
        )

    def _smooth(self, current: ModulationVector, target: ModulationVector) -> ModulationVector:
        now = np.asarray(current.as_tuple(), dtype=float)
        goal = np.asarray(target.as_tuple(), dtype=float)
        return ModulationVector.from_sequence(now + (goal - now) * self.adaptation_speed)

    @staticmethod
    def _pauses(text: str, mood: ConversationMood) -> List[PauseMark]:
        pauses: List[PauseMark] = []
        sentence_pause = 800 if mood.depth > 0.5 else 400

        offset = 0
        for match in _SENTENCE_END.finditer(text):
            sentence = text[offset:match.start()]
            if mood.depth > 0.7 and len(sentence) > 50:
                comma = sentence.find(",")
                if comma > 0:
                    pauses.append(PauseMark(position=offset + comma + 1, duration_ms=300))
            offset = match.end()
            if text[offset:].strip():
                pauses.append(PauseMark(position=offset, duration_ms=sentence_pause))
        return pauses

    @staticmethod
    def _emphasis(text: str, context: ModulationContext) -> List[EmphasisSpan]:
        lowered = text.lower()
        spans = []
        for keyword in EMPHASIS_KEYWORDS.get(context.user_emotion, ()):
            index = lowered.find(keyword)
            if index >= 0:
                spans.append(EmphasisSpan(
                    start=index,
                    end=index + len(keyword),
                    strength=context.intensity,
                ))
        spans.sort(key=lambda s: s.start)
        return spans

    def _tics(self, text: str, context: ModulationContext) -> List[VocalTic]:
        chars = self.personality.characteristics
        mood = context.mood
        tics: List[VocalTic] = []

        if mood.depth > 0.7 and self.rng.random() < chars.pause_frequency:
            tics.append(VocalTic(
                kind=VocalTicType.PAUSE,
                position=self._natural_pause_point(text),
                duration_ms=chars.pause_duration_ms,
            ))
        if context.user_emotion == VoiceEmotion.HAPPY and chars.laugh_type != LaughType.RARE:
            if self.rng.random() < 0.3:
                tics.append(VocalTic(
                    kind=VocalTicType.LAUGH,
                    position=len(text),
                    text=chars.laugh_type.value,
                ))
        if mood.depth > 0.6 and self.rng.random() < chars.sigh_frequency:
            tics.append(VocalTic(kind=VocalTicType.SIGH, position=0, text="soft"))
        if chars.filler_words and self.rng.random() < 0.2:
            tics.append(VocalTic(
                kind=VocalTicType.FILLER,
                position=0,
                text=self.rng.choice(chars.filler_words),
            ))
        return tics

    @staticmethod
    def _natural_pause_point(text: str) -> int:
        for indicator in PAUSE_INDICATORS:
            index = text.find(indicator)
            if 20 < index < len(text) - 20:
                return index + len(indicator)
        return len(text) // 2

    def _soundscape(self, mood: ConversationMood) -> str:
        scapes = self.personality.soundscapes
        if mood.intimacy > 0.7:
            options = scapes.intimate
        elif mood.playfulness > 0.7:
            options = scapes.playful
        elif mood.depth > 0.7:
            options = scapes.deep
        else:
            options = scapes.casual
        return self.rng.choice(options)


class ModulationSessions:
    """Registry of per-session engines, bounded by least recent use."""

    def __init__(
        self,
        config: Optional[ModulationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or ModulationConfig()
        self.rng = rng or random.Random()
        self._engines: "OrderedDict[str, ModulationEngine]" = OrderedDict()

    def start_session(self, session_id: str, archetype: Archetype) -> ModulationEngine:
        """Create a fresh engine; an existing session with this id is replaced."""
        engine = ModulationEngine(personality_for(archetype), self.config, self.rng)
        self._engines.pop(session_id, None)
        self._engines[session_id] = engine
        while len(self._engines) > self.config.max_sessions:
            evicted, _ = self._engines.popitem(last=False)
            logger.debug("Modulation session evicted", session_id=evicted)
        logger.info(
            "Modulation session started",
            session_id=session_id,
            personality=engine.personality.name,
        )
        return engine

    def get(self, session_id: str) -> ModulationEngine:
        engine = self._engines.get(session_id)
        if engine is None:
            raise SessionNotFoundError(session_id)
        self._engines.move_to_end(session_id)
        return engine

    def end_session(self, session_id: str) -> bool:
        return self._engines.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)
