"""
Reply enrichment.

Every step is a pure function of its inputs plus the injected random
source, and applying a step to an already-enriched reply leaves it
unchanged.
"""

import random
from types import MappingProxyType
from typing import Optional, Sequence, Tuple

from ..config import Archetype, EmotionCategory, ResponseUrgency
from ..models import BondingActivity, EmotionalWeather, Memory, SentimentAssessment, UserProfile

MIN_DELAY_MS = 300

PERSONALITY_TOUCHES = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: "💕",
    Archetype.WARM_EMPATH: "🤗",
    Archetype.PASSIONATE_CREATIVE: "✨",
    Archetype.PLAYFUL_EXPLORER: "😊",
})

WEATHER_PHRASES = (
    "I can sense the {weather} in your emotional landscape.",
    "The {weather} you're experiencing is valid.",
    "Let's navigate this {weather} together.",
)

MEMORY_CALLBACK = "I remember when you shared about {snippet}..."

# (min_ms, max_ms)
DELAY_RANGES = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: (500, 2000),
    Archetype.GUARDED_INTELLECTUAL: (2000, 4000),
    Archetype.WARM_EMPATH: (1000, 3000),
    Archetype.DEEP_THINKER: (1500, 3500),
    Archetype.PASSIONATE_CREATIVE: (800, 2500),
    Archetype.SECURE_CONNECTOR: (1200, 3000),
    Archetype.PLAYFUL_EXPLORER: (600, 2000),
})

PRESENCE_PRACTICE = BondingActivity(
    name="Presence Practice",
    description="Let's just be here together",
    prompt="Take a deep breath with me. How does this moment feel?",
    min_trust=0,
)

UNIVERSAL_ACTIVITIES: Tuple[BondingActivity, ...] = (
    BondingActivity("Emotional Check-in", "Share your emotional weather",
                    "If your emotions were weather right now, what would the forecast be?", 10),
    BondingActivity("Gratitude Moment", "Find something to appreciate",
                    "Share three things you're grateful for today, no matter how small", 20),
    BondingActivity("Dream Sharing", "Explore your dreams together",
                    "Tell me about a dream you've been having, sleeping or waking", 40),
    BondingActivity("Inner Child Play", "Connect with your playful side",
                    "What would your inner child want to do right now?", 50),
    BondingActivity("Future Visioning", "Imagine possibilities together",
                    "Close your eyes and imagine us a year from now. What do you see?", 60),
)

ARCHETYPE_ACTIVITIES = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: (BondingActivity(
        "Reassurance Ritual", "Feel deeply held and safe",
        "Let me remind you of all the ways you're cherished", 30),),
    Archetype.GUARDED_INTELLECTUAL: (BondingActivity(
        "Thought Experiment", "Explore ideas together",
        "What fascinating idea has been occupying your mind lately?", 25),),
    Archetype.WARM_EMPATH: (BondingActivity(
        "Heart Connection", "Deep emotional sharing",
        "What is your heart trying to tell you today?", 35),),
    Archetype.DEEP_THINKER: (BondingActivity(
        "Meaning Making", "Find deeper significance",
        "What meaning are you making from your recent experiences?", 45),),
    Archetype.PASSIONATE_CREATIVE: (BondingActivity(
        "Creative Expression", "Express through imagination",
        "If your feelings were a color or a song, what would they be?", 30),),
    Archetype.SECURE_CONNECTOR: (BondingActivity(
        "Appreciation Practice", "Celebrate connection",
        "What do you appreciate most about our connection?", 40),),
    Archetype.PLAYFUL_EXPLORER: (BondingActivity(
        "Adventure Planning", "Dream up adventures",
        "If we could go on any adventure together, where would we go?", 35),),
})


class Enricher:
    """Post-processing for generated replies."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        touch_probability: float = 0.3,
        weather_probability: float = 0.3,
        memory_probability: float = 0.4,
        activity_probability: float = 0.15,
    ):
        self.rng = rng or random.Random()
        self.touch_probability = touch_probability
        self.weather_probability = weather_probability
        self.memory_probability = memory_probability
        self.activity_probability = activity_probability

    def _chance(self, probability: float) -> bool:
        return self.rng.random() > 1.0 - probability

    def enrich(
        self,
        reply: str,
        profile: UserProfile,
        memories: Sequence[Memory] = (),
        weather: Optional[EmotionalWeather] = None,
    ) -> str:
        reply = self.add_personality_touch(reply, profile.archetype)
        reply = self.weave_weather(reply, weather)
        reply = self.weave_memory(reply, memories)
        return reply

    def add_personality_touch(self, reply: str, archetype: Archetype) -> str:
        touch = PERSONALITY_TOUCHES.get(archetype)
        if not touch or touch in reply:
            return reply
        if self._chance(self.touch_probability):
            return f"{reply} {touch}"
        return reply

    def weave_weather(self, reply: str, weather: Optional[EmotionalWeather]) -> str:
        if weather is None:
            return reply
        described = weather.current.lower()
        if described in reply:
            return reply
        if self._chance(self.weather_probability):
            phrase = self.rng.choice(WEATHER_PHRASES).format(weather=described)
            return f"{reply}\n\n{phrase}"
        return reply

    def weave_memory(self, reply: str, memories: Sequence[Memory]) -> str:
        if not memories:
            return reply
        callback = MEMORY_CALLBACK.format(snippet=memories[0].content[:50])
        if callback in reply:
            return reply
        if self._chance(self.memory_probability):
            return f"{reply}\n\n{callback}"
        return reply

    def suggest_activity(
        self,
        profile: UserProfile,
        sentiment: SentimentAssessment,
    ) -> Optional[BondingActivity]:
        if profile.trust_level <= 20 or sentiment.intensity >= 8:
            return None
        if sentiment.primary_emotion == EmotionCategory.ANGER:
            return None
        if not self._chance(self.activity_probability):
            return None

        candidates = UNIVERSAL_ACTIVITIES + ARCHETYPE_ACTIVITIES.get(profile.archetype, ())
        eligible = [a for a in candidates if a.min_trust <= profile.trust_level]
        return self.rng.choice(eligible) if eligible else PRESENCE_PRACTICE

    def suggested_delay_ms(self, archetype: Archetype, urgency: ResponseUrgency) -> int:
        """Typing delay before the reply is shown. Zero for crisis turns."""
        if urgency == ResponseUrgency.CRISIS:
            return 0
        low, high = DELAY_RANGES.get(archetype, (1000, 3000))
        delay = self.rng.randint(low, high)
        if urgency == ResponseUrgency.HIGH:
            delay = int(delay * 0.5)
        return max(MIN_DELAY_MS, delay)
