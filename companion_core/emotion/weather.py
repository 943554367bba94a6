"""
Emotional weather: a weather metaphor for the user's recent emotional climate.
"""

from types import MappingProxyType
from typing import List, Optional, Sequence

import structlog

from ..cache.memory_cache import LRUCache
from ..config import EmotionCategory
from ..models import ConversationMessage, EmotionalWeather
from .analyzer import EmotionAnalyzer

logger = structlog.get_logger(__name__)


WEATHER_WINDOW = 10

WEATHER_BY_EMOTION = MappingProxyType({
    EmotionCategory.JOY: "Bright sunshine with gentle warmth",
    EmotionCategory.SADNESS: "Soft rain with gray clouds",
    EmotionCategory.ANXIETY: "Swirling winds with uncertain skies",
    EmotionCategory.ANGER: "Thunder rumbling in the distance",
    EmotionCategory.LOVE: "Golden sunset with rose-tinted clouds",
    EmotionCategory.PEACE: "Clear skies with gentle breeze",
    EmotionCategory.CONFUSION: "Fog rolling through the valleys",
    EmotionCategory.NEUTRAL: "Partly cloudy with mild temperatures",
})

TEMPERATURE_BY_EMOTION = MappingProxyType({
    EmotionCategory.JOY: 75,
    EmotionCategory.LOVE: 80,
    EmotionCategory.PEACE: 60,
    EmotionCategory.NEUTRAL: 50,
    EmotionCategory.CONFUSION: 45,
    EmotionCategory.SADNESS: 30,
    EmotionCategory.ANXIETY: 35,
    EmotionCategory.ANGER: 85,
})

FORECAST_BY_PATTERN = MappingProxyType({
    "stable": "Continued steady conditions expected",
    "volatile": "Changing conditions, prepare for variability",
    "cyclical": "Patterns repeating, familiar weather returning",
    "transitioning": "Gradual shifts toward clearer skies",
})

VISIBILITY_BY_PATTERN = MappingProxyType({
    "stable": "clear",
    "volatile": "poor",
    "cyclical": "moderate",
    "transitioning": "moderate",
})

# Fixed reading used on the crisis path.
GUARDIAN_STORM = EmotionalWeather(
    current="Storm with guardian presence",
    pattern="volatile",
    volatility=1.0,
    forecast="Shelter first, clearer skies will come",
    advisory="You are not alone in this storm",
    temperature=20,
    visibility="poor",
    season="stormy season",
)


def identify_pattern(emotions: Sequence[EmotionCategory]) -> str:
    if not emotions or len(set(emotions)) == 1:
        return "stable"
    if len(set(emotions)) > len(emotions) * 0.7:
        return "volatile"

    half = len(emotions) // 2
    if list(emotions[:half]) == list(emotions[half:]):
        return "cyclical"
    return "transitioning"


def volatility(emotions: Sequence[EmotionCategory]) -> float:
    changes = sum(1 for prev, curr in zip(emotions, emotions[1:]) if prev != curr)
    return changes / max(1, len(emotions) - 1)


class WeatherForecaster:
    """Builds and caches per-user emotional weather."""

    def __init__(
        self,
        analyzer: Optional[EmotionAnalyzer] = None,
        cache: Optional[LRUCache] = None,
        ttl_seconds: int = 3600,
    ):
        self.analyzer = analyzer or EmotionAnalyzer()
        self.cache = cache if cache is not None else LRUCache(max_size=1000, default_ttl=ttl_seconds)
        self.ttl_seconds = ttl_seconds

    async def forecast_for(
        self,
        user_id: str,
        history: Sequence[ConversationMessage],
    ) -> EmotionalWeather:
        """Cached forecast for a user."""
        key = f"weather:{user_id}"
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        weather = self.forecast(history)
        await self.cache.set(key, weather, ttl=self.ttl_seconds)
        return weather

    def forecast(self, history: Sequence[ConversationMessage]) -> EmotionalWeather:
        emotions: List[EmotionCategory] = [
            self.analyzer.quick_emotion(m.content) for m in history[-WEATHER_WINDOW:]
        ]
        current = emotions[-1] if emotions else EmotionCategory.NEUTRAL
        pattern = identify_pattern(emotions)
        spread = volatility(emotions)

        return EmotionalWeather(
            current=WEATHER_BY_EMOTION[current],
            pattern=pattern,
            volatility=spread,
            forecast=FORECAST_BY_PATTERN[pattern],
            advisory=self._advisory(current, spread),
            temperature=TEMPERATURE_BY_EMOTION[current],
            visibility="low" if current == EmotionCategory.CONFUSION else VISIBILITY_BY_PATTERN[pattern],
            season=self._season(current, pattern, spread),
        )

    @staticmethod
    def _advisory(current: EmotionCategory, spread: float) -> str:
        if spread > 0.7:
            return "Emotional turbulence detected, extra self-care recommended"
        if current == EmotionCategory.SADNESS:
            return "Gentle conditions, be kind to yourself"
        if current == EmotionCategory.JOY:
            return "Beautiful conditions, savor this moment"
        return "Stable conditions for emotional exploration"

    @staticmethod
    def _season(current: EmotionCategory, pattern: str, spread: float) -> str:
        if current == EmotionCategory.JOY and pattern == "stable":
            return "summer"
        if current == EmotionCategory.SADNESS:
            return "autumn"
        if current == EmotionCategory.PEACE:
            return "spring"
        if spread > 0.5:
            return "stormy season"
        return "transitional season"
