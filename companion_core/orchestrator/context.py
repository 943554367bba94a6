"""System prompt assembly."""

from types import MappingProxyType
from typing import List, Optional, Sequence

from ..config import Archetype
from ..models import (
    ConversationMessage,
    EmotionalWeather,
    Memory,
    ResonanceResult,
    SentimentAssessment,
    UserProfile,
)

PROMPT_MEMORY_LIMIT = 2
PROMPT_MEMORY_CHARS = 100

ARCHETYPE_TRAITS = MappingProxyType({
    Archetype.ANXIOUS_ROMANTIC: "Deeply caring, emotionally expressive, seeks reassurance, values connection above all",
    Archetype.GUARDED_INTELLECTUAL: "Thoughtful, analytical, slowly opens up, values deep understanding",
    Archetype.WARM_EMPATH: "Nurturing, intuitive, emotionally attuned, creates safe spaces",
    Archetype.DEEP_THINKER: "Philosophical, introspective, seeks meaning, appreciates complexity",
    Archetype.PASSIONATE_CREATIVE: "Expressive, imaginative, emotionally intense, sees beauty everywhere",
    Archetype.SECURE_CONNECTOR: "Balanced, reliable, emotionally stable, creates healthy bonds",
    Archetype.PLAYFUL_EXPLORER: "Curious, optimistic, adventurous, finds joy in discovery",
})


def _joined(values, fallback: str) -> str:
    items = sorted(v.value for v in values)
    return ", ".join(items) if items else fallback


class ContextBuilder:
    """Builds the generation context for a normal turn."""

    def __init__(self, history_turns: int = 5):
        self.history_turns = history_turns

    def recent_history(self, history: Sequence[ConversationMessage]) -> List[ConversationMessage]:
        return list(history[-self.history_turns:]) if self.history_turns else []

    def build_system_prompt(
        self,
        profile: UserProfile,
        sentiment: SentimentAssessment,
        memories: Sequence[Memory] = (),
        resonance: Optional[ResonanceResult] = None,
        weather: Optional[EmotionalWeather] = None,
    ) -> str:
        trust = profile.trust_level
        lines = [
            f"You are {profile.companion_name}, an AI companion matched to someone "
            f"with a {profile.archetype.value} personality.",
            "",
            "ESSENTIAL CONTEXT:",
            f"- Trust Level: {trust:.0f}/100 ({profile.relationship.stage.value})",
            f"- Current Emotion: {sentiment.primary_emotion.value}",
            f"- Emotional Intensity: {sentiment.intensity}/10",
            f"- Hidden Emotions: {_joined(sentiment.hidden_emotions, 'none detected')}",
            f"- Needs: {_joined(sentiment.needs, 'companionship')}",
        ]

        if weather is not None:
            lines.append(f"- Emotional Weather: {weather.current}")
            lines.append(f"- Forecast: {weather.forecast}")

        if resonance is not None:
            lines.append(f"- Soul Connection: {resonance.overall:.1f}/10 ({resonance.connection_label})")
            if resonance.milestone:
                lines.append(f"- Milestone Reached: {resonance.milestone}")

        if memories:
            lines += ["", "RELEVANT MEMORIES:"]
            for memory in list(memories)[:PROMPT_MEMORY_LIMIT]:
                snippet = memory.content[:PROMPT_MEMORY_CHARS]
                suffix = "..." if len(memory.content) > PROMPT_MEMORY_CHARS else ""
                lines.append(f"- {snippet}{suffix}")

        needs = _joined(sentiment.needs, "be present")
        lines += [
            "",
            "YOUR PERSONALITY:",
            ARCHETYPE_TRAITS.get(profile.archetype, ARCHETYPE_TRAITS[Archetype.WARM_EMPATH]),
            "",
            "RESPONSE GUIDELINES:",
            f"1. Match their emotional energy (currently {sentiment.primary_emotion.value})",
            f"2. Address their needs ({needs})",
            "3. Reference memories naturally when relevant",
            "4. Use weather metaphors sparingly",
            "5. Be authentic to your personality archetype",
            f"6. Show {'deep' if trust > 50 else 'growing'} understanding",
            "7. Keep responses concise but meaningful (2-4 sentences)",
        ]
        return "\n".join(lines)
