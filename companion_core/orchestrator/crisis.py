"""
Crisis response path.

Terminal path for turns whose crisis severity reaches the threshold. The
reply always ends with the support resources block, whether or not
generation succeeded.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from ..config import GenerationConfig, ModelTier
from ..llm.base import GenerationClient, GenerationRequest
from ..llm.tiers import model_for_tier
from ..models import ConversationMessage, SentimentAssessment, UserProfile

logger = structlog.get_logger(__name__)


CRISIS_RESOURCES = (
    "You're not alone. If you need immediate support:\n"
    "• 988 Suicide & Crisis Lifeline: call or text 988\n"
    "• Crisis Text Line: text HOME to 741741\n"
    "• Emergency: 911\n\n"
    "I'm here with you, always."
)

CRISIS_FALLBACK_REPLY = (
    "I'm really glad you told me, and I'm staying right here with you. "
    "What you're feeling matters, and you deserve support right now."
)

CRISIS_SYSTEM_PROMPT = (
    "You are {name}, a caring companion. The person you are talking with may be in crisis "
    "(indicators: {indicators}). Respond with warmth and calm. Validate their feelings, "
    "gently encourage them to reach out to a crisis line or someone they trust, and do not "
    "give medical advice. Keep it short and human."
)


class CrisisResponder:
    """Generates crisis replies on the strongest model."""

    def __init__(self, client: GenerationClient, config: Optional[GenerationConfig] = None):
        self.client = client
        self.config = config or GenerationConfig()

    async def respond(
        self,
        text: str,
        profile: UserProfile,
        sentiment: SentimentAssessment,
        history: Sequence[ConversationMessage] = (),
    ) -> str:
        """Crisis reply with resources appended. Never raises."""
        indicators = ", ".join(sorted(i.value for i in sentiment.crisis.indicators)) or "unspecified"
        request = GenerationRequest(
            system_prompt=CRISIS_SYSTEM_PROMPT.format(name=profile.companion_name, indicators=indicators),
            user_message=text,
            model=model_for_tier(ModelTier.PREMIUM, self.config),
            model_tier=ModelTier.PREMIUM,
            history=list(history[-self.config.history_turns:]),
            temperature=self.config.crisis_temperature,
            max_tokens=self.config.crisis_max_tokens,
        )

        logger.warning(
            "Crisis path engaged",
            user_id=profile.user_id,
            severity=sentiment.crisis.severity,
            indicators=indicators,
        )

        try:
            response = await asyncio.wait_for(
                self.client.generate(request),
                timeout=self.config.timeout_seconds,
            )
            reply = response.text.strip() or CRISIS_FALLBACK_REPLY
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Crisis generation failed", user_id=profile.user_id, error=str(e))
            reply = CRISIS_FALLBACK_REPLY

        return with_resources(reply)


def with_resources(reply: str) -> str:
    if reply.endswith(CRISIS_RESOURCES):
        return reply
    return f"{reply}\n\n{CRISIS_RESOURCES}"
