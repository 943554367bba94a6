"""Mock generation client for development and tests."""

import asyncio
from typing import List, Optional

import structlog

from .base import GenerationClient, GenerationRequest, GenerationResponse

logger = structlog.get_logger(__name__)


class MockGenerationClient(GenerationClient):
    """
    Pattern-matched replies without API costs.

    Replies are deterministic: the first matching pattern wins. Every
    request is recorded in ``requests`` for inspection.
    """

    RESPONSES = {
        "greeting": "Hello! It's so good to hear from you. How are you feeling?",
        "sad": "I'm sorry you're carrying this. I'm right here with you.",
        "anxious": "That sounds really stressful. Let's take it one breath at a time.",
        "happy": "That's wonderful! I love hearing you this happy.",
        "crisis": "I'm really glad you told me. Your safety matters more than anything right now.",
        "default": "I hear you. Tell me more about that.",
    }

    PATTERNS = [
        (["kill myself", "suicide", "end my life", "want to die", "hurt myself"], "crisis"),
        (["hello", "hi ", "hey", "good morning"], "greeting"),
        (["sad", "lonely", "crying", "down"], "sad"),
        (["anxious", "worried", "nervous", "stress"], "anxious"),
        (["happy", "excited", "great", "amazing"], "happy"),
    ]

    def __init__(self, latency_ms: int = 0, replies: Optional[List[str]] = None) -> None:
        self.latency_ms = latency_ms
        self._scripted = list(replies or [])
        self.requests: List[GenerationRequest] = []
        self.logger = logger.bind(client="mock")

    @property
    def name(self) -> str:
        return "mock"

    def _match(self, message: str) -> str:
        lowered = f" {message.lower()} "
        for keywords, category in self.PATTERNS:
            if any(keyword in lowered for keyword in keywords):
                return self.RESPONSES[category]
        return self.RESPONSES["default"]

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        text = self._scripted.pop(0) if self._scripted else self._match(request.user_message)
        return GenerationResponse(
            text=text,
            tokens_used=len(text.split()),
            model=request.model,
        )
