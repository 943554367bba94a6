"""Generation service interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import ModelTier
from ..models import ConversationMessage


@dataclass
class GenerationRequest:
    """Single-shot completion request."""
    system_prompt: str
    user_message: str
    model: str
    model_tier: ModelTier
    history: List[ConversationMessage] = field(default_factory=list)
    temperature: float = 0.8
    max_tokens: int = 400
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0

    def to_messages(self) -> List[dict]:
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(
            {"role": "user" if m.is_user else "assistant", "content": m.content}
            for m in self.history
        )
        messages.append({"role": "user", "content": self.user_message})
        return messages


@dataclass
class GenerationResponse:
    """Response from the generation service."""
    text: str
    tokens_used: int = 0
    model: Optional[str] = None
    finish_reason: str = "stop"


class GenerationClient(ABC):
    """Abstract base class for generation services."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Produce one reply. May raise; callers apply their own timeout."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass
