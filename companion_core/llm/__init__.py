"""Generation service clients."""

from typing import Optional

from ..config import GenerationConfig
from .base import GenerationClient, GenerationRequest, GenerationResponse
from .mock import MockGenerationClient
from .tiers import model_for_tier, select_model_tier, temperature_for


def create_client(config: Optional[GenerationConfig] = None) -> GenerationClient:
    """Create a generation client based on configuration."""
    config = config or GenerationConfig()

    if config.provider == "openai":
        from .openai import OpenAIGenerationClient

        return OpenAIGenerationClient(config)
    elif config.provider == "mock":
        return MockGenerationClient()
    else:
        raise ValueError(f"Unknown generation provider: {config.provider}")


__all__ = [
    "GenerationClient",
    "GenerationRequest",
    "GenerationResponse",
    "MockGenerationClient",
    "create_client",
    "model_for_tier",
    "select_model_tier",
    "temperature_for",
]
