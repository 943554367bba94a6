"""OpenAI generation client."""

from typing import Optional

import structlog
from openai import AsyncOpenAI

from ..config import GenerationConfig
from ..errors import GenerationError
from .base import GenerationClient, GenerationRequest, GenerationResponse

logger = structlog.get_logger(__name__)


class OpenAIGenerationClient(GenerationClient):
    """Chat completions through the official SDK."""

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.config = config or GenerationConfig()
        if client is None:
            if not self.config.openai_api_key:
                raise ValueError("OpenAI API key is required")
            client = AsyncOpenAI(
                api_key=self.config.openai_api_key,
                base_url=self.config.openai_base_url,
                max_retries=0,
            )
        self.client = client
        self.logger = logger.bind(client="openai")

    @property
    def name(self) -> str:
        return "openai"

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        completion = await self.client.chat.completions.create(
            model=request.model,
            messages=request.to_messages(),
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            presence_penalty=request.presence_penalty,
            frequency_penalty=request.frequency_penalty,
        )

        if not completion.choices:
            raise GenerationError("Empty completion", details={"model": request.model})

        choice = completion.choices[0]
        tokens = completion.usage.total_tokens if completion.usage else request.max_tokens
        self.logger.debug(
            "Completion received",
            model=request.model,
            tier=request.model_tier.value,
            tokens=tokens,
        )
        return GenerationResponse(
            text=choice.message.content or "",
            tokens_used=tokens,
            model=completion.model,
            finish_reason=choice.finish_reason or "stop",
        )

    async def close(self) -> None:
        await self.client.close()
