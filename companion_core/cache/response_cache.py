"""
Response cache for orchestrated turns.

Keys are derived from the normalized message text and the user id, so
two users never share an entry. Values are stored as JSON so a hit hands
back exactly what was stored.
"""

import hashlib
import json
import re
from typing import Optional

import structlog

from ..models import CompanionResponse
from .memory_cache import LRUCache

logger = structlog.get_logger(__name__)


# Messages matching these must always get a freshly generated reply.
FRESHNESS_PATTERN = re.compile(
    r"\b(?:right\s+now|at\s+the\s+moment|urgent|urgently|emergency|crisis|asap"
    r"|immediately|help\s+me|tonight)\b",
    re.IGNORECASE,
)

_WHITESPACE = re.compile(r"\s+")


def normalize_message(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip().lower())


class ResponseCache:
    """Advisory cache of full turn results. Backend failures count as misses."""

    def __init__(self, backend: Optional[LRUCache] = None, ttl_seconds: int = 1800):
        self.backend = backend if backend is not None else LRUCache(max_size=500, default_ttl=ttl_seconds)
        self.ttl_seconds = ttl_seconds
        self.logger = logger.bind(component="response_cache")

    @staticmethod
    def key_for(text: str, user_id: str) -> str:
        """Deterministic key; distinct users get distinct keys."""
        digest = hashlib.sha256(
            f"{normalize_message(text)}\x00{user_id}".encode("utf-8")
        ).hexdigest()
        return f"response:{digest[:32]}"

    @staticmethod
    def requires_fresh_response(text: str) -> bool:
        return bool(FRESHNESS_PATTERN.search(text))

    async def get(self, key: str) -> Optional[CompanionResponse]:
        try:
            payload = await self.backend.get(key)
            if payload is None:
                return None
            return CompanionResponse.from_dict(json.loads(payload))
        except Exception as e:
            self.logger.warning("Response cache read failed", key=key, error=str(e))
            return None

    async def set(self, key: str, response: CompanionResponse) -> bool:
        try:
            payload = json.dumps(response.to_dict(), sort_keys=True)
            await self.backend.set(key, payload, ttl=self.ttl_seconds)
            return True
        except Exception as e:
            self.logger.warning("Response cache write failed", key=key, error=str(e))
            return False

    async def lookup(self, text: str, user_id: str) -> Optional[CompanionResponse]:
        """Cache read that honours freshness-required messages."""
        if self.requires_fresh_response(text):
            return None
        return await self.get(self.key_for(text, user_id))
