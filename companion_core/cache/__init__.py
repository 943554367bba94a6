"""Caching layer."""

from .memory_cache import CacheStats, LRUCache
from .response_cache import FRESHNESS_PATTERN, ResponseCache, normalize_message

__all__ = [
    "CacheStats",
    "LRUCache",
    "FRESHNESS_PATTERN",
    "ResponseCache",
    "normalize_message",
]
