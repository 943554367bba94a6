"""Durable conversational memory."""

from .adapter import MemoryAdapter
from .significance import calculate_significance, relevance, tokenize

__all__ = ["MemoryAdapter", "calculate_significance", "relevance", "tokenize"]
