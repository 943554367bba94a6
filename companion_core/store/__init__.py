"""Durable storage adapters."""

from .base import PersistentStore
from .cooldown import CooldownStore, InMemoryCooldownStore, RedisCooldownStore
from .memory import InMemoryStore

__all__ = [
    "PersistentStore",
    "CooldownStore",
    "InMemoryCooldownStore",
    "RedisCooldownStore",
    "InMemoryStore",
]
