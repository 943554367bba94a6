"""
Companion Engine - emotionally adaptive AI companion responses.

Turns a user message into a companion reply that reflects the user's
emotional state, relationship history and personality archetype, and
voices it with sentiment-aware modulation parameters.

Architecture:
    User Message
         │
         ▼
    ┌────────────────┐
    │ Crisis Screen  │──► Crisis Gate (resources, premium model)
    │ + Cache Check  │──► Cached Reply
    └────────────────┘
         │
         ▼
    ┌────────────────┐
    │ Fan-out        │──► Profile, Sentiment, Memories,
    │                │    Resonance, Emotional Weather
    └────────────────┘
         │
         ▼
    ┌────────────────┐
    │ Generate       │──► Tiered model, timeout fallback
    └────────────────┘
         │
         ▼
    ┌────────────────┐
    │ Enrich         │──► Touches, Activities, Voice Modulation
    └────────────────┘
         │
         ▼
    Background Persistence (memory, trust, cache)
"""

__version__ = "1.0.0"
