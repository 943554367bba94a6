"""
Keyword tables used by the heuristic emotion analyzer.

Tables are ordered tuples; order is part of the behaviour. The first
primary-emotion pattern that matches wins.
"""

import re
from types import MappingProxyType
from typing import Pattern, Tuple

from ..config import CrisisIndicator, EmotionalNeed, EmotionCategory, HiddenEmotion


def _words(*phrases: str) -> Pattern:
    """Compile a case-insensitive, word-bounded alternation."""
    body = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in phrases)
    return re.compile(rf"\b(?:{body})\b", re.IGNORECASE)


PRIMARY_EMOTION_PATTERNS: Tuple[Tuple[EmotionCategory, Pattern], ...] = (
    (EmotionCategory.JOY, _words(
        "happy", "excited", "wonderful", "amazing", "great", "fantastic", "love", "blessed",
    )),
    (EmotionCategory.SADNESS, _words(
        "sad", "depressed", "down", "crying", "tears", "hurt", "pain", "lonely",
    )),
    (EmotionCategory.ANXIETY, _words(
        "anxious", "worried", "nervous", "scared", "panic", "stress", "stressed", "overwhelming",
        "overwhelmed",
    )),
    (EmotionCategory.ANGER, _words(
        "angry", "mad", "frustrated", "annoyed", "pissed", "hate", "furious",
    )),
    (EmotionCategory.PEACE, _words(
        "calm", "peaceful", "relaxed", "serene", "content", "tranquil",
    )),
    (EmotionCategory.LOVE, _words(
        "care", "affection", "adore", "cherish", "romantic", "connection",
    )),
    (EmotionCategory.CONFUSION, _words(
        "confused", "lost", "unsure", "uncertain", "don't know", "dont know", "unclear",
    )),
)

INTENSIFIER_PATTERN = _words("very", "really", "so", "extremely")
URGENCY_PATTERN = _words("need", "must", "have to", "desperate")

HIDDEN_EMOTION_PATTERNS: Tuple[Tuple[HiddenEmotion, Pattern], ...] = (
    (HiddenEmotion.AMBIVALENCE, _words("but", "although", "however", "though")),
    (HiddenEmotion.UNCERTAINTY, _words("maybe", "perhaps", "might", "possibly")),
    (HiddenEmotion.GUILT, _words("sorry", "apologize", "apologise", "my fault")),
    (HiddenEmotion.LONGING, _words("wish", "hope", "dream", "if only")),
)

NEED_PATTERNS: Tuple[Tuple[EmotionalNeed, Pattern], ...] = (
    (EmotionalNeed.SUPPORT, _words("help", "support", "need someone", "talk")),
    (EmotionalNeed.UNDERSTANDING, _words("understand", "get me", "listen", "hear me")),
    (EmotionalNeed.CONNECTION, _words("alone", "lonely", "miss", "isolated")),
    (EmotionalNeed.GUIDANCE, _words("advice", "what should", "what do you think", "suggest")),
)

CANDOUR_PATTERN = _words("honestly", "truth is", "confession", "admit")
VULNERABILITY_PATTERN = _words("scared", "vulnerable", "opening up", "trust you")

# Phrase classes with their severity. Severity is combined as a running max.
CRISIS_PHRASES = MappingProxyType({
    CrisisIndicator.SUICIDAL_IDEATION: (10, _words(
        "kill myself", "suicide", "suicidal", "end my life", "want to die",
        "better off dead", "no reason to live",
    )),
    CrisisIndicator.SELF_HARM: (9, _words(
        "hurt myself", "self harm", "self-harm", "cut myself", "cutting myself", "burning myself",
    )),
    CrisisIndicator.VIOLENCE: (8, _words("hurt someone", "kill someone", "kill them")),
    CrisisIndicator.MEDICAL_EMERGENCY: (8, _words("overdose", "overdosed", "can't breathe", "chest pain")),
    CrisisIndicator.ABUSE: (8, _words("being abused", "hitting me", "can't escape")),
    CrisisIndicator.HOPELESSNESS: (6, _words("hopeless", "no point", "give up", "worthless")),
})
