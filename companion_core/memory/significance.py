"""Scoring helpers for durable memory."""

import re
from typing import FrozenSet

from ..config import EmotionCategory
from ..models import SentimentAssessment

MAX_SIGNIFICANCE = 10.0

RESONANT_EMOTIONS = frozenset({
    EmotionCategory.LOVE,
    EmotionCategory.JOY,
    EmotionCategory.SADNESS,
})

_TOKEN = re.compile(r"[a-z0-9']+")


def calculate_significance(assessment: SentimentAssessment) -> float:
    """How memorable a turn is, 0-10."""
    significance = assessment.intensity / 2.0
    if assessment.authenticity > 0.7:
        significance += 2.0
    if assessment.is_crisis:
        significance += 5.0
    if assessment.primary_emotion in RESONANT_EMOTIONS:
        significance += 1.0
    return min(MAX_SIGNIFICANCE, significance)


def tokenize(text: str, min_length: int = 4) -> FrozenSet[str]:
    return frozenset(t for t in _TOKEN.findall(text.lower()) if len(t) >= min_length)


def relevance(query: str, content: str, min_length: int = 4) -> float:
    """Shared tokens over the union of both token sets."""
    left = tokenize(query, min_length)
    right = tokenize(content, min_length)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def memory_tags(assessment: SentimentAssessment) -> FrozenSet[str]:
    tags = {assessment.primary_emotion.value}
    tags.update(e.value for e in assessment.hidden_emotions)
    tags.update(i.value for i in assessment.crisis.indicators)
    return frozenset(tags)
