"""
Emotion & crisis analyzer.

Pure, synchronous, heuristic reading of a single user message. The
crisis pass is pluggable; several detectors can be combined and the most
severe reading wins.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

import structlog

from ..config import EmotionalNeed, EmotionCategory, ResponseUrgency
from ..models import (
    CRISIS_SEVERITY_THRESHOLD,
    ConversationMessage,
    CrisisAssessment,
    SentimentAssessment,
)
from .patterns import (
    CANDOUR_PATTERN,
    CRISIS_PHRASES,
    HIDDEN_EMOTION_PATTERNS,
    INTENSIFIER_PATTERN,
    NEED_PATTERNS,
    PRIMARY_EMOTION_PATTERNS,
    URGENCY_PATTERN,
    VULNERABILITY_PATTERN,
)

logger = structlog.get_logger(__name__)


BASELINE_INTENSITY = 5
MAX_INTENSITY = 10
HIGH_URGENCY_INTENSITY = 8
LONG_MESSAGE_CHARS = 200
DISCLOSURE_MESSAGE_CHARS = 150
SUSTAINED_DISCLOSURE_TURNS = 3


class CrisisDetector(ABC):
    """Detects crisis signals in a message."""

    @abstractmethod
    def assess(self, text: str) -> CrisisAssessment:
        """Return the severity and indicators found in ``text``."""
        pass


class PhraseCrisisDetector(CrisisDetector):
    """Phrase-table detector. Severity is the max over matched classes."""

    def __init__(self, phrases=CRISIS_PHRASES):
        self._phrases = phrases

    def assess(self, text: str) -> CrisisAssessment:
        severity = 0
        indicators = set()
        for indicator, (class_severity, pattern) in self._phrases.items():
            if pattern.search(text):
                indicators.add(indicator)
                severity = max(severity, class_severity)
        return CrisisAssessment(severity=severity, indicators=frozenset(indicators))


class CompositeCrisisDetector(CrisisDetector):
    """Combines detectors; the most severe reading wins."""

    def __init__(self, detectors: Iterable[CrisisDetector]):
        self.detectors: List[CrisisDetector] = list(detectors)
        if not self.detectors:
            raise ValueError("At least one crisis detector is required")

    def assess(self, text: str) -> CrisisAssessment:
        severity = 0
        indicators = set()
        for detector in self.detectors:
            result = detector.assess(text)
            severity = max(severity, result.severity)
            indicators.update(result.indicators)
        return CrisisAssessment(severity=severity, indicators=frozenset(indicators))


def urgency_for(crisis: CrisisAssessment, intensity: int) -> ResponseUrgency:
    """Crisis severity overrides every other urgency signal."""
    if crisis.severity >= CRISIS_SEVERITY_THRESHOLD:
        return ResponseUrgency.CRISIS
    if intensity > HIGH_URGENCY_INTENSITY:
        return ResponseUrgency.HIGH
    return ResponseUrgency.NORMAL


class EmotionAnalyzer:
    """
    Heuristic sentiment analyzer.

    analyze() never raises for string input and has no side effects, so
    it is safe to call repeatedly and from worker threads.
    """

    def __init__(self, crisis_detector: Optional[CrisisDetector] = None):
        self.crisis_detector = crisis_detector or PhraseCrisisDetector()

    def analyze(
        self,
        text: str,
        recent_history: Sequence[ConversationMessage] = (),
    ) -> SentimentAssessment:
        """Produce a full sentiment assessment for one message."""
        if not text or not text.strip():
            return SentimentAssessment.neutral()

        primary = self.quick_emotion(text)
        intensity = self.score_intensity(text)
        crisis = self.assess_crisis(text)

        hidden = frozenset(
            emotion for emotion, pattern in HIDDEN_EMOTION_PATTERNS if pattern.search(text)
        )
        needs = frozenset(
            need for need, pattern in NEED_PATTERNS if pattern.search(text)
        ) or frozenset({EmotionalNeed.COMPANIONSHIP})

        return SentimentAssessment(
            primary_emotion=primary,
            intensity=intensity,
            hidden_emotions=hidden,
            needs=needs,
            authenticity=self.score_authenticity(text, recent_history),
            crisis=crisis,
            urgency=urgency_for(crisis, intensity),
        )

    def assess_crisis(self, text: str) -> CrisisAssessment:
        """Run only the crisis pass."""
        if not text:
            return CrisisAssessment()
        return self.crisis_detector.assess(text)

    @staticmethod
    def quick_emotion(text: str) -> EmotionCategory:
        """First matching category in table order, else neutral."""
        for category, pattern in PRIMARY_EMOTION_PATTERNS:
            if pattern.search(text):
                return category
        return EmotionCategory.NEUTRAL

    @staticmethod
    def score_intensity(text: str) -> int:
        intensity = BASELINE_INTENSITY

        exclamations = text.count("!")
        if exclamations:
            intensity += 1
        if exclamations >= 3:
            intensity += 1
        if INTENSIFIER_PATTERN.search(text):
            intensity += 2
        if len(text) > LONG_MESSAGE_CHARS:
            intensity += 1
        if URGENCY_PATTERN.search(text):
            intensity += 2

        return max(0, min(MAX_INTENSITY, intensity))

    @staticmethod
    def score_authenticity(
        text: str,
        recent_history: Sequence[ConversationMessage] = (),
    ) -> float:
        authenticity = 0.5

        if CANDOUR_PATTERN.search(text):
            authenticity += 0.2
        if VULNERABILITY_PATTERN.search(text):
            authenticity += 0.3
        if len(text) > DISCLOSURE_MESSAGE_CHARS:
            authenticity += 0.1

        previous_user_turns = [m for m in recent_history if m.is_user][-SUSTAINED_DISCLOSURE_TURNS:]
        if any(VULNERABILITY_PATTERN.search(m.content) for m in previous_user_turns):
            authenticity += 0.1

        return min(1.0, round(authenticity, 3))
