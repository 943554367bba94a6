"""Emotion and crisis analysis."""

from .analyzer import (
    CompositeCrisisDetector,
    CrisisDetector,
    EmotionAnalyzer,
    PhraseCrisisDetector,
    urgency_for,
)
from .weather import GUARDIAN_STORM, WeatherForecaster

__all__ = [
    "CompositeCrisisDetector",
    "CrisisDetector",
    "EmotionAnalyzer",
    "PhraseCrisisDetector",
    "urgency_for",
    "GUARDIAN_STORM",
    "WeatherForecaster",
]
