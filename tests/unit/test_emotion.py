"""Unit tests for the emotion and crisis analyzer."""

import pytest

from companion_core.config import (
    CrisisIndicator,
    EmotionalNeed,
    EmotionCategory,
    HiddenEmotion,
    ResponseUrgency,
)
from companion_core.emotion import (
    CompositeCrisisDetector,
    CrisisDetector,
    EmotionAnalyzer,
    PhraseCrisisDetector,
    urgency_for,
)
from companion_core.models import ConversationMessage, CrisisAssessment


class BridgeDetector(CrisisDetector):
    """Detector that only knows one phrase."""

    def assess(self, text: str) -> CrisisAssessment:
        if "bridge" in text.lower():
            return CrisisAssessment(severity=9, indicators=frozenset({CrisisIndicator.SUICIDAL_IDEATION}))
        return CrisisAssessment()


@pytest.fixture
def analyzer() -> EmotionAnalyzer:
    return EmotionAnalyzer()


# =============================================================================
# Primary Emotion Tests
# =============================================================================


class TestQuickEmotion:
    """Tests for primary emotion detection."""

    @pytest.mark.parametrize("text,expected", [
        ("I'm so happy today", EmotionCategory.JOY),
        ("I've been crying all night", EmotionCategory.SADNESS),
        ("I'm worried about tomorrow", EmotionCategory.ANXIETY),
        ("I'm furious with them", EmotionCategory.ANGER),
        ("I feel calm and relaxed", EmotionCategory.PEACE),
        ("I cherish our connection", EmotionCategory.LOVE),
        ("I'm confused about everything", EmotionCategory.CONFUSION),
        ("The meeting moved to Thursday", EmotionCategory.NEUTRAL),
    ])
    def test_categories(self, text, expected):
        """Test each category is detected from its keywords."""
        assert EmotionAnalyzer.quick_emotion(text) == expected

    def test_first_match_wins(self):
        """Test that table order resolves messages with several emotions."""
        assert EmotionAnalyzer.quick_emotion("I'm happy but also sad") == EmotionCategory.JOY
        assert EmotionAnalyzer.quick_emotion("sad and angry") == EmotionCategory.SADNESS

    def test_whole_words_only(self):
        """Test that keywords inside longer words do not match."""
        assert EmotionAnalyzer.quick_emotion("Madeleine baked bread") == EmotionCategory.NEUTRAL

    def test_case_insensitive(self):
        """Test matching ignores case."""
        assert EmotionAnalyzer.quick_emotion("I AM SO HAPPY") == EmotionCategory.JOY


# =============================================================================
# Intensity & Authenticity Tests
# =============================================================================


class TestIntensity:
    """Tests for intensity scoring."""

    @pytest.mark.parametrize("text,expected", [
        ("hello", 5),
        ("hi!", 6),
        ("wow!!!", 7),
        ("I am really tired", 7),
        ("I need a break", 7),
        ("I really need this!!!", 10),
    ])
    def test_scores(self, text, expected):
        """Test intensity contributions and the upper clamp."""
        assert EmotionAnalyzer.score_intensity(text) == expected

    def test_long_message(self):
        """Test long messages read as more intense."""
        assert EmotionAnalyzer.score_intensity("a" * 201) == 6


class TestAuthenticity:
    """Tests for authenticity scoring."""

    def test_baseline(self):
        """Test plain messages score the baseline."""
        assert EmotionAnalyzer.score_authenticity("hello") == 0.5

    def test_candour(self):
        """Test candour markers raise authenticity."""
        assert EmotionAnalyzer.score_authenticity("Honestly that's fine") == pytest.approx(0.7)

    def test_capped_at_one(self):
        """Test candour plus vulnerability is capped."""
        assert EmotionAnalyzer.score_authenticity("Honestly, I'm scared") == 1.0

    def test_recent_vulnerability(self):
        """Test a recent vulnerable user turn raises authenticity."""
        history = [
            ConversationMessage(role="user", content="I'm scared of losing this job"),
            ConversationMessage(role="assistant", content="That's a lot to carry."),
        ]
        assert EmotionAnalyzer.score_authenticity("okay", history) == pytest.approx(0.6)

    def test_assistant_turns_ignored(self):
        """Test only user turns count toward sustained disclosure."""
        history = [ConversationMessage(role="assistant", content="Are you scared?")]
        assert EmotionAnalyzer.score_authenticity("okay", history) == 0.5


# =============================================================================
# Full Analysis Tests
# =============================================================================


class TestAnalyze:
    """Tests for EmotionAnalyzer.analyze."""

    def test_empty_text_is_neutral(self, analyzer):
        """Test empty input yields the neutral assessment."""
        assert analyzer.analyze("") == analyzer.analyze("   ")
        assessment = analyzer.analyze("")
        assert assessment.primary_emotion == EmotionCategory.NEUTRAL
        assert assessment.needs == frozenset({EmotionalNeed.COMPANIONSHIP})

    def test_plain_message(self, analyzer):
        """Test a plain message defaults to companionship."""
        assessment = analyzer.analyze("hello there")

        assert assessment.primary_emotion == EmotionCategory.NEUTRAL
        assert assessment.intensity == 5
        assert assessment.needs == frozenset({EmotionalNeed.COMPANIONSHIP})
        assert assessment.urgency == ResponseUrgency.NORMAL
        assert assessment.crisis.severity == 0
        assert not assessment.is_crisis

    def test_hidden_emotions(self, analyzer):
        """Test hidden emotion detection."""
        assessment = analyzer.analyze("I want to go but maybe not")
        assert assessment.hidden_emotions == frozenset({
            HiddenEmotion.AMBIVALENCE,
            HiddenEmotion.UNCERTAINTY,
        })

    def test_needs(self, analyzer):
        """Test needs detection."""
        assessment = analyzer.analyze("I feel alone and need someone to talk to")
        assert assessment.needs == frozenset({EmotionalNeed.CONNECTION, EmotionalNeed.SUPPORT})
        assert assessment.intensity == 7

    def test_high_urgency(self, analyzer):
        """Test very intense messages are high urgency."""
        assessment = analyzer.analyze("I really need help!!!")
        assert assessment.intensity == 10
        assert assessment.urgency == ResponseUrgency.HIGH

    def test_deterministic(self, analyzer, history):
        """Test repeated analysis of the same input is identical."""
        text = "Honestly I feel lost but I hope it gets better"
        assert analyzer.analyze(text, history) == analyzer.analyze(text, history)


# =============================================================================
# Crisis Tests
# =============================================================================


class TestCrisisDetection:
    """Tests for the crisis pass."""

    def test_suicidal_ideation(self, analyzer):
        """Test suicidal ideation is a crisis at maximum severity."""
        assessment = analyzer.analyze("I want to kill myself")

        assert assessment.crisis.severity == 10
        assert CrisisIndicator.SUICIDAL_IDEATION in assessment.crisis.indicators
        assert assessment.urgency == ResponseUrgency.CRISIS
        assert assessment.is_crisis

    def test_hopelessness_below_threshold(self, analyzer):
        """Test hopelessness alone is flagged but not a crisis."""
        assessment = analyzer.analyze("I feel hopeless")

        assert assessment.crisis.severity == 6
        assert assessment.crisis.indicators == frozenset({CrisisIndicator.HOPELESSNESS})
        assert not assessment.is_crisis

    def test_severity_is_max(self, analyzer):
        """Test several indicator classes combine by maximum."""
        crisis = analyzer.assess_crisis("I feel hopeless and I want to hurt myself")

        assert crisis.severity == 9
        assert crisis.indicators == frozenset({
            CrisisIndicator.HOPELESSNESS,
            CrisisIndicator.SELF_HARM,
        })

    def test_crisis_overrides_intensity(self, analyzer):
        """Test a calm-sounding crisis message is still a crisis."""
        assessment = analyzer.analyze("i might overdose")
        assert assessment.intensity == 5
        assert assessment.urgency == ResponseUrgency.CRISIS

    def test_empty_text(self, analyzer):
        """Test empty text carries no crisis."""
        assert analyzer.assess_crisis("") == CrisisAssessment()


class TestUrgencyFor:
    """Tests for urgency derivation."""

    def test_threshold_inclusive(self):
        """Test severity 7 is already a crisis."""
        assert urgency_for(CrisisAssessment(severity=7), 1) == ResponseUrgency.CRISIS

    def test_intensity_drives_high(self):
        """Test intensity above 8 is high urgency."""
        assert urgency_for(CrisisAssessment(severity=6), 9) == ResponseUrgency.HIGH
        assert urgency_for(CrisisAssessment(), 8) == ResponseUrgency.NORMAL


class TestCompositeCrisisDetector:
    """Tests for pluggable crisis detection."""

    def test_requires_detectors(self):
        """Test an empty composite is rejected."""
        with pytest.raises(ValueError):
            CompositeCrisisDetector([])

    def test_max_over_detectors(self):
        """Test the most severe detector wins."""
        detector = CompositeCrisisDetector([PhraseCrisisDetector(), BridgeDetector()])

        result = detector.assess("I keep thinking about the bridge, I feel hopeless")

        assert result.severity == 9
        assert result.indicators == frozenset({
            CrisisIndicator.SUICIDAL_IDEATION,
            CrisisIndicator.HOPELESSNESS,
        })

    def test_analyzer_uses_custom_detector(self):
        """Test the analyzer delegates its crisis pass."""
        analyzer = EmotionAnalyzer(crisis_detector=BridgeDetector())

        assert analyzer.analyze("walking to the bridge").is_crisis
        assert not analyzer.analyze("I want to kill myself").is_crisis
