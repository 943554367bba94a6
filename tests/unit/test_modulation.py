"""Unit tests for sentiment-aware voice modulation."""

import pytest

from companion_core.config import (
    Archetype,
    EmotionCategory,
    EmotionTrend,
    ModulationConfig,
    VocalTicType,
    VoiceEmotion,
)
from companion_core.errors import SessionNotFoundError
from companion_core.models import ModulationVector, PauseMark, SentimentAssessment
from companion_core.modulation import (
    BASE_MODULATION,
    RESPONSE_MATRIX,
    ConversationMood,
    ModulationContext,
    ModulationEngine,
    ModulationSessions,
    emotional_trend,
    personality_for,
    vector_for,
)
from companion_core.modulation.personalities import GENTLE, INTELLECTUAL

E = VoiceEmotion


def context(emotion=E.SAD, intensity=0.5, trust=0.0, mood=None, recent=()):
    return ModulationContext(
        user_emotion=emotion,
        intensity=intensity,
        trust_level=trust,
        recent_emotions=recent,
        mood=mood or ConversationMood(),
    )


# =============================================================================
# Personality Tests
# =============================================================================


class TestPersonalities:
    """Tests for vocal personalities."""

    @pytest.mark.parametrize("archetype,voice_id", [
        (Archetype.ANXIOUS_ROMANTIC, "ella"),
        (Archetype.WARM_EMPATH, "ella"),
        (Archetype.GUARDED_INTELLECTUAL, "thomas"),
        (Archetype.DEEP_THINKER, "thomas"),
        (Archetype.PASSIONATE_CREATIVE, "nova"),
        (Archetype.SECURE_CONNECTOR, "adam"),
        (Archetype.PLAYFUL_EXPLORER, "kai"),
    ])
    def test_personality_for(self, archetype, voice_id):
        """Test every archetype maps to a personality."""
        assert personality_for(archetype).voice_id == voice_id

    def test_unranged_emotion_borrows(self):
        """Test emotions outside a range fall back to a neighbour."""
        assert vector_for(GENTLE, E.ANGRY) == vector_for(GENTLE, E.ANXIOUS)
        assert vector_for(GENTLE, E.NEUTRAL) == vector_for(GENTLE, E.CALM)

    def test_every_emotion_resolves(self):
        """Test each personality yields a vector for every voice emotion."""
        for emotion in VoiceEmotion:
            assert isinstance(vector_for(INTELLECTUAL, emotion), ModulationVector)


# =============================================================================
# Trend Tests
# =============================================================================


class TestEmotionalTrend:
    """Tests for emotional_trend."""

    def test_short_history_is_stable(self):
        """Test fewer than two emotions is stable."""
        assert emotional_trend([]) == EmotionTrend.STABLE
        assert emotional_trend([E.SAD]) == EmotionTrend.STABLE

    def test_improving(self):
        """Test two or more negative-to-positive steps is improving."""
        emotions = [E.SAD, E.HAPPY, E.NEUTRAL, E.ANGRY, E.EXCITED]
        assert emotional_trend(emotions) == EmotionTrend.IMPROVING

    def test_declining(self):
        """Test two or more positive-to-negative steps is declining."""
        emotions = [E.HAPPY, E.SAD, E.NEUTRAL, E.EXCITED, E.ANGRY]
        assert emotional_trend(emotions) == EmotionTrend.DECLINING

    def test_mixed_is_stable(self):
        """Test alternating steps cancel out."""
        assert emotional_trend([E.SAD, E.HAPPY, E.SAD, E.HAPPY]) == EmotionTrend.STABLE

    def test_window(self):
        """Test only the most recent emotions count."""
        emotions = [E.SAD, E.HAPPY, E.NEUTRAL, E.SAD, E.HAPPY, E.CALM, E.CALM, E.CALM, E.CALM]
        assert emotional_trend(emotions, window=10) == EmotionTrend.IMPROVING
        assert emotional_trend(emotions, window=5) == EmotionTrend.STABLE

    def test_response_matrix_covers_every_emotion(self):
        """Test each user emotion has a response for every trend."""
        for emotion in VoiceEmotion:
            assert set(RESPONSE_MATRIX[emotion]) == set(EmotionTrend)


# =============================================================================
# Engine Tests
# =============================================================================


class TestModulationEngine:
    """Tests for ModulationEngine."""

    def test_first_step(self, fixed_rng):
        """Test the first step moves from the base vector toward the target."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))

        params = engine.next_parameters("I'm here.", context())

        assert params.target_emotion == E.CALM
        assert params.trend == EmotionTrend.STABLE
        assert params.voice_id == "ella"
        assert params.vector.pitch_shift == pytest.approx(1.0)
        assert params.vector.rate_adjust == pytest.approx(0.955)
        assert params.vector.volume_adjust == pytest.approx(0.97)
        assert params.vector.breathiness == pytest.approx(0.26)
        assert params.pitch == pytest.approx(1.1)
        assert params.rate == pytest.approx(0.85 * 0.955)

    def test_smoothing_bound(self, fixed_rng):
        """Test each step covers exactly the adaptation fraction of the gap."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        target = vector_for(GENTLE, E.CALM)

        for _ in range(5):
            before = engine.state.as_tuple()
            after = engine.next_parameters("Okay.", context()).vector.as_tuple()
            for old, new, goal in zip(before, after, target.as_tuple()):
                assert new - old == pytest.approx((goal - old) * 0.3)
                assert abs(new - old) <= abs(goal - old)

    def test_converges_to_target(self, fixed_rng):
        """Test repeated identical input converges on the target vector."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        for _ in range(60):
            params = engine.next_parameters("Okay.", context())

        for value, goal in zip(params.vector.as_tuple(), vector_for(GENTLE, E.CALM).as_tuple()):
            assert value == pytest.approx(goal, abs=1e-6)

    def test_mirrors_intense_users(self, fixed_rng):
        """Test intense users are mirrored more as trust grows."""
        distant = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        close = ModulationEngine(GENTLE, rng=fixed_rng(0.99))

        low = distant.next_parameters("Okay.", context(intensity=0.9, trust=0.0))
        high = close.next_parameters("Okay.", context(intensity=0.9, trust=50.0))

        # boost = 0.9 * 0.5, smoothed by 0.3
        assert high.vector.pitch_shift - low.vector.pitch_shift == pytest.approx(0.045 * 0.3)
        assert high.vector.breathiness == pytest.approx(low.vector.breathiness)

    def test_uses_supplied_recent_emotions(self, fixed_rng):
        """Test a caller-supplied history drives the trend."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        recent = [E.HAPPY, E.SAD, E.NEUTRAL, E.EXCITED, E.SAD]

        params = engine.next_parameters("Okay.", context(emotion=E.SAD, recent=recent))

        assert params.trend == EmotionTrend.DECLINING
        assert params.target_emotion == E.SAD

    def test_sentence_pauses(self, fixed_rng):
        """Test pauses fall between sentences."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))

        params = engine.next_parameters("Hello there. How are you?", context())

        assert params.pauses == [PauseMark(position=12, duration_ms=400)]

    def test_deep_mood_pauses_longer(self, fixed_rng):
        """Test deep conversations pause longer between sentences."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        mood = ConversationMood(depth=0.6)

        params = engine.next_parameters("Hello there. How are you?", context(mood=mood))

        assert params.pauses[0].duration_ms == 800

    def test_emphasis(self, fixed_rng):
        """Test emotion keywords in the reply are stressed."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))

        params = engine.next_parameters("I'm sorry, that sounds hard.", context(intensity=0.6))

        assert [(s.start, s.end) for s in params.emphasis] == [(4, 9), (23, 27)]
        assert all(s.strength == pytest.approx(0.6) for s in params.emphasis)

    def test_no_tics_when_unlucky(self, fixed_rng):
        """Test tics are optional flourishes."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))
        mood = ConversationMood(depth=0.9)

        params = engine.next_parameters("That's wonderful news.", context(emotion=E.HAPPY, mood=mood))

        assert params.tics == []

    def test_tics_when_lucky(self, fixed_rng):
        """Test every eligible tic fires when chance allows."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.0))
        mood = ConversationMood(depth=0.9)

        params = engine.next_parameters("That's wonderful news.", context(emotion=E.HAPPY, mood=mood))

        kinds = [t.kind for t in params.tics]
        assert kinds == [VocalTicType.PAUSE, VocalTicType.LAUGH, VocalTicType.SIGH, VocalTicType.FILLER]
        assert params.tics[1].text == "soft"
        assert params.tics[3].text in GENTLE.characteristics.filler_words

    def test_soundscape_follows_mood(self, fixed_rng):
        """Test intimate moods pick intimate soundscapes."""
        engine = ModulationEngine(GENTLE, rng=fixed_rng(0.99))

        intimate = engine.next_parameters("Okay.", context(mood=ConversationMood(intimacy=0.9)))
        casual = engine.next_parameters("Okay.", context())

        assert intimate.soundscape in GENTLE.soundscapes.intimate
        assert casual.soundscape in GENTLE.soundscapes.casual


class TestModulationContext:
    """Tests for ModulationContext.from_assessment."""

    def test_from_assessment(self):
        """Test sentiment maps onto voice emotion and mood."""
        assessment = SentimentAssessment(
            primary_emotion=EmotionCategory.JOY,
            intensity=8,
            authenticity=0.7,
        )

        ctx = ModulationContext.from_assessment(assessment, trust_level=40.0)

        assert ctx.user_emotion == E.HAPPY
        assert ctx.intensity == pytest.approx(0.8)
        assert ctx.mood.depth == pytest.approx(0.7)
        assert ctx.mood.intimacy == pytest.approx(0.4)
        assert ctx.mood.playfulness == pytest.approx(0.8)


class TestModulationSessions:
    """Tests for ModulationSessions."""

    def test_start_and_get(self):
        """Test sessions are created per archetype."""
        sessions = ModulationSessions()

        engine = sessions.start_session("sess_1", Archetype.PLAYFUL_EXPLORER)

        assert sessions.get("sess_1") is engine
        assert engine.personality.voice_id == "kai"
        assert "sess_1" in sessions

    def test_unknown_session(self):
        """Test unknown sessions raise."""
        with pytest.raises(SessionNotFoundError):
            ModulationSessions().get("nope")

    def test_end_session(self):
        """Test ending a session removes it."""
        sessions = ModulationSessions()
        sessions.start_session("sess_1", Archetype.WARM_EMPATH)

        assert sessions.end_session("sess_1")
        assert not sessions.end_session("sess_1")
        assert len(sessions) == 0

    def test_sessions_are_independent(self, fixed_rng):
        """Test state in one session does not leak into another."""
        sessions = ModulationSessions(rng=fixed_rng(0.99))
        first = sessions.start_session("sess_1", Archetype.WARM_EMPATH)
        second = sessions.start_session("sess_2", Archetype.WARM_EMPATH)

        first.next_parameters("Okay.", context())

        assert second.state == BASE_MODULATION

    def test_restart_returns_to_base(self, fixed_rng):
        """Test only starting a session again clears its state."""
        sessions = ModulationSessions(rng=fixed_rng(0.99))
        engine = sessions.start_session("sess_1", Archetype.WARM_EMPATH)
        engine.next_parameters("Okay.", context())

        restarted = sessions.start_session("sess_1", Archetype.WARM_EMPATH)

        assert restarted is not engine
        assert restarted.state == BASE_MODULATION
        assert len(restarted.history) == 0

    def test_bounded(self):
        """Test the least recently used session is evicted."""
        sessions = ModulationSessions(ModulationConfig(max_sessions=2))
        sessions.start_session("sess_1", Archetype.WARM_EMPATH)
        sessions.start_session("sess_2", Archetype.WARM_EMPATH)
        sessions.get("sess_1")
        sessions.start_session("sess_3", Archetype.WARM_EMPATH)

        assert "sess_1" in sessions
        assert "sess_2" not in sessions
        assert len(sessions) == 2
