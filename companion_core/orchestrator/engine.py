"""
Companion response orchestrator.

Turns a user message plus history into a reply:

    cache check -> fan-out (profile, analysis, memories, resonance, weather)
    -> crisis gate | context build -> generate -> enrich
    -> return -> background persistence

Every fan-out branch has a typed fallback, so one failing dependency
degrades the reply instead of failing it. The crisis pass runs before
any cache read and cannot be bypassed.
"""

import asyncio
import random
import time
from dataclasses import replace
from typing import Any, Optional, Sequence

import structlog

from ..cache.memory_cache import LRUCache
from ..cache.response_cache import ResponseCache
from ..config import ModelTier, Settings, get_settings
from ..emotion.analyzer import EmotionAnalyzer, urgency_for
from ..emotion.weather import GUARDIAN_STORM, WeatherForecaster
from ..errors import GenerationTimeoutError
from ..llm import create_client
from ..llm.base import GenerationClient, GenerationRequest
from ..llm.tiers import model_for_tier, select_model_tier, temperature_for
from ..memory.adapter import MemoryAdapter
from ..models import (
    CompanionResponse,
    ConversationMessage,
    CrisisAssessment,
    SentimentAssessment,
    UserProfile,
)
from ..modulation.engine import VOICE_EMOTION_BY_CATEGORY, ModulationContext, ModulationSessions
from ..relationship.tracker import RelationshipTracker, compute_trust_delta
from ..store.base import PersistentStore
from ..store.memory import InMemoryStore
from ..store.cooldown import CooldownStore, InMemoryCooldownStore, RedisCooldownStore
from .context import ContextBuilder
from .conversion import ConversionEvaluator
from .crisis import CrisisResponder
from .enrichment import Enricher
from .persistence import PersistenceQueue
from .state import EngineMetrics, OrchestratorState, TurnContext

logger = structlog.get_logger(__name__)


FALLBACK_REPLY = "I'm here with you. Tell me more about what you're feeling."

_S = OrchestratorState


def create_cooldown_store(settings: Settings) -> CooldownStore:
    if settings.conversion.cooldown_backend == "redis":
        return RedisCooldownStore(url=settings.conversion.redis_url)
    return InMemoryCooldownStore()


class CompanionOrchestrator:
    """
    Orchestrates one companion turn.

    All collaborators are injected; anything omitted is built from
    settings. Caches live on the instance, so separate orchestrators
    never share state.
    """

    def __init__(
        self,
        store: PersistentStore,
        *,
        settings: Optional[Settings] = None,
        generator: Optional[GenerationClient] = None,
        analyzer: Optional[EmotionAnalyzer] = None,
        memory: Optional[MemoryAdapter] = None,
        relationships: Optional[RelationshipTracker] = None,
        response_cache: Optional[ResponseCache] = None,
        weather: Optional[WeatherForecaster] = None,
        cooldowns: Optional[CooldownStore] = None,
        persistence: Optional[PersistenceQueue] = None,
        modulation: Optional[ModulationSessions] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings
        self.rng = rng or random.Random()

        self.store = store
        self.generator = generator or create_client(s.generation)
        self.analyzer = analyzer or EmotionAnalyzer()
        self.memory = memory or MemoryAdapter(
            store,
            config=s.memory,
            cache=LRUCache(max_size=s.cache.memory_max_entries, default_ttl=s.cache.memory_ttl_seconds),
            cache_ttl_seconds=s.cache.memory_ttl_seconds,
        )
        self.relationships = relationships or RelationshipTracker(
            store, LRUCache(max_size=s.cache.resonance_max_entries)
        )
        self.response_cache = response_cache or ResponseCache(
            LRUCache(max_size=s.cache.response_max_entries, default_ttl=s.cache.response_ttl_seconds),
            ttl_seconds=s.cache.response_ttl_seconds,
        )
        self.weather = weather or WeatherForecaster(self.analyzer, ttl_seconds=s.cache.weather_ttl_seconds)
        self.persistence = persistence or PersistenceQueue()
        self.modulation = modulation

        self.context_builder = ContextBuilder(history_turns=s.generation.history_turns)
        self.crisis = CrisisResponder(self.generator, s.generation)
        self.enricher = Enricher(self.rng)
        self.conversion = ConversionEvaluator(
            cooldowns or create_cooldown_store(s), s.conversion, self.rng
        )

        self.metrics = EngineMetrics()
        self.last_turn: Optional[TurnContext] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[PersistentStore] = None,
        **overrides,
    ) -> "CompanionOrchestrator":
        """Build an orchestrator with an in-memory store unless one is given."""
        settings = settings or get_settings()
        return cls(store or InMemoryStore(), settings=settings, **overrides)

    async def start(self) -> None:
        await self.persistence.start()

    async def shutdown(self) -> None:
        await self.persistence.stop(drain=True)
        await self.generator.close()
        await self.conversion.cooldowns.close()

    def get_metrics(self) -> dict:
        return {
            "engine": self.metrics.to_dict(),
            "persistence": self.persistence.stats.to_dict(),
            "response_cache": self.response_cache.backend.stats.to_dict(),
        }

    # =========================================================================
    # Turn
    # =========================================================================

    async def respond(
        self,
        text: str,
        user_id: str,
        history: Sequence[ConversationMessage] = (),
        session_id: Optional[str] = None,
    ) -> CompanionResponse:
        """Produce the companion's reply to one user message."""
        start = time.perf_counter()
        turn = TurnContext(user_id=user_id)
        self.last_turn = turn
        history = list(history)
        log = logger.bind(user_id=user_id)

        # CACHE_CHECK: crisis screening precedes any cache read.
        turn.transition(_S.CACHE_CHECK)
        crisis_screen = self._screen(text, turn)
        if crisis_screen is not None and not crisis_screen.is_crisis:
            cached = await self.response_cache.lookup(text, user_id)
            if cached is not None:
                turn.cache_hit = True
                if session_id is not None and self.modulation is not None:
                    cached = await self._remodulate(cached, user_id, history, session_id)
                turn.transition(_S.RETURN)
                turn.transition(_S.IDLE)
                self._finish(turn, start)
                log.debug("Response served from cache")
                return cached
        if crisis_screen is None:
            crisis_screen = CrisisAssessment()

        # FANOUT
        turn.transition(_S.FANOUT)
        profile, sentiment, memories, resonance, weather = await self._fanout(text, user_id, history, turn)

        if sentiment.is_crisis or crisis_screen.is_crisis:
            if not sentiment.is_crisis:
                sentiment = self._as_crisis(sentiment, crisis_screen)
            return await self._crisis_turn(text, profile, sentiment, history, turn, start)

        # CONTEXT_BUILD
        turn.transition(_S.CONTEXT_BUILD)
        tier = select_model_tier(sentiment.urgency, profile.subscription)
        gen = self.settings.generation
        request = GenerationRequest(
            system_prompt=self.context_builder.build_system_prompt(
                profile, sentiment, memories, resonance, weather
            ),
            user_message=text,
            model=model_for_tier(tier, gen),
            model_tier=tier,
            history=self.context_builder.recent_history(history),
            temperature=temperature_for(profile.archetype),
            max_tokens=gen.max_tokens,
            presence_penalty=gen.presence_penalty,
            frequency_penalty=gen.frequency_penalty,
        )

        # GENERATE
        turn.transition(_S.GENERATE)
        reply = await self._generate(request, turn)

        # ENRICH
        turn.transition(_S.ENRICH)
        if not turn.generation_failed:
            reply = self.enricher.enrich(reply, profile, memories, weather)
        activity = self.enricher.suggest_activity(profile, sentiment)
        delay = self.enricher.suggested_delay_ms(profile.archetype, sentiment.urgency)
        convert = await self.conversion.evaluate(profile, sentiment, resonance)
        if convert:
            self.metrics.conversion_triggers += 1

        response = CompanionResponse(
            content=reply,
            sentiment=sentiment,
            suggested_delay_ms=delay,
            should_trigger_conversion=convert,
            model_tier=tier,
            resonance=resonance,
            weather=weather,
            bonding_activity=activity,
            modulation=self._modulate(reply, profile, sentiment, history, session_id),
        )

        # RETURN, then ASYNC_PERSIST in the background.
        turn.transition(_S.RETURN)
        self._persist(text, profile, sentiment, response, resonance, cache=not turn.generation_failed)
        turn.transition(_S.ASYNC_PERSIST)
        turn.transition(_S.IDLE)
        self._finish(turn, start)
        return response

    # =========================================================================
    # Stages
    # =========================================================================

    def _screen(self, text: str, turn: TurnContext) -> Optional[CrisisAssessment]:
        """Early crisis pass; ``None`` when the detector failed."""
        try:
            return self.analyzer.assess_crisis(text)
        except Exception as e:
            turn.branch_failures.append("crisis_screen")
            logger.warning(
                "Crisis screen failed, skipping cache",
                user_id=turn.user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _remodulate(self, cached, user_id, history, session_id) -> CompanionResponse:
        """Voice a cached reply for the caller's own session."""
        try:
            profile = await self._load_profile(user_id)
        except Exception as e:
            logger.warning("Profile load failed on cache hit", user_id=user_id, error=str(e))
            profile = UserProfile.default(user_id, self.settings.companion_name)
        modulation = self._modulate(cached.content, profile, cached.sentiment, history, session_id)
        return replace(cached, modulation=modulation)

    async def _fanout(
        self,
        text: str,
        user_id: str,
        history: Sequence[ConversationMessage],
        turn: TurnContext,
    ):
        profile_task = asyncio.ensure_future(self._load_profile(user_id))
        analysis_task = asyncio.ensure_future(asyncio.to_thread(self.analyzer.analyze, text, history))

        async def resonance_branch():
            profile = await self._settled(profile_task, UserProfile.default(user_id))
            if profile.trust_level <= self.settings.resonance_min_trust:
                return None
            sentiment = await self._settled(analysis_task, SentimentAssessment.neutral())
            return await self.relationships.compute_resonance(profile, text, sentiment, history)

        async def weather_branch():
            profile = await self._settled(profile_task, UserProfile.default(user_id))
            if profile.relationship.interaction_count <= self.settings.weather_min_interactions:
                return None
            return await self.weather.forecast_for(user_id, history)

        results = await asyncio.gather(
            profile_task,
            analysis_task,
            self.memory.retrieve(text, user_id),
            resonance_branch(),
            weather_branch(),
            return_exceptions=True,
        )

        profile = self._extract(results[0], UserProfile.default(user_id, self.settings.companion_name), "profile", turn)
        sentiment = self._extract(results[1], SentimentAssessment.neutral(), "analysis", turn)
        memories = self._extract(results[2], [], "memory", turn)
        resonance = self._extract(results[3], None, "resonance", turn)
        weather = self._extract(results[4], None, "weather", turn)
        return profile, sentiment, memories, resonance, weather

    async def _load_profile(self, user_id: str) -> UserProfile:
        profile = await self.store.get_profile(user_id)
        if profile is None:
            logger.info("Unknown user, using default profile", user_id=user_id)
            return UserProfile.default(user_id, self.settings.companion_name)
        return profile

    @staticmethod
    async def _settled(task: "asyncio.Future", fallback: Any) -> Any:
        """Await a shared branch, substituting ``fallback`` if it failed."""
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            return fallback

    @staticmethod
    def _extract(result: Any, fallback: Any, branch: str, turn: TurnContext) -> Any:
        if isinstance(result, BaseException):
            turn.branch_failures.append(branch)
            logger.warning(
                "Fan-out branch failed",
                user_id=turn.user_id,
                branch=branch,
                error=str(result),
                error_type=type(result).__name__,
            )
            return fallback
        return result

    @staticmethod
    def _as_crisis(sentiment: SentimentAssessment, crisis) -> SentimentAssessment:
        """Fold an early crisis screen into a sentiment that missed it."""
        return replace(sentiment, crisis=crisis, urgency=urgency_for(crisis, sentiment.intensity))

    async def _generate(self, request: GenerationRequest, turn: TurnContext) -> str:
        timeout = self.settings.generation.timeout_seconds
        try:
            response = await asyncio.wait_for(self.generator.generate(request), timeout=timeout)
            text = response.text.strip()
            if not text:
                raise ValueError("Empty generation")
            return text
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            error = GenerationTimeoutError(timeout)
            logger.error("Generation timed out", user_id=turn.user_id, model=request.model, error=str(error))
            turn.generation_failed = True
            return FALLBACK_REPLY
        except Exception as e:
            logger.error("Generation failed", user_id=turn.user_id, model=request.model, error=str(e))
            turn.generation_failed = True
            return FALLBACK_REPLY

    async def _crisis_turn(
        self,
        text: str,
        profile: UserProfile,
        sentiment: SentimentAssessment,
        history: Sequence[ConversationMessage],
        turn: TurnContext,
        start: float,
    ) -> CompanionResponse:
        turn.crisis = True
        turn.transition(_S.CRISIS_GATE)
        reply = await self.crisis.respond(text, profile, sentiment, history)

        response = CompanionResponse(
            content=reply,
            sentiment=sentiment,
            suggested_delay_ms=0,
            should_trigger_conversion=False,
            model_tier=ModelTier.PREMIUM,
            weather=GUARDIAN_STORM,
        )

        turn.transition(_S.RETURN)
        self._persist(text, profile, sentiment, response, resonance=None, cache=False)
        turn.transition(_S.ASYNC_PERSIST)
        turn.transition(_S.IDLE)
        self._finish(turn, start)
        return response

    def _modulate(self, reply, profile, sentiment, history, session_id):
        if self.modulation is None or session_id is None:
            return None
        if session_id not in self.modulation:
            self.modulation.start_session(session_id, profile.archetype)
        engine = self.modulation.get(session_id)
        recent = [
            VOICE_EMOTION_BY_CATEGORY[self.analyzer.quick_emotion(m.content)]
            for m in history if m.is_user
        ]
        recent.append(VOICE_EMOTION_BY_CATEGORY[sentiment.primary_emotion])
        context = ModulationContext.from_assessment(sentiment, profile.trust_level, recent)
        return engine.next_parameters(reply, context)

    def _persist(self, text, profile, sentiment, response, resonance, cache: bool) -> None:
        user_id = profile.user_id
        self.persistence.submit(
            "memory_write",
            user_id,
            lambda: self.memory.store_memory(user_id, text, response.content, sentiment),
        )
        delta = compute_trust_delta(sentiment, resonance)
        self.persistence.submit(
            "trust_update",
            user_id,
            lambda: self.relationships.apply_trust_delta(user_id, delta, previous=profile.relationship),
        )
        if cache:
            key = self.response_cache.key_for(text, user_id)
            # Replays never re-show an upgrade prompt; the cooldown owns that.
            # Voice parameters belong to a session and are rebuilt on each hit.
            cached = replace(response, should_trigger_conversion=False, modulation=None)
            self.persistence.submit(
                "cache_store",
                user_id,
                lambda: self.response_cache.set(key, cached),
            )

    def _finish(self, turn: TurnContext, start: float) -> None:
        latency_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_turn(turn, latency_ms)
        logger.info(
            "Turn complete",
            user_id=turn.user_id,
            path=[s.value for s in turn.states],
            cache_hit=turn.cache_hit,
            crisis=turn.crisis,
            branch_failures=turn.branch_failures,
            latency_ms=round(latency_ms, 2),
        )
