"""Shared pytest fixtures for testing."""

import random
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from companion_core.config import Archetype, Settings, SubscriptionTier
from companion_core.llm.mock import MockGenerationClient
from companion_core.models import ConversationMessage, RelationshipState, UserProfile
from companion_core.modulation import ModulationSessions
from companion_core.orchestrator import CompanionOrchestrator
from companion_core.store.memory import InMemoryStore


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float = 0.0):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fixed_rng():
    """Factory for random sources with a fixed ``random()`` value."""
    return FixedRandom


# =============================================================================
# Settings & Profiles
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def new_user() -> UserProfile:
    """A first-contact free user."""
    return UserProfile(user_id="usr_new")


@pytest.fixture
def bonded_user() -> UserProfile:
    """A free user with an established relationship."""
    return UserProfile(
        user_id="usr_bonded",
        archetype=Archetype.WARM_EMPATH,
        relationship=RelationshipState(trust_level=50.0, interaction_count=10),
    )


@pytest.fixture
def paid_user() -> UserProfile:
    """A premium subscriber."""
    return UserProfile(
        user_id="usr_paid",
        archetype=Archetype.DEEP_THINKER,
        subscription=SubscriptionTier.PREMIUM,
        relationship=RelationshipState(trust_level=20.0, interaction_count=3),
    )


@pytest.fixture
def store(new_user, bonded_user, paid_user) -> InMemoryStore:
    return InMemoryStore([new_user, bonded_user, paid_user])


@pytest.fixture
def history() -> List[ConversationMessage]:
    """A short conversation with a vulnerable disclosure."""
    return [
        ConversationMessage(role="user", content="I've been so stressed about work lately"),
        ConversationMessage(role="assistant", content="That sounds heavy. What's going on?"),
        ConversationMessage(role="user", content="Honestly I'm scared I'm not good enough"),
        ConversationMessage(role="assistant", content="Thank you for trusting me with that."),
        ConversationMessage(role="user", content="I'm learning to be kinder to myself though"),
        ConversationMessage(role="assistant", content="I love hearing that."),
    ]


# =============================================================================
# Orchestrator Fixtures
# =============================================================================


@pytest.fixture
def generator() -> MockGenerationClient:
    return MockGenerationClient()


@pytest_asyncio.fixture
async def orchestrator(store, settings, generator) -> AsyncGenerator[CompanionOrchestrator, None]:
    """Orchestrator with deterministic randomness and no enrichment flourishes."""
    engine = CompanionOrchestrator(
        store,
        settings=settings,
        generator=generator,
        rng=FixedRandom(0.0),
    )
    yield engine
    await engine.shutdown()


# =============================================================================
# API Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(orchestrator) -> AsyncGenerator[FastAPI, None]:
    """Create test FastAPI application with its lifespan running."""
    from companion_core.main import create_app

    orchestrator.modulation = ModulationSessions(rng=FixedRandom(0.0))
    application = create_app(orchestrator=orchestrator)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
