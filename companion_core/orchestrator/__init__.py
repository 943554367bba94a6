"""Turn orchestration: fan-out, crisis gate, generation, enrichment and persistence."""

from .context import ContextBuilder
from .conversion import ConversionEvaluator, active_triggers
from .crisis import CRISIS_RESOURCES, CrisisResponder, with_resources
from .engine import FALLBACK_REPLY, CompanionOrchestrator, create_cooldown_store
from .enrichment import Enricher
from .persistence import JobOutcome, PersistenceQueue
from .state import EngineMetrics, InvalidTransitionError, OrchestratorState, TurnContext

__all__ = [
    "CRISIS_RESOURCES",
    "FALLBACK_REPLY",
    "CompanionOrchestrator",
    "ContextBuilder",
    "ConversionEvaluator",
    "CrisisResponder",
    "EngineMetrics",
    "Enricher",
    "InvalidTransitionError",
    "JobOutcome",
    "OrchestratorState",
    "PersistenceQueue",
    "TurnContext",
    "active_triggers",
    "create_cooldown_store",
    "with_resources",
]
