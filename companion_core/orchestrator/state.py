"""Turn state machine and engine metrics."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import structlog

logger = structlog.get_logger(__name__)


class OrchestratorState(str, Enum):
    """States a turn moves through."""

    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    FANOUT = "fanout"
    CRISIS_GATE = "crisis_gate"
    CONTEXT_BUILD = "context_build"
    GENERATE = "generate"
    ENRICH = "enrich"
    RETURN = "return"
    ASYNC_PERSIST = "async_persist"


_S = OrchestratorState

ALLOWED_TRANSITIONS = {
    _S.IDLE: {_S.CACHE_CHECK},
    _S.CACHE_CHECK: {_S.FANOUT, _S.RETURN},
    _S.FANOUT: {_S.CRISIS_GATE, _S.CONTEXT_BUILD},
    _S.CRISIS_GATE: {_S.RETURN},
    _S.CONTEXT_BUILD: {_S.GENERATE},
    _S.GENERATE: {_S.ENRICH},
    _S.ENRICH: {_S.RETURN},
    _S.RETURN: {_S.ASYNC_PERSIST, _S.IDLE},
    _S.ASYNC_PERSIST: {_S.IDLE},
}


class InvalidTransitionError(RuntimeError):
    pass


@dataclass
class TurnContext:
    """Bookkeeping for one orchestrated turn."""

    user_id: str
    state: OrchestratorState = OrchestratorState.IDLE
    states: List[OrchestratorState] = field(default_factory=lambda: [OrchestratorState.IDLE])
    branch_failures: List[str] = field(default_factory=list)
    cache_hit: bool = False
    crisis: bool = False
    generation_failed: bool = False

    def transition(self, target: OrchestratorState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state.value} -> {target.value}")
        logger.debug("Turn transition", user_id=self.user_id, source=self.state.value, target=target.value)
        self.state = target
        self.states.append(target)


@dataclass
class EngineMetrics:
    """Engine performance metrics."""

    turns: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    crisis_turns: int = 0
    branch_failures: int = 0
    generation_failures: int = 0
    conversion_triggers: int = 0
    avg_latency_ms: float = 0.0

    def record_turn(self, turn: TurnContext, latency_ms: float) -> None:
        self.turns += 1
        if turn.cache_hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        if turn.crisis:
            self.crisis_turns += 1
        if turn.generation_failed:
            self.generation_failures += 1
        self.branch_failures += len(turn.branch_failures)

        alpha = 0.1
        if self.turns == 1:
            self.avg_latency_ms = latency_ms
        else:
            self.avg_latency_ms = alpha * latency_ms + (1 - alpha) * self.avg_latency_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turns": self.turns,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "crisis_turns": self.crisis_turns,
            "branch_failures": self.branch_failures,
            "generation_failures": self.generation_failures,
            "conversion_triggers": self.conversion_triggers,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
        }
