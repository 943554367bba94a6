"""Relationship scoring and trust."""

from .tracker import (
    RESONANCE_WEIGHTS,
    RelationshipTracker,
    compute_trust_delta,
    connection_label,
    milestone_for,
)

__all__ = [
    "RESONANCE_WEIGHTS",
    "RelationshipTracker",
    "compute_trust_delta",
    "connection_label",
    "milestone_for",
]
