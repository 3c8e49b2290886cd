"""Pattern engine orchestrating derivation, scoring and node persistence."""

from candlestore.engine.derive import compute_delta, compute_percent_change, derive_fields
from candlestore.engine.models import AtNode, NoActivePath, PathState, StepResult
from candlestore.engine.pattern_engine import PatternEngine

__all__ = [
    "AtNode",
    "NoActivePath",
    "PathState",
    "PatternEngine",
    "StepResult",
    "compute_delta",
    "compute_percent_change",
    "derive_fields",
]
