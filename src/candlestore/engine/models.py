"""Traversal state and step results for the pattern engine."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class NoActivePath:
    """No path entered yet: the next record is matched against root nodes."""


@dataclass(frozen=True)
class AtNode:
    """Positioned on a stored node; the next record is matched against its children.

    ``depth`` is 1 for a root node.
    """

    key: str
    depth: int


PathState = NoActivePath | AtNode


@dataclass
class StepResult:
    """Outcome of one submitted record.

    ``key`` is None only in lookup mode when nothing matched.
    """

    key: str | None
    created: bool
    matched: bool
    depth: int
    match_percentage: Decimal = Decimal("0")
    frequency: int = 1
