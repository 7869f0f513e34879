"""Domain enums for rule operators, window modes and fetch states."""

from enum import Enum


class ComparisonOp(str, Enum):
    """Comparison operator enum."""

    EQ = "="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


# Operators allowed in the secondary clause of a compound rule
SECONDARY_OPS = frozenset({ComparisonOp.LT, ComparisonOp.LE, ComparisonOp.GT, ComparisonOp.GE})


class WindowMode(str, Enum):
    """Time window mode enum."""

    INSTANT = "instant"
    RANGE = "range"


class FetchState(str, Enum):
    """Per-fetch state machine states."""

    PENDING = "pending"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FALLBACK_SYNTHESIZED = "fallback_synthesized"
