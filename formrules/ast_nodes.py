"""Condition and computed-value nodes, all frozen (immutable) dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

class Operator(str, Enum):
    """Comparison operators usable in a leaf condition."""
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    EQ = "==="
    NE = "!=="
    EMPTY = "∅"
    NOT_EMPTY = "!∅"
    INCLUDES = "includes"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    MATCH = "match"

    @property
    def is_unary(self) -> bool:
        return self in (Operator.EMPTY, Operator.NOT_EMPTY)

    def __str__(self) -> str:
        return self.value


class ComparisonType(str, Enum):
    """How a group combines its children."""
    AND = "and"
    OR = "or"

    def __str__(self) -> str:
        return self.value


class ArithmeticOperator(str, Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    def __str__(self) -> str:
        return self.value


def _raw(value: Any) -> Any:
    """Unwrap enum members so dicts stay JSON-serializable."""
    if isinstance(value, Enum):
        return value.value
    return value


# ---------------------------------------------------------------------------
# Condition tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConditionValue:
    """A leaf: compare values[field] to value using condition.

    ``condition`` is an Operator for validated trees; leniently built trees
    may carry the raw string of an unknown operator.
    """
    field: str
    condition: Operator | str
    value: Any = None  # literal or "$fieldRef"; unused for ∅ / !∅
    message: str | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"field": self.field, "condition": _raw(self.condition)}
        unary = self.condition in (Operator.EMPTY, Operator.NOT_EMPTY)
        if self.value is not None or not unary:
            d["value"] = self.value
        if self.message is not None:
            d["message"] = self.message
        return d


@dataclass(frozen=True)
class ConditionGroup:
    """A branch combining children with and/or."""
    comparison_type: ComparisonType | str
    children: tuple[Condition, ...]

    def to_dict(self) -> dict:
        return {
            "comparisonType": _raw(self.comparison_type),
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class InvalidCondition:
    """A node that is neither a leaf nor a group. Always evaluates false."""
    raw: Any
    reason: str

    def to_dict(self) -> Any:
        return self.raw


Condition = Union[ConditionGroup, ConditionValue, InvalidCondition]


# ---------------------------------------------------------------------------
# Computed values
# ---------------------------------------------------------------------------

# A literal scalar or a "$fieldRef" string
ComputedOperand = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class ArithmeticExpression:
    """left <operator> right, where both operands may be field references."""
    left: ComputedOperand
    operator: ArithmeticOperator | str
    right: ComputedOperand

    def to_dict(self) -> dict:
        return {"left": self.left, "operator": _raw(self.operator), "right": self.right}


ComputedResultValue = Union[ComputedOperand, ArithmeticExpression]


@dataclass(frozen=True)
class ComputedCase:
    """One (condition, value) pair; the first matching case wins."""
    condition: Condition | None  # None always matches
    value: ComputedResultValue

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"value": _result_to_raw(self.value)}
        if self.condition is not None:
            d["condition"] = self.condition.to_dict()
        return d


@dataclass(frozen=True)
class ComputedValueConfig:
    """Ordered cases plus an optional default.

    ``has_default`` distinguishes an explicit ``default: null`` from an
    absent default; without one, a miss leaves the target field untouched.
    """
    cases: tuple[ComputedCase, ...] = ()
    default: ComputedResultValue = None
    has_default: bool = False

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"cases": [c.to_dict() for c in self.cases]}
        if self.has_default:
            d["default"] = _result_to_raw(self.default)
        return d


@dataclass(frozen=True)
class ComputedUpdate:
    """Outcome of a computed-value evaluation."""
    should_update: bool
    value: Any = None

    def to_dict(self) -> dict:
        if not self.should_update:
            return {"shouldUpdate": False}
        return {"shouldUpdate": True, "value": self.value}


NO_UPDATE = ComputedUpdate(should_update=False)


def _result_to_raw(value: ComputedResultValue) -> Any:
    if isinstance(value, ArithmeticExpression):
        return value.to_dict()
    return value
