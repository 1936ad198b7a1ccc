"""Lenient conversion of raw configuration (JSON/YAML mappings) into typed nodes.

Raw mappings use the camelCase keys of the configuration format:

    {"comparisonType": "and", "children": [
        {"field": "age", "condition": ">=", "value": 18, "message": "Too young"}]}

Building never fails on a malformed condition: the offending node becomes an
InvalidCondition, and unknown operators or comparison types are kept as raw
strings, so evaluation degrades to False instead of raising. Strict loading
(loader.py) runs the Validator over the result.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .ast_nodes import (
    ArithmeticExpression,
    ArithmeticOperator,
    ComparisonType,
    ComputedCase,
    ComputedResultValue,
    ComputedValueConfig,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
    Operator,
)
from .errors import SchemaError

_NODE_TYPES = (ConditionGroup, ConditionValue, InvalidCondition)

# Raw trees nested deeper than this are cut off with an InvalidCondition.
# Keeps self-referencing raw data from exhausting the interpreter stack.
MAX_BUILD_DEPTH = 200


def is_leaf_shape(raw: Mapping) -> bool:
    return "field" in raw and "condition" in raw


def is_group_shape(raw: Mapping) -> bool:
    return "comparisonType" in raw and "children" in raw


def build_condition(raw: Any, _depth: int = 0):
    """Convert a raw condition mapping into ConditionGroup / ConditionValue.

    Already-typed nodes are returned unchanged.
    """
    if isinstance(raw, _NODE_TYPES):
        return raw
    if not isinstance(raw, Mapping):
        return InvalidCondition(raw=raw, reason="condition must be a mapping")
    if _depth > MAX_BUILD_DEPTH:
        return InvalidCondition(raw=raw, reason="maximum condition depth exceeded")

    if is_leaf_shape(raw):
        return ConditionValue(
            field=raw["field"],
            condition=_as_enum(Operator, raw["condition"]),
            value=raw.get("value"),
            message=raw.get("message"),
        )

    if is_group_shape(raw):
        children = raw["children"]
        if isinstance(children, (str, bytes)) or not isinstance(children, (list, tuple)):
            return InvalidCondition(raw=raw, reason="group children must be a list")
        return ConditionGroup(
            comparison_type=_as_enum(ComparisonType, raw["comparisonType"]),
            children=tuple(build_condition(child, _depth + 1) for child in children),
        )

    return InvalidCondition(
        raw=raw,
        reason="expected 'field'+'condition' or 'comparisonType'+'children'",
    )


def build_result_value(raw: Any) -> ComputedResultValue:
    """A mapping with an 'operator' key is arithmetic; anything else is an operand."""
    if isinstance(raw, ArithmeticExpression):
        return raw
    if isinstance(raw, Mapping) and "operator" in raw:
        return ArithmeticExpression(
            left=raw.get("left"),
            operator=_as_enum(ArithmeticOperator, raw["operator"]),
            right=raw.get("right"),
        )
    return raw


def build_computed(raw: Any) -> ComputedValueConfig:
    """Convert a raw ``{cases, default?}`` mapping into a ComputedValueConfig.

    The presence of the ``default`` key, even with a null value, sets
    ``has_default``. Raises SchemaError when the overall shape is unusable.
    """
    if isinstance(raw, ComputedValueConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise SchemaError("computed value config must be a mapping")

    raw_cases = raw.get("cases", [])
    if isinstance(raw_cases, (str, bytes)) or not isinstance(raw_cases, (list, tuple)):
        raise SchemaError("'cases' must be a list", path="cases")

    cases = []
    for i, raw_case in enumerate(raw_cases):
        if isinstance(raw_case, ComputedCase):
            cases.append(raw_case)
            continue
        if not isinstance(raw_case, Mapping):
            raise SchemaError("case must be a mapping", path=f"cases[{i}]")
        condition = raw_case.get("condition")
        cases.append(ComputedCase(
            condition=None if condition is None else build_condition(condition),
            value=build_result_value(raw_case.get("value")),
        ))

    has_default = "default" in raw
    return ComputedValueConfig(
        cases=tuple(cases),
        default=build_result_value(raw["default"]) if has_default else None,
        has_default=has_default,
    )


def _as_enum(enum_cls, raw: Any):
    """Enum member for ``raw``, or ``raw`` itself when it is not a member."""
    try:
        return enum_cls(raw)
    except (ValueError, TypeError):
        return raw
