"""Static field dependency collection for condition trees and computed values."""

from __future__ import annotations

from typing import Any

from .ast_nodes import ArithmeticExpression, ConditionGroup, ConditionValue
from .builder import build_computed, build_condition
from .logging import DiagnosticSink, LogLevel, default_sink, emit
from .resolver import field_ref_name, is_field_ref


def collect_fields(condition: Any, sink: DiagnosticSink | None = None) -> list[str]:
    """Names of every field a condition reads, in order of first appearance.

    Includes fields referenced through "$name" values. Groups are walked
    unconditionally; no value bag is involved.
    """
    if condition is None:
        return []
    names: list[str] = []
    try:
        _collect(build_condition(condition), names)
    except Exception as exc:
        emit(_sink(sink), LogLevel.ERROR, "Error collecting fields from condition", error=repr(exc))
        return []
    return list(dict.fromkeys(names))


def _sink(sink: DiagnosticSink | None) -> DiagnosticSink:
    return sink if sink is not None else default_sink


def _collect(node: Any, names: list[str]) -> None:
    if isinstance(node, ConditionValue):
        if node.field and isinstance(node.field, str):
            names.append(node.field)
        _add_ref(node.value, names)
    elif isinstance(node, ConditionGroup):
        for child in node.children:
            _collect(child, names)


def _add_ref(operand: Any, names: list[str]) -> None:
    if is_field_ref(operand):
        name = field_ref_name(operand)
        if name:
            names.append(name)


def collect_computed_fields(config: Any, sink: DiagnosticSink | None = None) -> list[str]:
    """Fields read by a computed value: case conditions plus operand references."""
    names: list[str] = []
    try:
        cfg = build_computed(config)
        results = [case.value for case in cfg.cases]
        for case in cfg.cases:
            if case.condition is not None:
                _collect(case.condition, names)
        if cfg.has_default:
            results.append(cfg.default)
        for result in results:
            if isinstance(result, ArithmeticExpression):
                _add_ref(result.left, names)
                _add_ref(result.right, names)
            else:
                _add_ref(result, names)
    except Exception as exc:
        emit(_sink(sink), LogLevel.ERROR, "Error collecting fields from computed value", error=repr(exc))
        return []
    return list(dict.fromkeys(names))
