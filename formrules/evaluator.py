"""Condition evaluator: walks a condition tree against a flat value bag.

Answers two questions for a condition tree:
- is the condition true (``evaluate``)
- which messages explain its failure (``collect_messages``)

Both accept typed nodes or raw mappings, and neither ever raises.
"""

from __future__ import annotations

from typing import Any

from .ast_nodes import (
    ComparisonType,
    Condition,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
)
from .builder import build_condition
from .comparator import compare
from .logging import DiagnosticSink, LogLevel, default_sink, emit
from .resolver import FormValues, resolve

DEFAULT_MAX_DEPTH = 50


class ConditionEvaluator:
    """Evaluates condition trees with a recursion-depth guard.

    Groups nested deeper than ``max_depth`` are treated as a circular
    configuration and evaluate to False.
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_DEPTH,
        sink: DiagnosticSink | None = None,
    ):
        self.max_depth = max_depth
        self.sink = sink if sink is not None else default_sink

    # -- truth ---------------------------------------------------------------

    def evaluate(self, condition: Condition | dict | None, values: FormValues) -> bool:
        """True when ``condition`` holds for ``values``; an absent condition holds."""
        if condition is None:
            return True
        try:
            node = build_condition(condition)
            if isinstance(node, InvalidCondition):
                emit(self.sink, LogLevel.ERROR, "Invalid condition", reason=node.reason, condition=repr(node.raw))
                return False
            return self._evaluate_node(node, values, 0)
        except Exception as exc:
            emit(self.sink, LogLevel.ERROR, "Error evaluating condition", error=repr(exc))
            return False

    def _evaluate_node(self, node: Condition, values: FormValues, depth: int) -> bool:
        if isinstance(node, ConditionValue):
            return self._evaluate_leaf(node, values)
        if isinstance(node, ConditionGroup):
            return self._evaluate_group(node, values, depth)
        emit(
            self.sink,
            LogLevel.ERROR,
            "Invalid child in ConditionGroup",
            reason=getattr(node, "reason", "unknown node type"),
            child=repr(getattr(node, "raw", node)),
        )
        return False

    def _evaluate_leaf(self, leaf: ConditionValue, values: FormValues) -> bool:
        field_value = values.get(leaf.field)
        comparison_value = resolve(leaf.value, values)
        return compare(field_value, leaf.condition, comparison_value, self.sink)

    def _evaluate_group(self, group: ConditionGroup, values: FormValues, depth: int) -> bool:
        if depth > self.max_depth:
            emit(
                self.sink,
                LogLevel.ERROR,
                "Maximum condition depth exceeded. Possible circular dependency.",
                max_depth=self.max_depth,
            )
            return False

        if not group.children:
            emit(self.sink, LogLevel.ERROR, "ConditionGroup has no children")
            return False

        # no short-circuit: every child is evaluated
        results = [self._evaluate_node(child, values, depth + 1) for child in group.children]
        if group.comparison_type == ComparisonType.AND:
            return all(results)
        if group.comparison_type == ComparisonType.OR:
            return any(results)

        emit(self.sink, LogLevel.ERROR, f"Unknown comparisonType: {group.comparison_type!r}")
        return False

    # -- messages ------------------------------------------------------------

    def collect_messages(self, condition: Condition | dict | None, values: FormValues) -> list[str]:
        """Messages of the failing leaves that caused ``condition`` to fail.

        A passing group contributes nothing. A failing ``and`` group only
        descends into its failing children; a failing ``or`` group failed
        because of all of its children, so it descends into each of them.
        """
        if condition is None:
            return []
        messages: list[str] = []
        try:
            self._collect(build_condition(condition), values, 0, messages)
        except Exception as exc:
            emit(self.sink, LogLevel.ERROR, "Error collecting validation messages", error=repr(exc))
            return []
        return messages

    def _collect(self, node: Condition, values: FormValues, depth: int, messages: list[str]) -> None:
        if isinstance(node, ConditionValue):
            if not self._evaluate_leaf(node, values) and node.message:
                messages.append(node.message)
            return

        if not isinstance(node, ConditionGroup):
            return
        if self._evaluate_group(node, values, depth) or depth > self.max_depth:
            return

        for child in node.children:
            if node.comparison_type == ComparisonType.AND:
                if not self._evaluate_node(child, values, depth + 1):
                    self._collect(child, values, depth + 1, messages)
            else:
                self._collect(child, values, depth + 1, messages)


# ---------------------------------------------------------------------------
# Module-level API
# ---------------------------------------------------------------------------

_DEFAULT_EVALUATOR = ConditionEvaluator()


def _evaluator(sink: DiagnosticSink | None) -> ConditionEvaluator:
    if sink is None:
        return _DEFAULT_EVALUATOR
    return ConditionEvaluator(sink=sink)


def evaluate(condition: Any, values: FormValues, sink: DiagnosticSink | None = None) -> bool:
    """Evaluate a condition with the default depth limit."""
    return _evaluator(sink).evaluate(condition, values)


def collect_messages(condition: Any, values: FormValues, sink: DiagnosticSink | None = None) -> list[str]:
    """Collect failure messages with the default depth limit."""
    return _evaluator(sink).collect_messages(condition, values)
