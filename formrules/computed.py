"""Computed value evaluator: derives a field value from the other fields.

Cases are tried in order and the first matching condition wins. Without a
match the default is used when one is configured; otherwise the result is
NO_UPDATE and the caller must leave the target field alone. "Computed to
None" and "not computed" are different outcomes.
"""

from __future__ import annotations

import math
from typing import Any

from .ast_nodes import (
    NO_UPDATE,
    ArithmeticExpression,
    ArithmeticOperator,
    ComputedResultValue,
    ComputedUpdate,
    ComputedValueConfig,
)
from .builder import build_computed
from .comparator import to_number
from .errors import FormRulesError
from .evaluator import ConditionEvaluator
from .logging import DiagnosticSink, LogLevel, default_sink, emit
from .resolver import FormValues, resolve


class ComputedEvaluator:
    """Evaluates ComputedValueConfig cases against current values."""

    def __init__(
        self,
        conditions: ConditionEvaluator | None = None,
        sink: DiagnosticSink | None = None,
    ):
        # an empty DiagnosticLog is falsy, so test against None
        if sink is None:
            sink = conditions.sink if conditions is not None else default_sink
        self.sink = sink
        self.conditions = conditions if conditions is not None else ConditionEvaluator(sink=sink)

    def evaluate(self, config: ComputedValueConfig | dict, values: FormValues) -> ComputedUpdate:
        try:
            cfg = build_computed(config)
        except FormRulesError as exc:
            emit(self.sink, LogLevel.ERROR, "Invalid computed value config", error=str(exc))
            return NO_UPDATE

        try:
            for case in cfg.cases:
                if self.conditions.evaluate(case.condition, values):
                    return ComputedUpdate(should_update=True, value=self.resolve_result(case.value, values))

            if cfg.has_default:
                return ComputedUpdate(should_update=True, value=self.resolve_result(cfg.default, values))
        except Exception as exc:
            emit(self.sink, LogLevel.ERROR, "Error evaluating computed value", error=repr(exc))
        return NO_UPDATE

    def resolve_result(self, result: ComputedResultValue, values: FormValues) -> Any:
        """Resolve a case value: arithmetic is computed, operands are resolved."""
        if isinstance(result, ArithmeticExpression):
            return self.evaluate_arithmetic(result, values)
        return resolve(result, values)

    def evaluate_arithmetic(self, expr: ArithmeticExpression, values: FormValues) -> float | None:
        """Apply + - * / to two resolved operands.

        None when an operand is missing ("cannot compute yet"), when an
        operand is not numeric, and on division by zero.
        """
        left = resolve(expr.left, values)
        right = resolve(expr.right, values)

        if left is None or right is None:
            return None

        try:
            operator = ArithmeticOperator(expr.operator)
        except (ValueError, TypeError):
            emit(self.sink, LogLevel.ERROR, f"evaluate_computed: unknown arithmetic operator {expr.operator!r}")
            return None

        try:
            left_num = to_number(left)
            right_num = to_number(right)
        except Exception as exc:
            emit(self.sink, LogLevel.ERROR, "evaluate_computed: operand conversion failed", error=repr(exc))
            return None

        if math.isnan(left_num) or math.isnan(right_num):
            emit(
                self.sink,
                LogLevel.ERROR,
                "evaluate_computed: non-numeric operands in arithmetic expression",
                left=repr(left),
                right=repr(right),
            )
            return None

        if operator == ArithmeticOperator.DIV and right_num == 0:
            emit(self.sink, LogLevel.ERROR, "evaluate_computed: division by zero", left=repr(left))
            return None

        if operator == ArithmeticOperator.ADD:
            return left_num + right_num
        if operator == ArithmeticOperator.SUB:
            return left_num - right_num
        if operator == ArithmeticOperator.MUL:
            return left_num * right_num
        return left_num / right_num


_DEFAULT_EVALUATOR = ComputedEvaluator()


def evaluate_computed(
    config: ComputedValueConfig | dict,
    values: FormValues,
    sink: DiagnosticSink | None = None,
) -> ComputedUpdate:
    """Evaluate a computed value config with the default condition evaluator."""
    evaluator = _DEFAULT_EVALUATOR if sink is None else ComputedEvaluator(sink=sink)
    return evaluator.evaluate(config, values)
