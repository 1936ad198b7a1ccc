"""Schema validator for condition trees, computed values and forms."""

from __future__ import annotations

import re
from typing import Any

from .ast_nodes import (
    ArithmeticExpression,
    ArithmeticOperator,
    ComparisonType,
    ComputedResultValue,
    ComputedValueConfig,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
    Operator,
)
from .dependencies import collect_computed_fields
from .errors import SchemaError
from .evaluator import DEFAULT_MAX_DEPTH
from .forms import FIELD_TYPES, FieldConfig, FormConfig
from .resolver import is_field_ref

# Operators that compare against a value; ∅ / !∅ ignore it and
# === / !== may legitimately compare against null
VALUE_REQUIRED_OPS = {
    Operator.LT, Operator.GT, Operator.LE, Operator.GE,
    Operator.INCLUDES, Operator.STARTS_WITH, Operator.ENDS_WITH, Operator.MATCH,
}

_SCALAR_TYPES = (str, int, float, bool, type(None))


class Validator:
    """Validates configuration once, at load time.

    Every ``validate_*`` method returns a list of errors (empty = valid),
    each carrying the dotted path of the offending node.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    # -- conditions ----------------------------------------------------------

    def validate_condition(self, condition: Any, path: str = "condition") -> list[SchemaError]:
        errors: list[SchemaError] = []
        if condition is not None:
            self._check_node(condition, path, 0, errors)
        return errors

    def _check_node(self, node: Any, path: str, depth: int, errors: list[SchemaError]) -> None:
        if isinstance(node, ConditionValue):
            self._check_leaf(node, path, errors)
        elif isinstance(node, ConditionGroup):
            self._check_group(node, path, depth, errors)
        elif isinstance(node, InvalidCondition):
            errors.append(SchemaError(f"Malformed condition: {node.reason}", path=path))
        else:
            errors.append(SchemaError(f"Unexpected condition node {type(node).__name__}", path=path))

    def _check_leaf(self, leaf: ConditionValue, path: str, errors: list[SchemaError]) -> None:
        if not isinstance(leaf.field, str) or not leaf.field:
            errors.append(SchemaError("Condition field must be a non-empty string", path=f"{path}.field"))

        if not isinstance(leaf.condition, Operator):
            errors.append(SchemaError(
                f"Unknown operator {leaf.condition!r}. "
                f"Valid operators: {', '.join(op.value for op in Operator)}",
                path=f"{path}.condition",
            ))
        elif leaf.condition in VALUE_REQUIRED_OPS and leaf.value is None:
            errors.append(SchemaError(f"Operator '{leaf.condition}' requires a value", path=f"{path}.value"))
        elif leaf.condition == Operator.MATCH and not is_field_ref(leaf.value):
            if not isinstance(leaf.value, str):
                errors.append(SchemaError("Operator 'match' requires a string pattern", path=f"{path}.value"))
            else:
                try:
                    re.compile(leaf.value)
                except re.error as exc:
                    errors.append(SchemaError(f"Invalid regex pattern {leaf.value!r}: {exc}", path=f"{path}.value"))

        if leaf.message is not None and not isinstance(leaf.message, str):
            errors.append(SchemaError("Condition message must be a string", path=f"{path}.message"))

    def _check_group(self, group: ConditionGroup, path: str, depth: int, errors: list[SchemaError]) -> None:
        if depth > self.max_depth:
            errors.append(SchemaError(
                f"Condition nesting exceeds maximum depth of {self.max_depth}",
                path=path,
            ))
            return
        if not isinstance(group.comparison_type, ComparisonType):
            errors.append(SchemaError(
                f"Unknown comparisonType {group.comparison_type!r} (expected 'and' or 'or')",
                path=f"{path}.comparisonType",
            ))
        if not group.children:
            errors.append(SchemaError("ConditionGroup must have at least one child", path=f"{path}.children"))
        for i, child in enumerate(group.children):
            self._check_node(child, f"{path}.children[{i}]", depth + 1, errors)

    # -- computed values -----------------------------------------------------

    def validate_computed(self, config: ComputedValueConfig, path: str = "computedValue") -> list[SchemaError]:
        errors: list[SchemaError] = []
        for i, case in enumerate(config.cases):
            case_path = f"{path}.cases[{i}]"
            errors += self.validate_condition(case.condition, f"{case_path}.condition")
            errors += self._check_result(case.value, f"{case_path}.value")
        if config.has_default:
            errors += self._check_result(config.default, f"{path}.default")
        return errors

    def _check_result(self, value: ComputedResultValue, path: str) -> list[SchemaError]:
        if not isinstance(value, ArithmeticExpression):
            if isinstance(value, _SCALAR_TYPES):
                return []
            return [SchemaError(f"Computed value must be a scalar or field reference, got {type(value).__name__}", path=path)]

        errors = []
        if not isinstance(value.operator, ArithmeticOperator):
            errors.append(SchemaError(
                f"Unknown arithmetic operator {value.operator!r}. "
                f"Valid operators: {', '.join(op.value for op in ArithmeticOperator)}",
                path=f"{path}.operator",
            ))
        for side in ("left", "right"):
            if not isinstance(getattr(value, side), _SCALAR_TYPES):
                errors.append(SchemaError("Arithmetic operand must be a scalar or field reference", path=f"{path}.{side}"))
        return errors

    # -- forms ---------------------------------------------------------------

    def validate_form(self, form: FormConfig) -> list[SchemaError]:
        """Run all form validations and return a list of errors (empty = valid)."""
        errors: list[SchemaError] = []
        errors += self._validate_groups(form)
        errors += self._validate_unique_names(form)
        errors += self._validate_no_computed_cycles(form)
        return errors

    def _validate_groups(self, form: FormConfig) -> list[SchemaError]:
        errors = []
        for gi, group in enumerate(form.groups):
            gpath = f"groups[{gi}]"
            if not isinstance(group.name, str) or not group.name:
                errors.append(SchemaError("Group name is required", path=f"{gpath}.name"))
            errors += self.validate_condition(group.visible_condition, f"{gpath}.visibleCondition")
            errors += self.validate_condition(group.validate_condition, f"{gpath}.validateCondition")
            for fi, f in enumerate(group.fields):
                errors += self._validate_field(f, f"{gpath}.fields[{fi}]")
        return errors

    def _validate_field(self, f: FieldConfig, path: str) -> list[SchemaError]:
        errors = []
        if not isinstance(f.name, str) or not f.name:
            errors.append(SchemaError("Field name is required", path=f"{path}.name"))
        if not isinstance(f.type, str) or f.type not in FIELD_TYPES:
            errors.append(SchemaError(
                f"Unknown field type {f.type!r}. Valid types: {', '.join(sorted(FIELD_TYPES))}",
                path=f"{path}.type",
            ))
        if f.type == "select" and not f.options:
            errors.append(SchemaError("At least one option is required", path=f"{path}.options"))
        if f.type == "dynamicList":
            if not f.item_fields:
                errors.append(SchemaError("At least one item field is required", path=f"{path}.itemFields"))
            seen: set[str] = set()
            for ii, item in enumerate(f.item_fields):
                item_path = f"{path}.itemFields[{ii}]"
                if item.name in seen:
                    errors.append(SchemaError(f"Duplicate item field name '{item.name}'", path=item_path))
                seen.add(item.name)
                errors += self._validate_field(item, item_path)

        errors += self.validate_condition(f.visible_condition, f"{path}.visibleCondition")
        errors += self.validate_condition(f.validate_condition, f"{path}.validateCondition")
        errors += self.validate_condition(f.disabled_condition, f"{path}.disabledCondition")
        if f.computed_value is not None:
            errors += self.validate_computed(f.computed_value, f"{path}.computedValue")
        return errors

    def _validate_unique_names(self, form: FormConfig) -> list[SchemaError]:
        errors = []
        seen: dict[str, str] = {}
        for gi, group in enumerate(form.groups):
            for fi, f in enumerate(group.fields):
                path = f"groups[{gi}].fields[{fi}]"
                if f.name in seen:
                    errors.append(SchemaError(
                        f"Duplicate field name '{f.name}' (first defined at {seen[f.name]})",
                        path=path,
                    ))
                else:
                    seen[f.name] = path
        return errors

    def _validate_no_computed_cycles(self, form: FormConfig) -> list[SchemaError]:
        """Detect computed fields that (transitively) depend on themselves."""
        errors = []

        # field -> computed fields it reads
        computed = {f.name: f for f in form.iter_fields() if f.computed_value is not None}
        graph: dict[str, list[str]] = {
            name: [dep for dep in collect_computed_fields(f.computed_value) if dep in computed]
            for name, f in computed.items()
        }

        # DFS cycle detection
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {name: WHITE for name in graph}

        def dfs(node: str) -> str | None:
            color[node] = GRAY
            for dep in graph[node]:
                if color[dep] == GRAY:
                    return f"Computed value cycle detected involving '{node}' -> '{dep}'"
                if color[dep] == WHITE:
                    result = dfs(dep)
                    if result:
                        return result
            color[node] = BLACK
            return None

        for name in graph:
            if color[name] == WHITE:
                cycle = dfs(name)
                if cycle:
                    errors.append(SchemaError(cycle))
                    break

        return errors
