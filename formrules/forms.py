"""Form model and the per-field / per-group state derived from it.

These are thin consumers of the engine: visibility, disabled state,
validity and messages for every field and group of a form, given a
snapshot of values and the set of touched fields.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .ast_nodes import ComputedValueConfig, Condition
from .computed import ComputedEvaluator
from .dependencies import collect_fields
from .evaluator import ConditionEvaluator
from .resolver import FormValues

FIELD_TYPES = {
    "input", "inputNumber", "select", "switch", "date",
    "money", "textarea", "dynamicList",
}

# Touched state: a {name: bool} mapping or an iterable of touched names
Touched = Union[Mapping[str, bool], Iterable[str], None]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectOption:
    label: str
    value: str | int | float
    disabled: bool = False


@dataclass(frozen=True)
class FieldConfig:
    """A single form field.

    ``disabled_condition`` disables the field when it evaluates True.
    ``props`` holds type-specific settings (min, max, inputType, ...)
    that the engine does not interpret.
    """
    name: str
    type: str
    label: str = ""
    visible_condition: Condition | None = None
    validate_condition: Condition | None = None
    disabled_condition: Condition | None = None
    computed_value: ComputedValueConfig | None = None
    default_value: Any = None
    placeholder: str | None = None
    order: float = 0
    options: tuple[SelectOption, ...] = ()
    item_fields: tuple[FieldConfig, ...] = ()  # dynamicList only
    props: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class GroupConfig:
    name: str
    fields: tuple[FieldConfig, ...] = ()
    visible_condition: Condition | None = None
    validate_condition: Condition | None = None
    order: float = 0
    show_title: bool = True
    show_border: bool = True


@dataclass(frozen=True)
class FormConfig:
    groups: tuple[GroupConfig, ...] = ()

    def iter_fields(self) -> Iterable[FieldConfig]:
        """Top-level fields of every group, in declaration order."""
        for group in self.groups:
            yield from group.fields

    def get_field(self, name: str) -> FieldConfig | None:
        for f in self.iter_fields():
            if f.name == name:
                return f
        return None


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

@dataclass
class FieldState:
    name: str
    visible: bool = True
    disabled: bool = False
    valid: bool = True
    messages: list[str] = field(default_factory=list)
    items: list[list[FieldState]] = field(default_factory=list)  # dynamicList rows

    @property
    def error(self) -> str | None:
        """Messages joined for display, None when nothing is shown."""
        return ", ".join(self.messages) if self.messages else None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "visible": self.visible,
            "disabled": self.disabled,
            "valid": self.valid,
        }
        if self.messages:
            d["messages"] = self.messages
        if self.items:
            d["items"] = [[s.to_dict() for s in row] for row in self.items]
        return d


@dataclass
class GroupState:
    name: str
    visible: bool = True
    valid: bool = True
    messages: list[str] = field(default_factory=list)
    show_error: bool = False
    fields: list[FieldState] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "visible": self.visible,
            "valid": self.valid,
            "showError": self.show_error,
            "messages": self.messages,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass
class FormState:
    groups: list[GroupState] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        for group in self.groups:
            if not group.visible:
                continue
            if not group.valid:
                return False
            if not all(_field_valid(f) for f in group.fields):
                return False
        return True

    def to_dict(self) -> dict:
        return {"valid": self.valid, "groups": [g.to_dict() for g in self.groups]}

    def summary(self) -> str:
        lines = [f"Form: {'valid' if self.valid else 'invalid'}"]
        for group in self.groups:
            if not group.visible:
                lines.append(f"Group: {group.name} [hidden]")
                continue
            lines.append(f"Group: {group.name} [{'valid' if group.valid else 'invalid'}]")
            if group.show_error:
                for msg in group.messages:
                    lines.append(f"  ⚠ {msg}")
            for f in group.fields:
                lines.extend(_field_lines(f, "  "))
        return "\n".join(lines)


def _field_valid(state: FieldState) -> bool:
    if not state.visible:
        return True
    if not state.valid:
        return False
    return all(_field_valid(s) for row in state.items for s in row)


def _field_lines(state: FieldState, indent: str) -> list[str]:
    if not state.visible:
        return [f"{indent}· {state.name} (hidden)"]
    icon = "✓" if state.valid else "✗"
    flags = " (disabled)" if state.disabled else ""
    line = f"{indent}{icon} {state.name}{flags}"
    if state.error:
        line += f": {state.error}"
    lines = [line]
    for row in state.items:
        for item in row:
            lines.extend(_field_lines(item, indent + "  "))
    return lines


# ---------------------------------------------------------------------------
# State resolution
# ---------------------------------------------------------------------------

def is_touched(touched: Touched, name: str) -> bool:
    if touched is None:
        return False
    if isinstance(touched, Mapping):
        return bool(touched.get(name))
    return name in touched


def _conditions(evaluator: ConditionEvaluator | None) -> ConditionEvaluator:
    return evaluator or ConditionEvaluator()


def field_state(
    config: FieldConfig,
    values: FormValues,
    touched: Touched = None,
    evaluator: ConditionEvaluator | None = None,
    force_show_errors: bool = False,
) -> FieldState:
    """Visibility, disabled state, validity and visible messages of a field.

    Messages are only produced for an invalid field that was touched (or
    when ``force_show_errors`` is set, e.g. after a submit attempt).
    """
    ev = _conditions(evaluator)
    state = FieldState(
        name=config.name,
        visible=ev.evaluate(config.visible_condition, values),
        disabled=(
            ev.evaluate(config.disabled_condition, values)
            if config.disabled_condition is not None
            else False
        ),
        valid=ev.evaluate(config.validate_condition, values),
    )
    if not state.valid and (force_show_errors or is_touched(touched, config.name)):
        state.messages = ev.collect_messages(config.validate_condition, values)
    if config.type == "dynamicList" and state.visible:
        state.items = list_item_states(
            config, values, touched, evaluator=ev,
            disabled=state.disabled, force_show_errors=force_show_errors,
        )
    return state


def item_values(values: FormValues, list_name: str, index: int) -> dict[str, Any]:
    """The value mapping of one dynamic list row ({} when missing)."""
    rows = values.get(list_name)
    if not isinstance(rows, (list, tuple)) or not 0 <= index < len(rows):
        return {}
    row = rows[index]
    return dict(row) if isinstance(row, Mapping) else {}


def item_field_name(list_name: str, index: int, item_name: str) -> str:
    return f"{list_name}.{index}.{item_name}"


def list_item_states(
    config: FieldConfig,
    values: FormValues,
    touched: Touched = None,
    evaluator: ConditionEvaluator | None = None,
    disabled: bool = False,
    force_show_errors: bool = False,
) -> list[list[FieldState]]:
    """States of every item field of every row of a dynamic list.

    Item conditions are evaluated against the row's own values, and item
    states are named ``list.index.field``. Hidden item fields are omitted.
    An item field without a disabled condition inherits ``disabled``.
    """
    ev = _conditions(evaluator)
    rows = values.get(config.name)
    count = len(rows) if isinstance(rows, (list, tuple)) else 0

    result = []
    for index in range(count):
        scope = item_values(values, config.name, index)
        row_states = []
        for item in config.item_fields:
            if not ev.evaluate(item.visible_condition, scope):
                continue
            name = item_field_name(config.name, index, item.name)
            state = FieldState(
                name=name,
                disabled=(
                    ev.evaluate(item.disabled_condition, scope)
                    if item.disabled_condition is not None
                    else disabled
                ),
                valid=ev.evaluate(item.validate_condition, scope),
            )
            if not state.valid and (force_show_errors or is_touched(touched, name)):
                state.messages = ev.collect_messages(item.validate_condition, scope)
            row_states.append(state)
        result.append(row_states)
    return result


def group_state(
    config: GroupConfig,
    values: FormValues,
    touched: Touched = None,
    evaluator: ConditionEvaluator | None = None,
    force_show_errors: bool = False,
) -> GroupState:
    """State of a group and its fields (sorted by ``order``).

    The group error is only shown once every field its validate condition
    reads has been touched, so a cross-field rule stays quiet until the
    user has filled in all of its inputs.
    """
    ev = _conditions(evaluator)
    state = GroupState(
        name=config.name,
        visible=ev.evaluate(config.visible_condition, values),
        valid=ev.evaluate(config.validate_condition, values),
    )
    if not state.valid:
        state.messages = ev.collect_messages(config.validate_condition, values)

    all_touched = force_show_errors or all(
        is_touched(touched, name) for name in collect_fields(config.validate_condition, sink=ev.sink)
    )
    state.show_error = not state.valid and all_touched

    for f in sorted(config.fields, key=lambda f: f.order):
        state.fields.append(field_state(f, values, touched, evaluator=ev, force_show_errors=force_show_errors))
    return state


def form_state(
    config: FormConfig,
    values: FormValues,
    touched: Touched = None,
    evaluator: ConditionEvaluator | None = None,
    force_show_errors: bool = False,
) -> FormState:
    ev = _conditions(evaluator)
    groups = sorted(config.groups, key=lambda g: g.order)
    return FormState(groups=[
        group_state(g, values, touched, evaluator=ev, force_show_errors=force_show_errors)
        for g in groups
    ])


def is_form_valid(config: FormConfig, values: FormValues, evaluator: ConditionEvaluator | None = None) -> bool:
    """True when every visible group and every visible field passes validation."""
    return form_state(config, values, evaluator=evaluator).valid


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

def default_values(config: FormConfig) -> dict[str, Any]:
    """Initial values from each field's ``default_value``."""
    return {f.name: f.default_value for f in config.iter_fields() if f.default_value is not None}


def apply_computed(
    config: FormConfig,
    values: FormValues,
    evaluator: ComputedEvaluator | None = None,
) -> dict[str, Any]:
    """Evaluate every computed field in declaration order.

    Returns only the updates to write back. Later fields see the values
    computed for earlier ones.
    """
    ev = evaluator or ComputedEvaluator()
    current = dict(values)
    updates: dict[str, Any] = {}
    for f in config.iter_fields():
        if f.computed_value is None:
            continue
        update = ev.evaluate(f.computed_value, current)
        if update.should_update:
            updates[f.name] = update.value
            current[f.name] = update.value
    return updates
