"""Strict configuration loading: raw data -> validated, typed configuration.

Form documents are YAML or JSON:

    groups:
      - name: Pricing
        validateCondition:
          comparisonType: or
          children:
            - field: minPrice
              condition: "<="
              value: $maxPrice
              message: Min price must not exceed max price
        fields:
          - {name: minPrice, type: inputNumber, label: Min}
          - {name: maxPrice, type: inputNumber, label: Max}
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .ast_nodes import ComputedValueConfig
from .builder import build_computed, build_condition
from .errors import ParseError, SchemaError
from .forms import FieldConfig, FormConfig, GroupConfig, SelectOption
from .validator import Validator

# Field keys with a dedicated FieldConfig attribute; everything else goes to props
_FIELD_KEYS = {
    "name", "type", "label", "visibleCondition", "validateCondition",
    "disabledCondition", "computedValue", "defaultValue", "placeholder",
    "order", "options", "itemFields",
}


def _raise_if_invalid(errors: list[SchemaError], what: str) -> None:
    if errors:
        details = "; ".join(str(e) for e in errors)
        raise SchemaError(f"Invalid {what}: {details}", errors=errors)


# ---------------------------------------------------------------------------
# Conditions and computed values
# ---------------------------------------------------------------------------

def load_condition(raw: Any, validator: Validator | None = None):
    """Build and validate a condition tree. Raises SchemaError listing every problem."""
    node = build_condition(raw)
    _raise_if_invalid((validator or Validator()).validate_condition(node), "condition")
    return node


def load_computed(raw: Any, validator: Validator | None = None) -> ComputedValueConfig:
    """Build and validate a computed value config."""
    config = build_computed(raw)
    _raise_if_invalid((validator or Validator()).validate_computed(config), "computed value")
    return config


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

def _optional_condition(raw: Mapping, key: str):
    value = raw.get(key)
    return None if value is None else build_condition(value)


def _require_mapping(raw: Any, path: str) -> Mapping:
    if not isinstance(raw, Mapping):
        raise SchemaError("must be a mapping", path=path)
    return raw


def _require_list(raw: Any, path: str) -> list:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise SchemaError("must be a list", path=path)
    return list(raw)


def _require_str(raw: Mapping, key: str, path: str) -> str:
    value = raw.get(key, "")
    if not isinstance(value, str):
        raise SchemaError("must be a string", path=f"{path}.{key}")
    return value


def _require_number(raw: Mapping, key: str, path: str) -> float:
    value = raw.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError("must be a number", path=f"{path}.{key}")
    return value


def build_field(raw: Any, path: str = "field") -> FieldConfig:
    raw = _require_mapping(raw, path)
    computed = raw.get("computedValue")
    if computed is not None:
        try:
            computed = build_computed(computed)
        except SchemaError as exc:
            raise SchemaError(exc.message, path=f"{path}.computedValue.{exc.path or ''}".rstrip(".")) from exc

    options = []
    for i, opt in enumerate(_require_list(raw.get("options"), f"{path}.options")):
        opt = _require_mapping(opt, f"{path}.options[{i}]")
        options.append(SelectOption(
            label=str(opt.get("label", "")),
            value=opt.get("value"),
            disabled=bool(opt.get("disabled", False)),
        ))

    item_fields = [
        build_field(item, f"{path}.itemFields[{i}]")
        for i, item in enumerate(_require_list(raw.get("itemFields"), f"{path}.itemFields"))
    ]

    return FieldConfig(
        name=_require_str(raw, "name", path),
        type=_require_str(raw, "type", path),
        label=str(raw.get("label", "")),
        visible_condition=_optional_condition(raw, "visibleCondition"),
        validate_condition=_optional_condition(raw, "validateCondition"),
        disabled_condition=_optional_condition(raw, "disabledCondition"),
        computed_value=computed,
        default_value=raw.get("defaultValue"),
        placeholder=raw.get("placeholder"),
        order=_require_number(raw, "order", path),
        options=tuple(options),
        item_fields=tuple(item_fields),
        props={k: v for k, v in raw.items() if k not in _FIELD_KEYS},
    )


def build_group(raw: Any, path: str = "group") -> GroupConfig:
    raw = _require_mapping(raw, path)
    fields = [
        build_field(f, f"{path}.fields[{i}]")
        for i, f in enumerate(_require_list(raw.get("fields"), f"{path}.fields"))
    ]
    return GroupConfig(
        name=_require_str(raw, "name", path),
        fields=tuple(fields),
        visible_condition=_optional_condition(raw, "visibleCondition"),
        validate_condition=_optional_condition(raw, "validateCondition"),
        order=_require_number(raw, "order", path),
        show_title=bool(raw.get("showTitle", True)),
        show_border=bool(raw.get("showBorder", True)),
    )


def build_form(raw: Any) -> FormConfig:
    """Convert a raw form mapping into a FormConfig without validating it."""
    raw = _require_mapping(raw, "form")
    if "groups" not in raw:
        raise SchemaError("Missing 'groups' list", path="groups")
    groups = [
        build_group(g, f"groups[{i}]")
        for i, g in enumerate(_require_list(raw["groups"], "groups"))
    ]
    return FormConfig(groups=tuple(groups))


def load_form(raw: Any, validator: Validator | None = None) -> FormConfig:
    """Build and validate a form. Raises SchemaError listing every problem."""
    form = build_form(raw)
    _raise_if_invalid((validator or Validator()).validate_form(form), "form")
    return form


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def load_yaml(source: str, validator: Validator | None = None) -> FormConfig:
    """Parse a YAML form document and load it."""
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise ParseError(
            f"Invalid YAML: {exc}",
            line=mark.line + 1 if mark else None,
            column=mark.column + 1 if mark else None,
        ) from exc
    return load_form(data, validator)


def load_json(source: str, validator: Validator | None = None) -> FormConfig:
    """Parse a JSON form document and load it."""
    try:
        data = json.loads(source)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc.msg}", line=exc.lineno, column=exc.colno) from exc
    return load_form(data, validator)


def load_file(path: str | Path, validator: Validator | None = None) -> FormConfig:
    """Load a form document; ``.json`` files are read as JSON, anything else as YAML."""
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return load_json(source, validator)
    return load_yaml(source, validator)
