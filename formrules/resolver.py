"""Field reference resolution: "$name" operands read from the value bag."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

FIELD_REF_PREFIX = "$"

# Flat mapping of field name -> current value
FormValues = Mapping[str, Any]


def is_field_ref(operand: Any) -> bool:
    return isinstance(operand, str) and operand.startswith(FIELD_REF_PREFIX)


def field_ref_name(operand: str) -> str:
    """Strip the "$" prefix from a field reference."""
    return operand[len(FIELD_REF_PREFIX):]


def resolve(operand: Any, values: FormValues) -> Any:
    """Resolve an operand against the current values.

    A "$name" string yields ``values[name]`` (None when absent); the
    referenced value is used as-is and never resolved a second time.
    Anything else is a literal and passes through unchanged.
    """
    if is_field_ref(operand):
        return values.get(field_ref_name(operand))
    return operand
