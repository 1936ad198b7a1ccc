"""Value comparator: applies one operator to two already-resolved values.

Coercion rules:
- ``< > <= >=`` compare numbers; ISO-8601 timestamps are compared as
  epoch milliseconds, everything else goes through number coercion
  (so "5" < "10" is numeric, not lexical)
- ``=== !==`` compare without coercion; booleans never equal numbers
- ``∅ !∅`` test emptiness; ``includes`` works on strings and lists;
  ``startsWith endsWith match`` need two strings
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from .ast_nodes import Operator
from .logging import DiagnosticSink, LogLevel, default_sink, emit

NAN = float("nan")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

_ISO_DATE_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]{3}))?Z?"
)

# Decimal literal accepted by number coercion: "12", "-1.5", ".5", "1e3"
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_PREFIXED_INT_RE = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")
_INFINITIES = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def is_empty(value: Any) -> bool:
    """None, blank strings, empty lists and empty mappings are empty.

    Numbers (NaN included) and booleans are never empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if isinstance(value, Mapping):
        return len(value) == 0
    return False


def is_iso_date_string(value: Any) -> bool:
    return isinstance(value, str) and _ISO_DATE_RE.fullmatch(value) is not None


def iso_to_millis(value: str) -> float:
    """Epoch milliseconds of an ISO timestamp; NaN for impossible dates.

    Timestamps without a "Z" suffix are read as UTC too.
    """
    m = _ISO_DATE_RE.fullmatch(value)
    if m is None:
        return NAN
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    millis = int(m.group(7) or 0)
    try:
        dt = datetime(year, month, day, hour, minute, second, millis * 1000, tzinfo=timezone.utc)
    except ValueError:
        return NAN
    return float((dt - _EPOCH) // _ONE_MS)


def to_number(value: Any) -> float:
    """Coerce a value to a float, NaN when it has no numeric reading."""
    if value is None:
        return NAN
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        return _parse_number(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return float((value - _EPOCH) // _ONE_MS)
    if isinstance(value, date):
        return to_number(datetime.combine(value, time(), tzinfo=timezone.utc))
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return 0.0
        if len(value) == 1:
            return 0.0 if value[0] is None else to_number(value[0])
        return NAN
    if hasattr(value, "__float__"):
        return float(value)
    return NAN


def to_comparable(value: Any) -> float:
    """Number used by the ordering operators."""
    if is_iso_date_string(value):
        return iso_to_millis(value)
    return to_number(value)


def _parse_number(text: str) -> float:
    s = text.strip()
    if s == "":
        return 0.0
    if s in _INFINITIES:
        return _INFINITIES[s]
    if _PREFIXED_INT_RE.fullmatch(s):
        return float(int(s, 0))
    if _DECIMAL_RE.fullmatch(s):
        return float(s)
    return NAN


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without coercion: 1 == 1.0, but True != 1 and "1" != 1."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) or _is_number(right):
        return _is_number(left) and _is_number(right) and left == right
    return left == right


def _same_value_zero(left: Any, right: Any) -> bool:
    if isinstance(left, float) and isinstance(right, float) and math.isnan(left) and math.isnan(right):
        return True
    return strict_equals(left, right)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compare(
    left: Any,
    operator: Operator | str,
    right: Any,
    sink: DiagnosticSink = default_sink,
) -> bool:
    """Apply ``operator`` to two resolved values.

    Never raises: an unknown operator, an invalid regex or a value whose
    conversion fails yields False and a diagnostic on ``sink``.
    """
    try:
        try:
            op = Operator(operator)
        except (ValueError, TypeError):
            emit(sink, LogLevel.ERROR, f"Unknown operator: {operator!r}")
            return False

        if op == Operator.LT:
            return to_comparable(left) < to_comparable(right)
        if op == Operator.GT:
            return to_comparable(left) > to_comparable(right)
        if op == Operator.LE:
            return to_comparable(left) <= to_comparable(right)
        if op == Operator.GE:
            return to_comparable(left) >= to_comparable(right)
        if op == Operator.EQ:
            return strict_equals(left, right)
        if op == Operator.NE:
            return not strict_equals(left, right)
        if op == Operator.EMPTY:
            return is_empty(left)
        if op == Operator.NOT_EMPTY:
            return not is_empty(left)
        if op == Operator.INCLUDES:
            if isinstance(left, str) and isinstance(right, str):
                return right in left
            if isinstance(left, (list, tuple)):
                return any(_same_value_zero(item, right) for item in left)
            return False
        if op == Operator.STARTS_WITH:
            if isinstance(left, str) and isinstance(right, str):
                return left.startswith(right)
            return False
        if op == Operator.ENDS_WITH:
            if isinstance(left, str) and isinstance(right, str):
                return left.endswith(right)
            return False
        if op == Operator.MATCH:
            if isinstance(left, str) and isinstance(right, str):
                try:
                    return re.search(right, left) is not None
                except re.error as exc:
                    emit(sink, LogLevel.ERROR, f"Invalid regex pattern: {right}", error=str(exc))
                    return False
            return False
    except Exception as exc:
        emit(
            sink,
            LogLevel.ERROR,
            "Error comparing values",
            error=repr(exc),
            left=repr(left),
            operator=str(operator),
            right=repr(right),
        )
        return False
    return False
