"""Lark-based parser for the one-line condition shorthand, and its formatter.

    age >= 18 and (country === "USA" or isPremium === true)
    email !∅ "Email is required"
    minPrice <= $maxPrice "Min price must not exceed max price"

A leaf is ``FIELD OPERATOR [VALUE] [MESSAGE]``; ``and`` binds tighter
than ``or``. The formatter always parenthesises nested groups, so
formatting then parsing gives back the same tree. A group with a single
child has no shorthand of its own and formats as that child.
"""

from __future__ import annotations

import math
import re
from pathlib import Path as FilePath
from typing import Any

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput

from .ast_nodes import (
    ComparisonType,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
    Operator,
)
from .builder import build_condition
from .errors import FormRulesError, ParseError

# ---------------------------------------------------------------------------
# Grammar loading (cached)
# ---------------------------------------------------------------------------

_GRAMMAR_PATH = FilePath(__file__).parent / "grammar.lark"
_lark_parser: Lark | None = None


def _get_parser() -> Lark:
    global _lark_parser
    if _lark_parser is None:
        grammar_text = _GRAMMAR_PATH.read_text(encoding="utf-8")
        _lark_parser = Lark(
            grammar_text,
            parser="earley",
            propagate_positions=True,
        )
    return _lark_parser


# ---------------------------------------------------------------------------
# Transformer: Lark parse tree -> condition nodes
# ---------------------------------------------------------------------------

class ConditionTransformer(Transformer):
    """Converts a Lark parse tree into ConditionGroup / ConditionValue nodes."""

    def or_group(self, items):
        return ConditionGroup(comparison_type=ComparisonType.OR, children=tuple(items))

    def and_group(self, items):
        return ConditionGroup(comparison_type=ComparisonType.AND, children=tuple(items))

    def unary_leaf(self, items):
        # items: FIELD, UNARY_OP, [message]
        return ConditionValue(
            field=str(items[0]),
            condition=Operator(str(items[1])),
            message=items[2] if len(items) > 2 else None,
        )

    def binary_leaf(self, items):
        # items: FIELD, BINARY_OP, value, [message]
        return ConditionValue(
            field=str(items[0]),
            condition=Operator(str(items[1])),
            value=items[2],
            message=items[3] if len(items) > 3 else None,
        )

    def message(self, items):
        return _unquote(items[0])

    # --- Values ---

    def string_val(self, items):
        return _unquote(items[0])

    def number_val(self, items):
        s = str(items[0])
        if "." in s or "e" in s or "E" in s:
            return float(s)
        return int(s)

    def true_val(self, _items):
        return True

    def false_val(self, _items):
        return False

    def null_val(self, _items):
        return None

    def ref_val(self, items):
        return str(items[0])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_UNESCAPE_RE = re.compile(r'\\([\\"nr])')
_ESCAPES = {"\\": "\\", '"': '"', "n": "\n", "r": "\r"}
_REF_RE = re.compile(r"\$[A-Za-z0-9_][A-Za-z0-9_\-]*(\.[A-Za-z0-9_\-]+)*")
_FIELD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*(\.[A-Za-z0-9_\-]+)*")
_KEYWORDS = {"and", "or", "true", "false", "null"}


def _unquote(token: Token) -> str:
    """Remove surrounding quotes and undo the \\\\, \\", \\n and \\r escapes.

    Other backslashes are kept, so regex patterns like "\\d+" need no
    double escaping.
    """
    s = str(token)
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        return _UNESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], s[1:-1])
    return s


def _quote(text: str) -> str:
    # string literals are single-line, so line breaks are escaped
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_condition(source: str):
    """Parse condition shorthand and return a ConditionGroup or ConditionValue.

    Raises ParseError on syntax errors.
    """
    try:
        tree = _get_parser().parse(source)
        return ConditionTransformer().transform(tree)
    except UnexpectedInput as e:
        # lark reports -1 for both when the input ends early
        line = getattr(e, "line", -1)
        column = getattr(e, "column", -1)
        raise ParseError(
            message=str(e),
            line=line if line > 0 else None,
            column=column if column > 0 else None,
        ) from e


def format_condition(condition: Any) -> str:
    """Render a condition tree as shorthand.

    Raises FormRulesError for trees the shorthand cannot express (malformed
    nodes, empty groups, list or mapping values, NaN).
    """
    return _format_node(build_condition(condition), nested=False)


def _format_node(node: Any, nested: bool) -> str:
    if isinstance(node, ConditionValue):
        return _format_leaf(node)
    if isinstance(node, ConditionGroup):
        if not node.children:
            raise FormRulesError("Empty condition group has no shorthand form")
        if len(node.children) == 1:
            return _format_node(node.children[0], nested)
        if not isinstance(node.comparison_type, ComparisonType):
            raise FormRulesError(f"Unknown comparisonType {node.comparison_type!r}")
        joiner = f" {node.comparison_type.value} "
        text = joiner.join(_format_node(child, nested=True) for child in node.children)
        return f"({text})" if nested else text
    if isinstance(node, InvalidCondition):
        raise FormRulesError(f"Malformed condition: {node.reason}")
    raise FormRulesError(f"Unexpected condition node {type(node).__name__}")


def _format_leaf(leaf: ConditionValue) -> str:
    if not isinstance(leaf.field, str) or not _FIELD_RE.fullmatch(leaf.field) or leaf.field in _KEYWORDS:
        raise FormRulesError(f"Field name {leaf.field!r} has no shorthand form")
    if not isinstance(leaf.condition, Operator):
        raise FormRulesError(f"Unknown operator {leaf.condition!r}")

    parts = [leaf.field, leaf.condition.value]
    if not leaf.condition.is_unary:
        parts.append(_format_value(leaf.value))
    if leaf.message is not None:
        parts.append(_quote(str(leaf.message)))
    return " ".join(parts)


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            raise FormRulesError(f"Value {value!r} has no shorthand form")
        return repr(value)
    if isinstance(value, str):
        if _REF_RE.fullmatch(value):
            return value
        return _quote(value)
    raise FormRulesError(f"Value of type {type(value).__name__} has no shorthand form")
