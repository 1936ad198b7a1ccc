"""formrules: declarative condition and computed-value engine for data-entry forms."""

from .ast_nodes import (
    NO_UPDATE,
    ArithmeticExpression,
    ArithmeticOperator,
    ComparisonType,
    ComputedCase,
    ComputedUpdate,
    ComputedValueConfig,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
    Operator,
)
from .builder import build_computed, build_condition
from .comparator import compare, is_empty
from .computed import ComputedEvaluator, evaluate_computed
from .dependencies import collect_computed_fields, collect_fields
from .errors import FormRulesError, ParseError, SchemaError
from .evaluator import ConditionEvaluator, collect_messages, evaluate
from .expression import format_condition, parse_condition
from .forms import (
    FieldConfig,
    FieldState,
    FormConfig,
    FormState,
    GroupConfig,
    GroupState,
    apply_computed,
    default_values,
    field_state,
    form_state,
    group_state,
    is_form_valid,
    item_values,
    list_item_states,
)
from .loader import load_computed, load_condition, load_file, load_form, load_json, load_yaml
from .logging import Diagnostic, DiagnosticLog, LogLevel
from .resolver import resolve
from .validator import Validator

__all__ = [
    "evaluate",
    "collect_messages",
    "collect_fields",
    "collect_computed_fields",
    "evaluate_computed",
    "compare",
    "is_empty",
    "resolve",
    "ConditionEvaluator",
    "ComputedEvaluator",
    "Validator",
    "build_condition",
    "build_computed",
    "load_condition",
    "load_computed",
    "load_form",
    "load_yaml",
    "load_json",
    "load_file",
    "parse_condition",
    "format_condition",
    "FieldConfig",
    "GroupConfig",
    "FormConfig",
    "FieldState",
    "GroupState",
    "FormState",
    "field_state",
    "group_state",
    "form_state",
    "is_form_valid",
    "item_values",
    "list_item_states",
    "default_values",
    "apply_computed",
    "Operator",
    "ComparisonType",
    "ArithmeticOperator",
    "ConditionValue",
    "ConditionGroup",
    "InvalidCondition",
    "ArithmeticExpression",
    "ComputedCase",
    "ComputedValueConfig",
    "ComputedUpdate",
    "NO_UPDATE",
    "Diagnostic",
    "DiagnosticLog",
    "LogLevel",
    "FormRulesError",
    "ParseError",
    "SchemaError",
]
