"""CLI for formrules: check forms, evaluate states, inspect conditions."""

from __future__ import annotations

import argparse
import json
import sys

from .computed import ComputedEvaluator
from .dependencies import collect_fields
from .errors import FormRulesError
from .evaluator import ConditionEvaluator
from .expression import parse_condition
from .forms import apply_computed, default_values, form_state
from .loader import load_file
from .logging import DiagnosticLog


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="formrules",
        description="Declarative form conditions and computed values",
    )
    sub = parser.add_subparsers(dest="command")

    # check
    check_p = sub.add_parser("check", help="Validate a YAML/JSON form config")
    check_p.add_argument("file", help="Form config file")

    # eval
    eval_p = sub.add_parser("eval", help="Evaluate field and group states")
    eval_p.add_argument("file", help="Form config file")
    eval_p.add_argument("--values", dest="values_file", help="JSON file with form values")
    eval_p.add_argument("--touched", default="", help="Comma-separated touched fields, or 'all'")
    eval_p.add_argument("--json", action="store_true", dest="as_json", help="Print JSON instead of a summary")

    # compute
    compute_p = sub.add_parser("compute", help="Print computed value updates as JSON")
    compute_p.add_argument("file", help="Form config file")
    compute_p.add_argument("--values", dest="values_file", help="JSON file with form values")

    # parse
    parse_p = sub.add_parser("parse", help="Parse condition shorthand")
    parse_p.add_argument("expression", help='Condition, e.g. \'age >= 18 and email !∅\'')
    parse_p.add_argument("--values", dest="values_file", help="JSON file with values to evaluate against")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "parse":
            return _cmd_parse(args.expression, values_file=args.values_file)
        if args.command == "check":
            return _cmd_check(args.file)
        if args.command == "eval":
            return _cmd_eval(args.file, args.values_file, args.touched, as_json=args.as_json)
        if args.command == "compute":
            return _cmd_compute(args.file, args.values_file)
    except FileNotFoundError as e:
        print(f"Error: file not found: {e.filename}", file=sys.stderr)
        return 1
    except FormRulesError as e:
        print(f"Error: {e}", file=sys.stderr)
        for err in getattr(e, "errors", []):
            print(f"  {err}", file=sys.stderr)
        return 1

    return 0


def _read_values(path: str | None) -> dict:
    if not path:
        return {}
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise FormRulesError(f"Invalid values file: {e.msg}", line=e.lineno, column=e.colno) from e
    if not isinstance(data, dict):
        raise FormRulesError("Values file must contain a JSON object")
    return data


def _print_diagnostics(log: DiagnosticLog) -> None:
    if len(log):
        print(log.summary(), file=sys.stderr)


def _cmd_check(path: str) -> int:
    form = load_file(path)
    fields = list(form.iter_fields())
    computed = sum(1 for f in fields if f.computed_value is not None)
    print(f"Valid: {len(form.groups)} groups, {len(fields)} fields, {computed} computed")
    return 0


def _cmd_eval(path: str, values_file: str | None, touched_arg: str, as_json: bool = False) -> int:
    form = load_file(path)
    values = {**default_values(form), **_read_values(values_file)}

    if touched_arg.strip() == "all":
        touched = None
        force = True
    else:
        touched = {name.strip() for name in touched_arg.split(",") if name.strip()}
        force = False

    log = DiagnosticLog()
    state = form_state(form, values, touched, evaluator=ConditionEvaluator(sink=log), force_show_errors=force)
    if as_json:
        print(json.dumps(state.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(state.summary())
    _print_diagnostics(log)
    return 0 if state.valid else 2


def _cmd_compute(path: str, values_file: str | None) -> int:
    form = load_file(path)
    values = {**default_values(form), **_read_values(values_file)}
    log = DiagnosticLog()
    updates = apply_computed(form, values, ComputedEvaluator(sink=log))
    print(json.dumps(updates, indent=2, ensure_ascii=False, default=str))
    _print_diagnostics(log)
    return 0


def _cmd_parse(expression: str, values_file: str | None = None) -> int:
    condition = parse_condition(expression)
    print(json.dumps(condition.to_dict(), indent=2, ensure_ascii=False))
    print(f"Fields: {', '.join(collect_fields(condition))}")

    if values_file:
        values = _read_values(values_file)
        log = DiagnosticLog()
        evaluator = ConditionEvaluator(sink=log)
        result = evaluator.evaluate(condition, values)
        print(f"Result: {'true' if result else 'false'}")
        for msg in evaluator.collect_messages(condition, values):
            print(f"  ✗ {msg}")
        _print_diagnostics(log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
