"""Tests for formrules.builder and formrules.loader."""

import json

import pytest
import yaml

from formrules.ast_nodes import (
    ArithmeticExpression,
    ArithmeticOperator,
    ComparisonType,
    ConditionGroup,
    ConditionValue,
    InvalidCondition,
    Operator,
)
from formrules.builder import build_computed, build_condition
from formrules.errors import ParseError, SchemaError
from formrules.loader import load_computed, load_condition, load_file, load_form, load_json, load_yaml


# ---------------------------------------------------------------------------
# Lenient building
# ---------------------------------------------------------------------------

class TestBuildCondition:

    def test_leaf(self):
        node = build_condition({"field": "age", "condition": ">=", "value": 18, "message": "Too young"})
        assert node == ConditionValue(field="age", condition=Operator.GE, value=18, message="Too young")

    def test_group(self, price_range):
        node = build_condition(price_range)
        assert isinstance(node, ConditionGroup)
        assert node.comparison_type == ComparisonType.OR
        assert isinstance(node.children[0], ConditionGroup)
        assert node.children[1].value == "$maxPrice"

    def test_typed_node_passes_through(self):
        node = ConditionValue(field="a", condition=Operator.EMPTY)
        assert build_condition(node) is node

    def test_unknown_operator_kept_raw(self):
        node = build_condition({"field": "a", "condition": "~="})
        assert node.condition == "~="
        assert not isinstance(node.condition, Operator)

    def test_malformed_nodes(self):
        assert isinstance(build_condition({"invalid": "object"}), InvalidCondition)
        assert isinstance(build_condition("age > 3"), InvalidCondition)
        assert isinstance(build_condition({"comparisonType": "and", "children": {}}), InvalidCondition)

    def test_to_dict_round_trip(self, price_range):
        assert build_condition(price_range).to_dict() == price_range


class TestBuildComputed:

    def test_arithmetic(self):
        config = build_computed({"cases": [], "default": {"left": "$a", "operator": "+", "right": 1}})
        assert config.has_default
        assert config.default == ArithmeticExpression(left="$a", operator=ArithmeticOperator.ADD, right=1)

    def test_null_default_is_kept(self):
        assert build_computed({"default": None}).has_default
        assert not build_computed({"cases": []}).has_default

    def test_to_dict_round_trip(self, order_type):
        assert build_computed(order_type).to_dict() == order_type

    def test_unusable_shape(self):
        with pytest.raises(SchemaError):
            build_computed(["not", "a", "mapping"])
        with pytest.raises(SchemaError, match="cases"):
            build_computed({"cases": "nope"})


# ---------------------------------------------------------------------------
# Strict loading
# ---------------------------------------------------------------------------

class TestLoadCondition:

    def test_valid(self, price_range):
        assert isinstance(load_condition(price_range), ConditionGroup)

    def test_lists_every_problem(self):
        raw = {
            "comparisonType": "and",
            "children": [
                {"comparisonType": "or", "children": []},
                {"field": "a", "condition": "~="},
            ],
        }
        with pytest.raises(SchemaError) as exc:
            load_condition(raw)
        paths = [e.path for e in exc.value.errors]
        assert paths == ["condition.children[0].children", "condition.children[1].condition"]

    def test_load_computed(self, order_type):
        assert load_computed(order_type).default == "auto"
        with pytest.raises(SchemaError):
            load_computed({"cases": [], "default": {"left": 1, "operator": "%", "right": 2}})

    def test_literal_division_by_zero_evaluates_to_none(self, computed, log):
        config = load_computed({"cases": [], "default": {"left": 1, "operator": "/", "right": 0}})
        assert config.default == ArithmeticExpression(left=1, operator=ArithmeticOperator.DIV, right=0)
        assert computed.evaluate(config, {}).value is None
        assert log.messages() == ["evaluate_computed: division by zero"]


class TestLoadForm:

    def test_yaml(self, form):
        assert [g.name for g in form.groups] == ["Account", "Pricing", "Items"]
        email = form.get_field("email")
        assert email.type == "input"
        assert email.label == "Email"
        assert isinstance(email.validate_condition, ConditionGroup)

    def test_extra_keys_become_props(self, form):
        assert form.get_field("password").props == {"inputType": "password"}
        assert form.get_field("minPrice").props == {"min": 0}

    def test_options_and_item_fields(self, form):
        order_type = form.get_field("orderType")
        assert [o.value for o in order_type.options] == ["auto", "manual"]
        lines = form.get_field("lines")
        assert [f.name for f in lines.item_fields] == ["sku", "note"]

    def test_computed_and_defaults(self, form):
        assert form.get_field("quantity").default_value == 1
        total = form.get_field("total")
        assert total.computed_value.cases[0].value.operator == ArithmeticOperator.MUL
        assert form.get_field("orderType").computed_value.default == "auto"

    def test_group_order(self, form):
        assert [g.order for g in form.groups] == [0, 1, 2]

    def test_json(self, form_source):
        source = json.dumps(yaml.safe_load(form_source))
        assert load_json(source) == load_yaml(form_source)

    def test_missing_groups(self):
        with pytest.raises(SchemaError, match="groups"):
            load_form({})

    def test_bad_order(self):
        with pytest.raises(SchemaError, match="must be a number"):
            load_form({"groups": [{"name": "g", "order": "first", "fields": []}]})

    def test_invalid_form_lists_errors(self):
        raw = {"groups": [{"name": "g", "fields": [
            {"name": "a", "type": "input"},
            {"name": "a", "type": "slider"},
        ]}]}
        with pytest.raises(SchemaError) as exc:
            load_form(raw)
        messages = [e.message for e in exc.value.errors]
        assert any("Unknown field type 'slider'" in m for m in messages)
        assert any("Duplicate field name 'a'" in m for m in messages)

    def test_computed_path_in_error(self):
        raw = {"groups": [{"name": "g", "fields": [
            {"name": "a", "type": "input", "computedValue": {"cases": "nope"}},
        ]}]}
        with pytest.raises(SchemaError) as exc:
            load_form(raw)
        assert exc.value.path == "groups[0].fields[0].computedValue.cases"


class TestDocuments:

    def test_invalid_yaml(self):
        with pytest.raises(ParseError) as exc:
            load_yaml("groups: [unclosed")
        assert exc.value.line is not None

    def test_invalid_json(self):
        with pytest.raises(ParseError) as exc:
            load_json('{"groups": }')
        assert exc.value.line == 1

    def test_load_file(self, tmp_path, form_source):
        yaml_path = tmp_path / "form.yaml"
        yaml_path.write_text(form_source, encoding="utf-8")
        json_path = tmp_path / "form.json"
        json_path.write_text('{"groups": [{"name": "g", "fields": []}]}', encoding="utf-8")

        assert len(load_file(yaml_path).groups) == 3
        assert load_file(str(json_path)).groups[0].name == "g"

    def test_load_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_file(tmp_path / "nope.yaml")
