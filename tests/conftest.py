"""Shared fixtures for formrules tests."""

import pytest

from formrules.computed import ComputedEvaluator
from formrules.evaluator import ConditionEvaluator
from formrules.loader import load_yaml
from formrules.logging import DiagnosticLog
from formrules.validator import Validator


@pytest.fixture
def log():
    return DiagnosticLog()


@pytest.fixture
def evaluator(log):
    return ConditionEvaluator(sink=log)


@pytest.fixture
def computed(log):
    return ComputedEvaluator(sink=log)


@pytest.fixture
def validator():
    return Validator()


# ---------------------------------------------------------------------------
# Sample conditions
# ---------------------------------------------------------------------------

PRICE_RANGE = {
    "comparisonType": "or",
    "children": [
        {
            "comparisonType": "and",
            "children": [
                {"field": "minPrice", "condition": "∅"},
                {"field": "maxPrice", "condition": "∅"},
            ],
        },
        {
            "field": "minPrice",
            "condition": "<=",
            "value": "$maxPrice",
            "message": "Min price must not exceed max price",
        },
    ],
}

ORDER_TYPE = {
    "cases": [
        {
            "condition": {
                "comparisonType": "and",
                "children": [
                    {"field": "category", "condition": "===", "value": "B"},
                    {"field": "enabled", "condition": "===", "value": True},
                ],
            },
            "value": "manual",
        },
    ],
    "default": "auto",
}


@pytest.fixture
def price_range():
    return PRICE_RANGE


@pytest.fixture
def order_type():
    return ORDER_TYPE


# ---------------------------------------------------------------------------
# Sample form
# ---------------------------------------------------------------------------

SAMPLE_FORM = '''
groups:
  - name: Account
    fields:
      - name: email
        type: input
        label: Email
        validateCondition:
          comparisonType: and
          children:
            - field: email
              condition: "!∅"
              message: Email is required
            - field: email
              condition: match
              value: "^[^@]+@[^@]+$"
              message: Email is invalid
      - name: password
        type: input
        label: Password
        inputType: password
      - name: confirmPassword
        type: input
        label: Confirm password
        validateCondition:
          field: confirmPassword
          condition: "==="
          value: $password
          message: Passwords must match

  - name: Pricing
    order: 1
    visibleCondition:
      field: hasPricing
      condition: "==="
      value: true
    validateCondition:
      comparisonType: or
      children:
        - comparisonType: and
          children:
            - {field: minPrice, condition: "∅"}
            - {field: maxPrice, condition: "∅"}
        - field: minPrice
          condition: "<="
          value: $maxPrice
          message: Min price must not exceed max price
    fields:
      - {name: minPrice, type: inputNumber, label: Min, min: 0}
      - {name: maxPrice, type: inputNumber, label: Max}
      - name: quantity
        type: inputNumber
        label: Quantity
        defaultValue: 1
      - name: total
        type: money
        label: Total
        disabledCondition: {field: hasPricing, condition: "===", value: true}
        computedValue:
          cases:
            - condition: {field: minPrice, condition: "!∅"}
              value: {left: $minPrice, operator: "*", right: $quantity}
      - name: orderType
        type: select
        label: Order type
        options:
          - {label: Auto, value: auto}
          - {label: Manual, value: manual}
        computedValue:
          cases:
            - condition:
                comparisonType: and
                children:
                  - {field: category, condition: "===", value: B}
                  - {field: enabled, condition: "===", value: true}
              value: manual
          default: auto

  - name: Items
    order: 2
    fields:
      - name: lines
        type: dynamicList
        label: Lines
        itemFields:
          - name: sku
            type: input
            label: SKU
            validateCondition: {field: sku, condition: "!∅", message: SKU is required}
          - name: note
            type: input
            label: Note
            visibleCondition: {field: sku, condition: startsWith, value: "X"}
'''


@pytest.fixture
def form_source():
    return SAMPLE_FORM


@pytest.fixture
def form():
    return load_yaml(SAMPLE_FORM)
