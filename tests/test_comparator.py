"""Tests for formrules.comparator and formrules.resolver."""

import math
from datetime import date, datetime

import pytest

from formrules.ast_nodes import Operator
from formrules.comparator import compare, is_empty, iso_to_millis, strict_equals, to_number
from formrules.resolver import resolve


class Hostile:
    """Raises from every conversion and comparison."""

    def __float__(self):
        raise RuntimeError("no float for you")

    def __eq__(self, other):
        raise RuntimeError("no equality for you")

    __hash__ = object.__hash__


# ---------------------------------------------------------------------------
# Operand resolution
# ---------------------------------------------------------------------------

class TestResolve:

    def test_field_ref(self):
        assert resolve("$a", {"a": 5}) == 5

    def test_missing_ref_is_none(self):
        assert resolve("$missing", {}) is None

    def test_literals_pass_through(self):
        assert resolve("abc", {"abc": 1}) == "abc"
        assert resolve(5, {}) == 5
        assert resolve(None, {}) is None

    def test_referenced_value_not_resolved_again(self):
        assert resolve("$b", {"b": "$c", "c": 1}) == "$c"


# ---------------------------------------------------------------------------
# Number coercion
# ---------------------------------------------------------------------------

class TestToNumber:

    def test_strings(self):
        assert to_number("12") == 12
        assert to_number(" 12 ") == 12
        assert to_number("-1.5") == -1.5
        assert to_number("1e3") == 1000
        assert to_number("0x10") == 16
        assert to_number("") == 0
        assert to_number("Infinity") == math.inf

    def test_unparseable_strings_are_nan(self):
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number("1_000"))
        assert math.isnan(to_number("inf"))

    def test_none_bool_and_containers(self):
        assert math.isnan(to_number(None))
        assert to_number(True) == 1
        assert to_number(False) == 0
        assert to_number([]) == 0
        assert to_number([5]) == 5
        assert math.isnan(to_number([1, 2]))
        assert math.isnan(to_number({}))

    def test_dates(self):
        assert to_number(datetime(1970, 1, 1, 0, 0, 1)) == 1000
        assert to_number(date(1970, 1, 2)) == 86_400_000


class TestIsoDates:

    def test_epoch_millis(self):
        assert iso_to_millis("1970-01-01T00:00:01.500Z") == 1500
        assert iso_to_millis("1970-01-01T00:00:01") == 1000

    def test_impossible_date_is_nan(self):
        assert math.isnan(iso_to_millis("2024-13-01T00:00:00Z"))


# ---------------------------------------------------------------------------
# Ordering operators
# ---------------------------------------------------------------------------

class TestOrdering:

    def test_numbers(self):
        assert compare(5, "<", 10)
        assert compare(10, ">", 5)
        assert compare(5, "<=", 5)
        assert compare(5, ">=", 5)
        assert not compare(5, ">", 5)

    def test_numeric_strings_compare_numerically(self):
        assert compare("5", "<", "10")
        assert compare("100", ">", 20)

    def test_nan_comparisons_are_false(self):
        for op in ("<", ">", "<=", ">="):
            assert not compare("abc", op, 5)
            assert not compare(None, op, 5)

    def test_empty_string_is_zero(self):
        assert compare("", "<", 1)

    def test_booleans_coerce(self):
        assert compare(True, ">", 0)

    def test_iso_dates(self):
        assert compare("2024-01-15T10:00:00.000Z", "<", "2024-02-20T10:00:00.000Z")
        assert compare("2024-03-01T00:00:00Z", ">", "2024-02-29T23:59:59Z")
        assert not compare("2024-01-15T10:00:00.000Z", ">", "2024-02-20T10:00:00.000Z")

    def test_invalid_iso_date_compares_false(self):
        assert not compare("2024-13-01T00:00:00Z", "<", "2025-01-01T00:00:00Z")
        assert not compare("2024-13-01T00:00:00Z", ">=", "2025-01-01T00:00:00Z")

    def test_datetime_against_iso_string(self):
        assert compare(datetime(2024, 1, 1), "<", "2024-06-01T00:00:00Z")

    def test_operator_enum_accepted(self):
        assert compare(1, Operator.LT, 2)


# ---------------------------------------------------------------------------
# Strict equality
# ---------------------------------------------------------------------------

class TestStrictEquality:

    def test_same_values(self):
        assert compare(1, "===", 1.0)
        assert compare("a", "===", "a")
        assert compare(None, "===", None)
        assert compare(True, "===", True)

    def test_no_coercion(self):
        assert not compare("1", "===", 1)
        assert not compare(True, "===", 1)
        assert not compare(0, "===", False)
        assert not compare(None, "===", 0)

    def test_nan_never_equal(self):
        assert not compare(math.nan, "===", math.nan)

    def test_not_equal_is_inverse(self):
        assert compare("1", "!==", 1)
        assert not compare(2, "!==", 2)

    def test_strict_equals_helper(self):
        assert strict_equals([1, 2], [1, 2])
        assert not strict_equals(1, "1")


# ---------------------------------------------------------------------------
# Emptiness
# ---------------------------------------------------------------------------

class TestEmptiness:

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ()])
    def test_empty(self, value):
        assert is_empty(value)
        assert compare(value, "∅", None)
        assert not compare(value, "!∅", None)

    @pytest.mark.parametrize("value", [0, False, math.nan, "a", [0], {"a": 1}])
    def test_not_empty(self, value):
        assert not is_empty(value)
        assert compare(value, "!∅", None)

    def test_unary_ignores_comparison_value(self):
        assert compare("x", "!∅", "anything")


# ---------------------------------------------------------------------------
# String and list operators
# ---------------------------------------------------------------------------

class TestStringOperators:

    def test_includes_substring(self):
        assert compare("hello world", "includes", "world")
        assert not compare("hello", "includes", "world")

    def test_includes_list_is_strict(self):
        assert compare([1, 2, 3], "includes", 2)
        assert not compare([1, 2], "includes", "2")
        assert not compare([True], "includes", 1)

    def test_includes_finds_nan(self):
        assert compare([math.nan], "includes", math.nan)

    def test_includes_other_types_false(self):
        assert not compare(123, "includes", 1)
        assert not compare("abc", "includes", 5)

    def test_starts_and_ends_with(self):
        assert compare("foobar", "startsWith", "foo")
        assert compare("foobar", "endsWith", "bar")
        assert not compare(123, "startsWith", "1")
        assert not compare("foobar", "endsWith", None)

    def test_match(self):
        assert compare("test@example.com", "match", r"^[^@]+@[^@]+\.\w+$")
        assert not compare("not-an-email", "match", r"^[^@]+@[^@]+\.\w+$")
        assert compare("abc123", "match", r"\d+")

    def test_match_non_string_false(self):
        assert not compare(123, "match", r"\d+")

    def test_invalid_regex(self, log):
        assert not compare("x", "match", "[invalid(regex", sink=log)
        assert log.messages() == ["Invalid regex pattern: [invalid(regex"]


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestCompareFailures:

    def test_unknown_operator(self, log):
        assert not compare(1, "xor", 2, sink=log)
        assert len(log.errors) == 1
        assert "Unknown operator" in log.messages()[0]

    def test_conversion_error_is_contained(self, log):
        assert not compare(Hostile(), "<", 5, sink=log)
        assert log.messages() == ["Error comparing values"]

    def test_equality_error_is_contained(self, log):
        assert not compare(Hostile(), "===", object(), sink=log)
        assert len(log.errors) == 1
