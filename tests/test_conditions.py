"""Tests for the comparison primitive."""

import pytest

from charmscript.charms.conditions import (
    coerce,
    compare,
    evaluate_condition,
    evaluate_text,
    is_truthy,
)
from charmscript.foundation.errors import InvalidArguments, UnknownOperator


class TestCompare:
    """Operator table."""

    @pytest.mark.parametrize(
        ("left", "operator", "right", "expected"),
        [
            ("10", ">", "9", True),
            ("abc", "<", "abd", True),
            ("3", ">=", "3", True),
            ("2", "<=", "1", False),
            ("1", "==", 1, True),
            ("true", "==", True, True),
            ("null", "==", None, True),
            ("a", "!=", "b", True),
            (1, "===", "1", False),
            (1, "===", 1, True),
            (1, "!==", "1", True),
            (["a", "b"], "includes", "b", True),
            ("hello world", "includes", "world", True),
            ({"k": 1}, "includes", "k", True),
            ("abc123", "matches", r"\d+", True),
            ("hello", "startsWith", "he", True),
            ("hello", "endsWith", "lo", True),
            ("5", "typeof", "number", True),
            ([1], "typeof", "array", True),
            ("text", "typeof", "string", True),
            (3, "greaterOrEquals", 3, True),
            (2, "less", 3, True),
            ("x", "equals", "x", True),
            ("x", "notEquals", "x", False),
        ],
    )
    def test_operators(self, left, operator, right, expected):
        assert compare(left, operator, right) is expected

    def test_unknown_operator(self):
        with pytest.raises(UnknownOperator) as exc_info:
            compare(1, "<>", 2)
        assert exc_info.value.message == "Invalid operator: <>"

    def test_invalid_pattern(self):
        with pytest.raises(InvalidArguments):
            compare("abc", "matches", "(")


class TestTextConditions:
    """Conditions written as text."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("5 > 3", True),
            ("5 > 3 && 2 > 1", True),
            ("5 > 3 && 2 > 4", False),
            ("1 > 2 || 3 > 2", True),
            ("a == a", True),
            ("5 === 5", True),
            ("hello includes ell", True),
            ("hello startsWith x", False),
            ("yes", True),
            ("off", False),
            ("", False),
            ("0", False),
        ],
    )
    def test_evaluate_text(self, text, expected):
        assert evaluate_text(text) is expected

    def test_structured_condition(self):
        assert evaluate_condition({"left": "a", "operator": "==", "right": "a"}) is True

    def test_boolean_condition(self):
        assert evaluate_condition(False) is False


class TestTruthiness:
    """Falsy text and values."""

    @pytest.mark.parametrize("value", ["", "false", "0", "null", "none", "undefined", "no", "off", 0, None, [], {}])
    def test_falsy(self, value):
        assert is_truthy(value) is False

    @pytest.mark.parametrize("value", ["x", "true", 1, [0], {"a": 1}, "False?"])
    def test_truthy(self, value):
        assert is_truthy(value) is True

    def test_coerce(self):
        assert coerce("42") == 42
        assert coerce("4.5") == 4.5
        assert coerce("TRUE") is True
        assert coerce("undefined") is None
        assert coerce("abc") == "abc"
