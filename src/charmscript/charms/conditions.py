"""Comparison primitive shared by $if, $while, $condition and $assert.

Text conditions:
- ``a || b`` and ``a && b`` (``||`` binds loosest)
- binary operators ``=== !== == != >= <= > <``
- word operators ``includes matches startsWith endsWith typeof``
- no operator: truthiness of the text

Structured conditions are ``{"left": ..., "operator": ..., "right": ...}``.
"""

import re
from typing import Any

from charmscript.foundation.errors import InvalidArguments, UnknownOperator
from charmscript.foundation.utils import render_value

BINARY_OPERATORS = ("===", "!==", "==", "!=", ">=", "<=", ">", "<")
WORD_OPERATORS = ("includes", "matches", "startsWith", "endsWith", "typeof")

ALIASES: dict[str, str] = {
    "equals": "==",
    "notEquals": "!=",
    "greater": ">",
    "greaterOrEquals": ">=",
    "less": "<",
    "lessOrEquals": "<=",
}

FALSY_TEXT = frozenset({"", "false", "0", "null", "none", "undefined", "no", "off"})

_NULL_TEXT = frozenset({"null", "none", "undefined"})
_NUMBER = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$")
_WORD_SPLIT = re.compile(r"\s+(" + "|".join(WORD_OPERATORS) + r")\s+")


def is_truthy(value: Any) -> bool:
    """Script truthiness: falsy text, zero, None and empty containers are false."""
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_TEXT
    return value is not None and bool(value)


def coerce(value: Any) -> Any:
    """Loose coercion of text to number, boolean or None."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in _NULL_TEXT:
        return None
    if _NUMBER.match(text):
        number = float(text)
        return int(number) if number.is_integer() and "." not in text and "e" not in lowered else number
    return text


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def _as_number(value: Any) -> float | None:
    value = coerce(value)
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _loose_equals(left: Any, right: Any) -> bool:
    a, b = coerce(left), coerce(right)
    if a is None or b is None:
        return a is None and b is None
    na, nb = _as_number(a), _as_number(b)
    if na is not None and nb is not None:
        return na == nb
    if isinstance(a, (list, dict)) or isinstance(b, (list, dict)):
        return a == b
    return render_value(a) == render_value(b)


def _strict_equals(left: Any, right: Any) -> bool:
    if type_name(left) != type_name(right):
        return False
    return left == right


def _order(left: Any, right: Any) -> tuple[Any, Any]:
    na, nb = _as_number(left), _as_number(right)
    if na is not None and nb is not None:
        return na, nb
    return render_value(left), render_value(right)


def _includes(left: Any, right: Any) -> bool:
    if isinstance(left, (list, tuple)):
        return any(_loose_equals(item, right) for item in left)
    if isinstance(left, dict):
        return render_value(right) in left
    return render_value(right) in render_value(left)


def _matches(left: Any, right: Any) -> bool:
    try:
        return re.search(render_value(right), render_value(left)) is not None
    except re.error as e:
        raise InvalidArguments("matches", f"invalid pattern {render_value(right)!r}: {e}") from e


def compare(left: Any, operator: str, right: Any) -> bool:
    """Apply one comparison operator.

    Raises:
        UnknownOperator: For an operator outside the table.
    """
    op = ALIASES.get(operator, operator)
    if op == "==":
        return _loose_equals(left, right)
    if op == "!=":
        return not _loose_equals(left, right)
    if op == "===":
        return _strict_equals(left, right)
    if op == "!==":
        return not _strict_equals(left, right)
    if op in (">", ">=", "<", "<="):
        a, b = _order(left, right)
        if op == ">":
            return a > b
        if op == ">=":
            return a >= b
        if op == "<":
            return a < b
        return a <= b
    if op == "includes":
        return _includes(left, right)
    if op == "matches":
        return _matches(left, right)
    if op == "startsWith":
        return render_value(left).startswith(render_value(right))
    if op == "endsWith":
        return render_value(left).endswith(render_value(right))
    if op == "typeof":
        return type_name(coerce(left)) == render_value(right).strip()
    raise UnknownOperator(operator)


def _compare_text(atom: str) -> bool:
    for op in BINARY_OPERATORS:
        index = atom.find(op)
        if index >= 0:
            return compare(atom[:index].strip(), op, atom[index + len(op):].strip())
    match = _WORD_SPLIT.search(atom)
    if match:
        return compare(atom[: match.start()].strip(), match.group(1), atom[match.end():].strip())
    return is_truthy(atom)


def evaluate_text(text: str) -> bool:
    """Evaluate a text condition.

    Examples:
        >>> evaluate_text("5 > 3 && abc startsWith a")
        True
        >>> evaluate_text("off")
        False
    """
    return any(
        all(_compare_text(part) for part in clause.split("&&"))
        for clause in text.split("||")
    )


def evaluate_condition(condition: Any) -> bool:
    """Evaluate an already-interpolated condition of any shape."""
    if isinstance(condition, bool):
        return condition
    if isinstance(condition, dict) and "operator" in condition:
        return compare(condition.get("left"), str(condition["operator"]), condition.get("right"))
    if isinstance(condition, str):
        return evaluate_text(condition)
    return is_truthy(condition)
