"""Variable interpolation.

Tokens:
- ``$$name`` / ``$$a.b.c``: lookup, left intact when unresolved
- ``$$1``, ``$$2``...: 1-indexed positional argument, empty when out of range
- ``$$*``: every positional argument joined by one space

A single left-to-right pass: substituted text is never re-scanned.
"""

import re
from collections.abc import Callable, Sequence
from typing import Any

from charmscript.foundation.utils import render_value

TOKEN_PATTERN = re.compile(r"\$\$(?:(\*)|([1-9]\d*)|([A-Za-z_]\w*(?:\.\w+)*))")

MISSING = object()
"""Returned by a lookup for an unresolved name."""

Lookup = Callable[[str], Any]


def _resolve_name(name: str, lookup: Lookup) -> tuple[Any, str]:
    """Resolve the longest dotted prefix; return (value, unconsumed suffix)."""
    parts = name.split(".")
    for end in range(len(parts), 0, -1):
        value = lookup(".".join(parts[:end]))
        if value is not MISSING:
            rest = parts[end:]
            return value, ("." + ".".join(rest)) if rest else ""
    return MISSING, ""


def _token_value(match: re.Match[str], lookup: Lookup, positional: Sequence[Any]) -> tuple[Any, str]:
    star, index, name = match.groups()
    if star:
        return " ".join(render_value(a) for a in positional), ""
    if index:
        i = int(index) - 1
        return (positional[i] if i < len(positional) else ""), ""
    return _resolve_name(name, lookup)


def interpolate_text(text: str, lookup: Lookup, positional: Sequence[Any] = ()) -> Any:
    """Substitute tokens in one string.

    A string that is exactly one resolvable token yields the raw value, so
    lists and maps keep their type.
    """
    if "$$" not in text:
        return text

    whole = TOKEN_PATTERN.fullmatch(text.strip())
    if whole is not None:
        value, rest = _token_value(whole, lookup, positional)
        if value is not MISSING and not rest:
            return value

    def replace(match: re.Match[str]) -> str:
        value, rest = _token_value(match, lookup, positional)
        if value is MISSING:
            return match.group(0)
        return render_value(value) + rest

    return TOKEN_PATTERN.sub(replace, text)


def interpolate(value: Any, lookup: Lookup, positional: Sequence[Any] = ()) -> Any:
    """Interpolate every string leaf of a value.

    Recurses through lists, tuples and dict values; other leaves pass through.
    """
    if isinstance(value, str):
        return interpolate_text(value, lookup, positional)
    if isinstance(value, dict):
        return {k: interpolate(v, lookup, positional) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [interpolate(v, lookup, positional) for v in value]
    return value
