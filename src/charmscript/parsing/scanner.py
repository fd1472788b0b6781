"""Bracket-depth aware scanning of script text.

Finds top-level ``$name[payload]`` invocations and splits payloads on
separators that are not nested inside brackets or braces. Only bracket
characters are tracked; quotes carry no meaning here.
"""

import re
from dataclasses import dataclass

from charmscript.foundation.errors import ErrorCode, ParseError

NAME_PATTERN = re.compile(r"[A-Za-z_]\w*")

_OPENERS = "[{("
_CLOSERS = "]})"


@dataclass(frozen=True, slots=True)
class InvocationSpan:
    """Location of one top-level invocation inside a script."""

    name: str
    payload: str
    start: int
    """Index of the ``$``."""

    end: int
    """Index just past the closing ``]``."""


def _matching_bracket(text: str, open_index: int) -> int:
    """Index of the ``]`` closing the ``[`` at ``open_index``, or -1."""
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_invocations(text: str) -> list[InvocationSpan]:
    """Find top-level invocations, left to right.

    ``$$name[`` is a variable token followed by a bracket, never an
    invocation.

    Raises:
        ParseError: For ``$name[`` with no matching ``]``.

    Examples:
        >>> [s.name for s in find_invocations('$embed[{"a":"$if[true;1;0]"}]')]
        ['embed']
    """
    spans: list[InvocationSpan] = []
    i = 0
    length = len(text)
    while i < length:
        if text[i] != "$":
            i += 1
            continue
        if i + 1 < length and text[i + 1] == "$":
            # Skip the whole $$token
            i += 2
            while i < length and (text[i].isalnum() or text[i] in "_.*"):
                i += 1
            continue

        match = NAME_PATTERN.match(text, i + 1)
        if match is None or match.end() >= length or text[match.end()] != "[":
            i += 1
            continue

        open_index = match.end()
        close_index = _matching_bracket(text, open_index)
        if close_index < 0:
            raise ParseError(
                ErrorCode.PARSE_UNTERMINATED,
                context={"charm": match.group(), "position": i},
            )
        spans.append(
            InvocationSpan(
                name=match.group(),
                payload=text[open_index + 1:close_index],
                start=i,
                end=close_index + 1,
            )
        )
        i = close_index + 1
    return spans


def split_top_level(text: str, separators: str = ";") -> list[str]:
    """Split on separator characters at bracket depth zero.

    Examples:
        >>> split_top_level("a;$if[x;y];b")
        ['a', '$if[x;y]', 'b']
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and depth > 0:
            depth -= 1
        if ch in separators and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def contains_top_level(text: str, chars: str) -> bool:
    """Whether any of ``chars`` occurs at bracket depth zero."""
    return len(split_top_level(text, chars)) > 1
