"""Binding parsed payloads onto a charm's declared parameters."""

from typing import Any

from charmscript.parsing.scanner import split_top_level
from charmscript.parsing.script import compile_script
from charmscript.runtime.registry import CharmDescriptor


def _split_positional(text: str, count: int) -> list[str]:
    """Comma-split tier-1 text; the last parameter absorbs the remainder."""
    if count <= 1:
        return [text]
    parts = split_top_level(text, ",")
    if len(parts) > count:
        parts = parts[: count - 1] + [",".join(parts[count - 1:])]
    return [p.strip() for p in parts]


def bind_arguments(descriptor: CharmDescriptor, value: Any) -> Any:
    """Map a parsed value onto ``descriptor.params``.

    - maps bind by name (case-insensitive); integer keys fill the remaining
      parameters in order; unknown keys are kept
    - sequences bind positionally; surplus items are kept under their index
    - tier-1 text fills a single parameter whole, or is comma-split

    Lazy parameters holding text are compiled into ScriptBody.

    For ``$if`` (params condition/then/else, then/else lazy) the tier-2 map
    ``{0: "a == b", 1: "yes"}`` binds to ``condition="a == b"`` and
    ``then=ScriptBody("yes")``.
    """
    params = descriptor.params
    if not params:
        return value

    bound: dict[Any, Any] = {}
    if value is None:
        pass
    elif isinstance(value, dict):
        canonical = {p.lower(): p for p in params}
        positional: list[Any] = []
        for key, item in value.items():
            if isinstance(key, int):
                positional.append(item)
            else:
                bound[canonical.get(str(key).lower(), key)] = item
        remaining = [p for p in params if p not in bound]
        if remaining and len(positional) > len(remaining):
            head, tail = positional[: len(remaining) - 1], positional[len(remaining) - 1:]
            if all(isinstance(item, str) for item in tail):
                positional = [*head, "; ".join(tail)]
        for index, item in enumerate(positional):
            if index < len(remaining):
                bound[remaining[index]] = item
            else:
                bound[len(params) + index - len(remaining)] = item
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            bound[params[index] if index < len(params) else index] = item
    elif isinstance(value, str):
        for param, item in zip(params, _split_positional(value, len(params)), strict=False):
            bound[param] = item
    else:
        bound[params[0]] = value

    for param in descriptor.lazy:
        if isinstance(bound.get(param), str):
            bound[param] = compile_script(bound[param])
    return bound
