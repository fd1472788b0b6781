"""Core utility charms: $say, $wait and $data."""

import asyncio
import json
import logging
from typing import Any

from charmscript.foundation.errors import InvalidArguments
from charmscript.foundation.utils import parse_duration, render_value
from charmscript.parsing.tiers import Tier
from charmscript.runtime.context import ExecutionContext
from charmscript.runtime.registry import CharmRegistry

logger = logging.getLogger(__name__)

DATA_ACTIONS = ("get", "set", "delete", "has", "add")


def _decode(value: Any) -> Any:
    """Decode a JSON object/array given as text; other values pass through."""
    if isinstance(value, str) and value.strip()[:1] in ("{", "["):
        try:
            return json.loads(value)
        except (ValueError, RecursionError):
            return value
    return value


def register_builtin_charms(registry: CharmRegistry) -> None:
    """Register $say, $wait and $data."""

    @registry.register(
        "say",
        params=("content",),
        syntax=(Tier.POSITIONAL,),
        usage="$say[text]",
        examples=("$say[Hello $$1!]",),
    )
    async def say(args: dict[str, Any], ctx: ExecutionContext) -> str:
        """Send a message to the current scope."""
        return await ctx.send(args.get("content", ""))

    @registry.register("wait", params=("duration",), syntax=(Tier.POSITIONAL,), usage="$wait[500ms]")
    async def wait(args: dict[str, Any], ctx: ExecutionContext) -> None:
        """Pause this script cooperatively."""
        raw = args.get("duration", "")
        try:
            seconds = parse_duration(raw)
        except ValueError as e:
            raise InvalidArguments("wait", f"invalid duration {render_value(raw)!r}") from e
        await asyncio.sleep(seconds)

    @registry.register(
        "data",
        params=("action", "key", "value"),
        usage="$data[action;key;value]",
        examples=("$data[set;score;10]", "$data[add;score;5]", "$data[get;score]"),
    )
    async def data(args: dict[str, Any], ctx: ExecutionContext) -> Any:
        """Read and write the shared variable store."""
        action = render_value(args.get("action", "")).strip().lower()
        key = render_value(args.get("key", "")).strip()
        if action not in DATA_ACTIONS:
            raise InvalidArguments("data", f"unknown action {action!r}, expected one of {', '.join(DATA_ACTIONS)}")
        if not key:
            raise InvalidArguments("data", "missing key")

        store = ctx.variables
        if action == "get":
            return store.get(key)
        if action == "has":
            return store.has(key)
        if action == "delete":
            return store.delete(key)
        if action == "set":
            value = _decode(args.get("value"))
            store.set(key, value)
            return value

        amount = args.get("value", 1)
        try:
            step = float(render_value(amount)) if amount not in (None, "") else 1
        except ValueError as e:
            raise InvalidArguments("data", f"'add' needs a number, got {render_value(amount)!r}") from e
        return store.increment(key, step)
