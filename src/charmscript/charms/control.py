"""Control-flow charms.

- $if / $condition / $switch: branching
- $while / $loop / $foreach: loops that push a LoopContext
- $break / $continue: signals caught by the innermost loop
- $try / $throw / $assert: script-level failures
- $sequence: run actions in order

Loop bodies, branches and catch/finally scripts are lazy parameters: they
arrive as ScriptBody and are evaluated here, only when needed.
"""

import asyncio
import json
import logging
import time
from typing import Any

from charmscript.charms.conditions import compare, evaluate_condition
from charmscript.foundation.errors import (
    AssertionFailed,
    BreakSignal,
    CharmError,
    ContinueSignal,
    InvalidArguments,
    LoopIterationLimit,
    LoopTimeout,
    ThrownError,
)
from charmscript.foundation.utils import parse_duration, render_value, safe_json_loads
from charmscript.parsing.interpolate import MISSING
from charmscript.parsing.scanner import split_top_level
from charmscript.parsing.script import ScriptBody
from charmscript.parsing.tiers import Tier
from charmscript.runtime.context import ExecutionContext, LoopContext, error_binding
from charmscript.runtime.registry import CharmRegistry

logger = logging.getLogger(__name__)

DEFAULT_THROW_MESSAGE = "An error was thrown"
DEFAULT_ASSERT_MESSAGE = "Assertion failed"


# =============================================================================
# Helpers
# =============================================================================


async def _condition(ctx: ExecutionContext, condition: Any) -> bool:
    """Evaluate a (possibly lazy) condition to a boolean."""
    if isinstance(condition, ScriptBody):
        condition = await ctx.evaluate(condition)
    elif isinstance(condition, dict):
        condition = await ctx.engine.resolve(condition, ctx)
    return evaluate_condition(condition)


async def _run_iteration(
    ctx: ExecutionContext,
    loop: LoopContext,
    body: Any,
    local: dict[str, Any],
    results: list[Any],
) -> bool:
    """Run one loop body. Returns False when the loop should stop."""
    loop.should_continue = False
    with ctx.bind(local):
        try:
            results.append(await ctx.evaluate(body))
        except BreakSignal as signal:
            logger.debug("$%s broke at iteration %d: %s", loop.charm, loop.iteration_index, signal.reason)
            return False
        except ContinueSignal:
            pass
    return True


def _to_items(ctx: ExecutionContext, value: Any, charm: str, *, follow: bool = True) -> list[Any]:
    """Coerce a loop source to a list.

    Text is tried as a JSON array, then as a variable name (one hop only),
    then split on commas.
    """
    if isinstance(value, ScriptBody):
        value = value.source
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return [{"key": k, "value": v} for k, v in value.items()]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except (ValueError, RecursionError):
                parsed = None
            if isinstance(parsed, list):
                return parsed
        stored = ctx.lookup(text) if follow else MISSING
        if stored is not MISSING:
            return _to_items(ctx, stored, charm, follow=False)
        return [part.strip() for part in split_top_level(text, ",") if part.strip()]
    raise InvalidArguments(charm, f"cannot iterate over {type(value).__name__}")


def _present(script: Any) -> Any:
    """None for an omitted or blank script segment."""
    if script is None:
        return None
    source = script.source if isinstance(script, ScriptBody) else script
    if isinstance(source, str) and not source.strip():
        return None
    return script


def _as_int(value: Any, charm: str, name: str) -> int:
    try:
        return int(float(render_value(value)))
    except ValueError as e:
        raise InvalidArguments(charm, f"'{name}' must be a number, got {render_value(value)!r}") from e


# =============================================================================
# Registration
# =============================================================================


def register_control_charms(registry: CharmRegistry) -> None:
    """Register the control-flow charms."""

    @registry.register(
        "if",
        params=("condition", "then", "else"),
        lazy=("then", "else"),
        usage="$if[condition;then;else]",
        examples=("$if[$$score >= 10;$say[win];$say[lose]]",),
    )
    async def if_(args: dict[str, Any], ctx: ExecutionContext) -> Any:
        """Evaluate then or else depending on a condition."""
        if await _condition(ctx, args.get("condition", "")):
            branch = args.get("then")
            return True if branch is None else await ctx.evaluate(branch)
        branch = args.get("else")
        return False if branch is None else await ctx.evaluate(branch)

    @registry.register(
        "condition",
        params=("left", "operator", "right", "then", "else"),
        lazy=("then", "else"),
        usage="$condition[left;operator;right;then;else]",
    )
    async def condition(args: dict[str, Any], ctx: ExecutionContext) -> Any:
        """Structured if: compare left and right with an explicit operator."""
        result = compare(args.get("left"), render_value(args.get("operator", "")).strip(), args.get("right"))
        branch = args.get("then") if result else args.get("else")
        if branch is None:
            return result
        return await ctx.evaluate(branch)

    @registry.register(
        "switch",
        params=("value", "cases", "default"),
        lazy=("cases", "default"),
        usage='$switch[{"value": "$$x", "cases": {"a": "...", "b": "..."}, "default": "..."}]',
    )
    async def switch(args: dict[str, Any], ctx: ExecutionContext) -> Any:
        """Evaluate the case script matching a value."""
        cases = args.get("cases") or {}
        if isinstance(cases, ScriptBody):
            try:
                cases = safe_json_loads(cases.source)
            except ValueError as e:
                raise InvalidArguments("switch", f"'cases' must be a JSON object ({e})") from e
        if not isinstance(cases, dict):
            raise InvalidArguments("switch", "'cases' must be a mapping")

        key = render_value(args.get("value"))
        for case, script in cases.items():
            if case != "default" and case == key:
                return await ctx.evaluate(script)
        fallback = args.get("default", cases.get("default"))
        return None if fallback is None else await ctx.evaluate(fallback)

    @registry.register(
        "while",
        params=("condition", "code", "timeout", "maxIterations"),
        lazy=("condition", "code"),
        usage="$while[condition;code;timeout;maxIterations]",
    )
    async def while_(args: dict[str, Any], ctx: ExecutionContext) -> list[Any]:
        """Repeat code while a condition holds, bounded by time and iterations."""
        limits = ctx.engine.config.loops
        timeout = parse_duration(args.get("timeout") or limits.timeout_seconds, default=limits.timeout_seconds)
        max_iterations = _as_int(args.get("maxIterations") or limits.max_iterations, "while", "maxIterations")
        body = args.get("code", "")

        results: list[Any] = []
        started = time.monotonic()
        with ctx.enter_loop("while") as loop:
            iteration = 0
            while True:
                if time.monotonic() - started > timeout:
                    raise LoopTimeout("while", timeout)
                if iteration >= max_iterations:
                    raise LoopIterationLimit("while", max_iterations)
                try:
                    if not await _condition(ctx, args.get("condition", "")):
                        break
                except BreakSignal:
                    break
                except ContinueSignal:
                    iteration += 1
                    await asyncio.sleep(0)
                    continue
                loop.iteration_index = iteration
                local = {"iteration": iteration, "index": iteration}
                if not await _run_iteration(ctx, loop, body, local, results):
                    break
                iteration += 1
                await asyncio.sleep(0)
        return results

    @registry.register(
        "loop",
        params=("times", "code"),
        lazy=("code",),
        usage="$loop[times|array;code]",
        examples=("$loop[3;$say[#$$index]]",),
    )
    async def loop_(args: dict[str, Any], ctx: ExecutionContext) -> list[Any]:
        """Run code a number of times, or once per element of an array."""
        source = args.get("times", 0)
        number = None
        if isinstance(source, (int, float)) and not isinstance(source, bool):
            number = int(source)
        elif isinstance(source, str):
            try:
                number = int(float(source))
            except ValueError:
                number = None
        items = list(range(max(0, number))) if number is not None else _to_items(ctx, source, "loop")

        results: list[Any] = []
        total = len(items)
        with ctx.enter_loop("loop") as loop:
            for index, value in enumerate(items):
                loop.iteration_index = index
                local = {"index": index, "value": value, "total": total}
                if not await _run_iteration(ctx, loop, args.get("code", ""), local, results):
                    break
        return results

    @registry.register(
        "foreach",
        params=("array", "code"),
        lazy=("code",),
        usage="$foreach[array;code]",
        examples=('$foreach[["a","b"];$say[$$index: $$value]]',),
    )
    async def foreach(args: dict[str, Any], ctx: ExecutionContext) -> list[Any]:
        """Run code once per element, exposing value/index/first/last."""
        items = _to_items(ctx, args.get("array"), "foreach")
        results: list[Any] = []
        total = len(items)
        with ctx.enter_loop("foreach") as loop:
            for index, value in enumerate(items):
                loop.iteration_index = index
                local = {
                    "value": value,
                    "index": index,
                    "array": items,
                    "total": total,
                    "first": index == 0,
                    "last": index == total - 1,
                }
                if not await _run_iteration(ctx, loop, args.get("code", ""), local, results):
                    break
        return results

    @registry.register("break", params=("reason",), syntax=(Tier.POSITIONAL,))
    async def break_(args: dict[str, Any], ctx: ExecutionContext) -> None:
        """Stop the innermost loop."""
        loop = ctx.current_loop("break")
        loop.should_break = True
        loop.reason = render_value(args.get("reason", ""))
        raise BreakSignal(loop.reason)

    @registry.register("continue", params=("reason",), syntax=(Tier.POSITIONAL,))
    async def continue_(args: dict[str, Any], ctx: ExecutionContext) -> None:
        """Skip to the next iteration of the innermost loop."""
        loop = ctx.current_loop("continue")
        loop.should_continue = True
        loop.reason = render_value(args.get("reason", ""))
        raise ContinueSignal(loop.reason)

    @registry.register(
        "try",
        params=("code", "catch", "finally"),
        lazy=("code", "catch", "finally"),
        usage="$try[code;catch;finally]",
        examples=("$try[$throw[boom];$say[Caught: $$error]]",),
    )
    async def try_(args: dict[str, Any], ctx: ExecutionContext) -> Any:
        """Run code; on failure run catch with ``$$error`` bound; always run finally."""
        code = _present(args.get("code"))
        handler = _present(args.get("catch"))
        cleanup = _present(args.get("finally"))
        if code is None:
            raise InvalidArguments("try", "requires code to execute")
        try:
            return await ctx.evaluate(code)
        except CharmError as error:
            if handler is None:
                raise
            logger.debug("$try caught %s", error.error_id)
            with ctx.bind(error_binding(error)):
                return await ctx.evaluate(handler)
        finally:
            if cleanup is not None:
                await ctx.evaluate(cleanup)

    @registry.register(
        "throw",
        syntax=(Tier.POSITIONAL, Tier.STRUCTURED),
        usage='$throw[message] or $throw[{"message": "...", "code": "E1"}]',
    )
    async def throw(args: Any, ctx: ExecutionContext) -> None:
        """Raise a script error with a message and optional extra fields."""
        if isinstance(args, dict):
            fields = dict(args)
            message = render_value(fields.pop("message", "")) or DEFAULT_THROW_MESSAGE
            raise ThrownError(message, fields)
        if isinstance(args, (list, tuple)):
            raise InvalidArguments("throw", "expected a message or an object")
        raise ThrownError(render_value(args) or DEFAULT_THROW_MESSAGE)

    @registry.register(
        "assert",
        params=("condition", "message", "error"),
        usage="$assert[condition;message;errorFields]",
    )
    async def assert_(args: dict[str, Any], ctx: ExecutionContext) -> bool:
        """Fail with AssertionFailed when the condition is falsy; else true."""
        if evaluate_condition(args.get("condition", "")):
            return True
        message = render_value(args.get("message", "")) or DEFAULT_ASSERT_MESSAGE
        fields = args.get("error") or {}
        if isinstance(fields, str):
            try:
                fields = safe_json_loads(fields)
            except ValueError as e:
                raise InvalidArguments("assert", f"'error' must be a JSON object ({e})") from e
        if not isinstance(fields, dict):
            raise InvalidArguments("assert", "'error' must be an object")
        raise AssertionFailed(message, fields)

    @registry.register("sequence", usage="$sequence[$a[...];$b[...]]")
    async def sequence(args: Any, ctx: ExecutionContext) -> list[Any]:
        """Run each action in order (already done by argument evaluation); return all results."""
        if isinstance(args, dict):
            if "actions" in args:
                actions = args["actions"]
                return list(actions) if isinstance(actions, (list, tuple)) else [actions]
            return list(args.values())
        if isinstance(args, (list, tuple)):
            return list(args)
        return [] if args is None else [args]

    logger.debug("Registered control charms")
