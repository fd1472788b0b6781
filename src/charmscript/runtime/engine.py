"""Invocation engine.

Turns script text into values:

1. Compile the script into Literal / ParsedInvocation segments
2. For each invocation: look up the charm, parse the payload into a tier
   the charm accepts, bind it to the charm's parameters
3. Evaluate eager arguments (nested invocations and ``$$`` tokens); lazy
   arguments stay ScriptBody for the charm to evaluate
4. Await the capability and return its result unchanged

Failures raised by a charm propagate unchanged when they are CharmErrors or
control signals; anything else is wrapped in CapabilityError.
"""

import logging
from typing import Any

from charmscript.foundation.config import CharmConfig
from charmscript.foundation.errors import CapabilityError, CharmError, ControlSignal
from charmscript.foundation.utils import render_value
from charmscript.parsing.script import Literal, ParsedInvocation, ScriptBody, compile_script
from charmscript.parsing.tiers import TierParser
from charmscript.runtime.binding import bind_arguments
from charmscript.runtime.context import ExecutionContext
from charmscript.runtime.registry import CharmDescriptor, CharmRegistry

logger = logging.getLogger(__name__)


class InvocationEngine:
    """Evaluates scripts against a charm registry."""

    def __init__(
        self,
        registry: CharmRegistry,
        config: CharmConfig | None = None,
        parser: TierParser | None = None,
    ):
        self.registry = registry
        self.config = config or CharmConfig()
        self.parser = parser or TierParser(strict=self.config.parsing.strict)

    # =========================================================================
    # Scripts
    # =========================================================================

    async def evaluate(self, script: Any, ctx: ExecutionContext) -> Any:
        """Evaluate a script and return its value.

        Strings and ScriptBody are evaluated as scripts; maps and lists have
        each leaf evaluated; anything else is returned as-is.

        Raises:
            ParseError: For an unterminated invocation.
            CharmError: Whatever the invoked charms raise.
        """
        if isinstance(script, str):
            script = compile_script(script)
        elif not isinstance(script, ScriptBody):
            return await self.resolve(script, ctx)

        kind = script.kind
        if kind == "text":
            return ctx.interpolate(script.source)
        if kind == "single":
            return await self.invoke(script.invocations[0], ctx)
        if kind == "sequence":
            result = None
            for invocation in script.invocations:
                result = await self.invoke(invocation, ctx)
            return result

        parts: list[str] = []
        for segment in script.segments:
            if isinstance(segment, Literal):
                parts.append(render_value(ctx.interpolate(segment.text)))
            else:
                parts.append(render_value(await self.invoke(segment, ctx)))
        return "".join(parts)

    async def resolve(self, value: Any, ctx: ExecutionContext) -> Any:
        """Evaluate every leaf of an argument value, left to right.

        Text holding an invocation is evaluated as a script; other text is
        interpolated. ScriptBody values are left for the charm.
        """
        if isinstance(value, str):
            if "$" not in value:
                return value
            if compile_script(value).invocations:
                return await self.evaluate(value, ctx)
            return ctx.interpolate(value)
        if isinstance(value, dict):
            return {k: await self.resolve(v, ctx) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [await self.resolve(v, ctx) for v in value]
        return value

    # =========================================================================
    # Invocations
    # =========================================================================

    async def invoke(self, invocation: ParsedInvocation, ctx: ExecutionContext) -> Any:
        """Run one parsed invocation."""
        descriptor = self.registry.require(invocation.name)
        parsed = self.parser.parse(
            invocation.payload,
            descriptor.syntax,
            keys=descriptor.params or None,
            charm=descriptor.name,
        )
        args = bind_arguments(descriptor, parsed.value)
        args = await self._prepare(descriptor, args, ctx)
        logger.debug("Invoking $%s (tier %d)", descriptor.name, parsed.tier)
        return await self._dispatch(descriptor, args, ctx)

    async def call(self, name: str, args: Any, ctx: ExecutionContext) -> Any:
        """Invoke a charm with already-structured arguments.

        The arguments are bound like a tier-3 payload; nothing is parsed.
        """
        descriptor = self.registry.require(name)
        bound = bind_arguments(descriptor, args)
        bound = await self._prepare(descriptor, bound, ctx)
        return await self._dispatch(descriptor, bound, ctx)

    async def _prepare(self, descriptor: CharmDescriptor, args: Any, ctx: ExecutionContext) -> Any:
        if not descriptor.params:
            return await self.resolve(args, ctx)
        prepared: dict[Any, Any] = {}
        for key, value in args.items():
            if key in descriptor.lazy:
                prepared[key] = value
            else:
                prepared[key] = await self.resolve(value, ctx)
        return prepared

    async def _dispatch(self, descriptor: CharmDescriptor, args: Any, ctx: ExecutionContext) -> Any:
        try:
            return await descriptor.implementation(args, ctx)
        except (CharmError, ControlSignal):
            raise
        except Exception as e:
            logger.debug("Charm $%s raised %s", descriptor.name, type(e).__name__, exc_info=True)
            raise CapabilityError(descriptor.name, e) from e
