"""Execution context shared by every invocation of one top-level script.

A context belongs to a single logical task, so it holds plain lists; the
only shared mutable state it reaches is the VariableStore, which does its
own locking.
"""

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from charmscript.foundation.errors import CharmError, NotInLoop, ScriptError
from charmscript.foundation.utils import render_value
from charmscript.parsing.interpolate import MISSING, interpolate
from charmscript.variables.store import VariableStore

if TYPE_CHECKING:
    from charmscript.runtime.engine import InvocationEngine

ResponseSink = Callable[[str], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Actor:
    """The user (or system) on whose behalf a script runs."""

    id: str
    name: str = ""
    capabilities: frozenset[str] = frozenset()
    """Permissions the actor holds in the current scope."""


@dataclass(frozen=True, slots=True)
class Scope:
    """Where a script runs: a guild channel or a direct conversation."""

    id: str
    guild_id: str | None = None

    @property
    def is_guild(self) -> bool:
        return self.guild_id is not None


SYSTEM_ACTOR = Actor(id="system", name="system")
DIRECT_SCOPE = Scope(id="direct")


@dataclass(slots=True)
class LoopContext:
    """One active loop on the loop stack."""

    charm: str
    iteration_index: int = 0
    should_break: bool = False
    should_continue: bool = False
    reason: str = ""


def error_binding(error: CharmError) -> dict[str, Any]:
    """Flatten an error into the ``error`` / ``error.*`` names seen by a catch script."""
    binding: dict[str, Any] = {
        "error": error.message,
        "error.message": error.message,
        "error.type": type(error).__name__,
        "error.code": error.code.value,
        "error.id": error.error_id,
    }
    if isinstance(error, ScriptError):
        for key, value in error.fields.items():
            binding[f"error.{key}"] = value
    return binding


@dataclass
class ExecutionContext:
    """Context threaded through every nested invocation.

    Lookup order for ``$$name``: local frames (innermost first), then the
    shared VariableStore.
    """

    engine: "InvocationEngine"
    variables: VariableStore
    actor: Actor = SYSTEM_ACTOR
    scope: Scope = DIRECT_SCOPE
    positional_args: tuple[Any, ...] = ()
    command: str | None = None
    """Name of the command being run, if any."""

    sink: ResponseSink | None = None
    """Where ``send`` forwards responses (the chat gateway)."""

    loop_stack: list[LoopContext] = field(default_factory=list)
    frames: list[dict[str, Any]] = field(default_factory=list)
    responses: list[str] = field(default_factory=list)

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate(self, script: Any) -> Any:
        """Evaluate a script (text or ScriptBody) in this context."""
        return await self.engine.evaluate(script, self)

    async def render(self, script: Any) -> str:
        """Evaluate and render as text."""
        return render_value(await self.evaluate(script))

    def interpolate(self, value: Any) -> Any:
        return interpolate(value, self.lookup, self.positional_args)

    def lookup(self, name: str) -> Any:
        """Resolve a variable name, returning MISSING when unknown."""
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
            head, _, rest = name.partition(".")
            if rest and head in frame:
                value = _traverse(frame[head], rest)
                if value is not MISSING:
                    return value
        return self.variables.get(name, MISSING)

    @contextmanager
    def bind(self, values: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Push a frame of local names for the duration of the block."""
        frame = dict(values)
        self.frames.append(frame)
        try:
            yield frame
        finally:
            self.frames.pop()

    # =========================================================================
    # Loops
    # =========================================================================

    @contextmanager
    def enter_loop(self, charm: str) -> Iterator[LoopContext]:
        loop = LoopContext(charm=charm)
        self.loop_stack.append(loop)
        try:
            yield loop
        finally:
            self.loop_stack.pop()

    def current_loop(self, charm: str) -> LoopContext:
        """Innermost loop, or NotInLoop for ``charm``."""
        if not self.loop_stack:
            raise NotInLoop(charm)
        return self.loop_stack[-1]

    # =========================================================================
    # Output
    # =========================================================================

    async def send(self, content: Any) -> str:
        """Record a response and forward it to the sink."""
        text = render_value(content)
        self.responses.append(text)
        if self.sink is not None:
            await self.sink(text)
        return text

    def child(self, **overrides: Any) -> "ExecutionContext":
        """A fresh context for an independent invocation sharing the same store."""
        values = {
            "engine": self.engine,
            "variables": self.variables,
            "actor": self.actor,
            "scope": self.scope,
            "positional_args": self.positional_args,
            "command": self.command,
            "sink": self.sink,
        }
        values.update(overrides)
        return ExecutionContext(**values)


def _traverse(value: Any, path: str) -> Any:
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return MISSING
    return value
