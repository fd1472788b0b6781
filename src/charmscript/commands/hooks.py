"""Pre/post/error hooks around command execution.

Hooks may be sync or async. A failing hook is logged and never stops the
command or the other hooks.

Usage:
    hooks = CommandHooks()

    @hooks.pre
    async def audit(command, ctx):
        ...

    @hooks.error
    def alert(command, ctx, error):
        ...
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from charmscript.commands.types import Command
from charmscript.foundation.errors import CharmError

if TYPE_CHECKING:
    from charmscript.runtime.context import ExecutionContext

logger = logging.getLogger(__name__)

PreHook = Callable[[Command, "ExecutionContext"], Any]
PostHook = Callable[[Command, "ExecutionContext", Any], Any]
ErrorHook = Callable[[Command, "ExecutionContext", CharmError], Any]


class CommandHooks:
    """Ordered hook lists for the pipeline."""

    def __init__(self) -> None:
        self._pre: list[PreHook] = []
        self._post: list[PostHook] = []
        self._error: list[ErrorHook] = []
        self._lock = threading.Lock()

    # Decorators
    def pre(self, fn: PreHook) -> PreHook:
        with self._lock:
            self._pre.append(fn)
        return fn

    def post(self, fn: PostHook) -> PostHook:
        with self._lock:
            self._post.append(fn)
        return fn

    def error(self, fn: ErrorHook) -> ErrorHook:
        with self._lock:
            self._error.append(fn)
        return fn

    async def run_pre(self, command: Command, ctx: "ExecutionContext") -> None:
        await self._emit("pre", self._snapshot(self._pre), command, ctx)

    async def run_post(self, command: Command, ctx: "ExecutionContext", result: Any) -> None:
        await self._emit("post", self._snapshot(self._post), command, ctx, result)

    async def run_error(self, command: Command, ctx: "ExecutionContext", error: CharmError) -> None:
        await self._emit("error", self._snapshot(self._error), command, ctx, error)

    def clear(self) -> None:
        """Remove all hooks (for testing)."""
        with self._lock:
            self._pre.clear()
            self._post.clear()
            self._error.clear()

    def _snapshot(self, hooks: list) -> list:
        with self._lock:
            return list(hooks)

    async def _emit(self, stage: str, hooks: list, command: Command, *args: Any) -> None:
        for hook in hooks:
            try:
                result = hook(command, *args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                name = getattr(hook, "__name__", repr(hook))
                logger.exception("%s hook %s failed for command %s", stage, name, command.name)
