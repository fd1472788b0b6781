"""Command executor pipeline.

Implements the execution flow for one command:
1. Validate: disabled, guild/DM scope, owner-only, actor already running
2. Cooldown: reject while cooling down, else record now
3. Permissions: the bot's capabilities first, then the actor's
4. Pre hooks (failures logged)
5. Evaluate the script or call the native handler
6. Post hooks with the result
7. Usage statistics (best effort)

Steps 1-3 reject before any side effect. Every failure becomes a
CommandResult carrying the error and is reported to the actor; failures in
step 5 also reach the error hooks.
"""

import logging
import threading
from typing import Any

from charmscript.commands.cooldowns import CooldownTracker, cooldown_seconds
from charmscript.commands.hooks import CommandHooks
from charmscript.commands.permissions import (
    PermissionResolver,
    StaticPermissionResolver,
    missing_capabilities,
)
from charmscript.commands.types import Command, CommandResult
from charmscript.foundation.config import CharmConfig
from charmscript.foundation.errors import (
    AlreadyRunning,
    BreakSignal,
    CapabilityError,
    CharmError,
    CommandDisabled,
    ControlSignal,
    NotInLoop,
    OwnerOnly,
    PermissionDenied,
    ScopeMismatch,
)
from charmscript.foundation.utils import utc_timestamp
from charmscript.runtime.context import ExecutionContext
from charmscript.runtime.engine import InvocationEngine
from charmscript.variables.store import VariableStore

logger = logging.getLogger(__name__)


class CommandExecutor:
    """Runs commands through the pipeline."""

    def __init__(
        self,
        engine: InvocationEngine,
        variables: VariableStore,
        config: CharmConfig | None = None,
        *,
        cooldowns: CooldownTracker | None = None,
        permissions: PermissionResolver | None = None,
        hooks: CommandHooks | None = None,
    ) -> None:
        self.engine = engine
        self.variables = variables
        self.config = config or engine.config
        if cooldowns is None:
            cooldowns = CooldownTracker(self.config.commands.cooldown_cache_size)
        self.cooldowns = cooldowns
        self.permissions = permissions if permissions is not None else StaticPermissionResolver()
        self.hooks = hooks if hooks is not None else CommandHooks()
        self._running: dict[str, str] = {}
        self._running_lock = threading.Lock()

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def run(self, command: Command, ctx: ExecutionContext) -> CommandResult:
        """Run a command in ``ctx``. Never raises CharmError."""
        ctx.command = command.name
        try:
            self._validate(command, ctx)
            self._acquire(command, ctx)
        except CharmError as rejection:
            return await self._reject(command, ctx, rejection)

        try:
            try:
                seconds = cooldown_seconds(command.cooldown, self.config.commands.default_cooldown)
                self.cooldowns.check(command.name, ctx.actor.id, seconds)
                self._check_permissions(command, ctx)
            except CharmError as rejection:
                return await self._reject(command, ctx, rejection)

            await self.hooks.run_pre(command, ctx)

            try:
                value = await self._execute(command, ctx)
            except CharmError as error:
                return await self._fail(command, ctx, error)

            await self.hooks.run_post(command, ctx, value)
            self._update_stats(command, ctx)
            return CommandResult(command.name, value, None, tuple(ctx.responses))
        finally:
            self._release(ctx)

    def is_running(self, actor_id: str) -> bool:
        with self._running_lock:
            return actor_id in self._running

    def stats(self, name: str) -> dict[str, Any]:
        """Usage statistics of one command."""
        data = self.variables.get(f"commands.{name}") or {}
        return {
            "uses": data.get("uses", 0),
            "last_used": data.get("last_used"),
            "last_user": data.get("last_user"),
        }

    # =========================================================================
    # Steps
    # =========================================================================

    def _validate(self, command: Command, ctx: ExecutionContext) -> None:
        if command.disabled:
            raise CommandDisabled(command.name)
        if command.guild_only and not ctx.scope.is_guild:
            raise ScopeMismatch(command.name, "in a server")
        if command.dm_only and ctx.scope.is_guild:
            raise ScopeMismatch(command.name, "in direct messages")
        if command.owner_only and ctx.actor.id not in self.config.commands.owners:
            raise OwnerOnly(command.name)

    def _acquire(self, command: Command, ctx: ExecutionContext) -> None:
        with self._running_lock:
            running = self._running.get(ctx.actor.id)
            if running is not None:
                raise AlreadyRunning(ctx.actor.id, running)
            self._running[ctx.actor.id] = command.name

    def _release(self, ctx: ExecutionContext) -> None:
        with self._running_lock:
            self._running.pop(ctx.actor.id, None)

    def _check_permissions(self, command: Command, ctx: ExecutionContext) -> None:
        if command.bot_capabilities:
            bot = self.permissions.bot_capabilities(ctx.scope)
            if bot is not None:
                missing = missing_capabilities(command.bot_capabilities, bot)
                if missing:
                    raise PermissionDenied(command.name, missing, subject="bot")
        if command.required_capabilities:
            held = self.permissions.actor_capabilities(ctx.actor, ctx.scope)
            missing = missing_capabilities(command.required_capabilities, held)
            if missing:
                raise PermissionDenied(command.name, missing, subject="actor")

    async def _execute(self, command: Command, ctx: ExecutionContext) -> Any:
        try:
            if command.handler is None:
                return await self.engine.evaluate(command.script, ctx)
            return await command.handler(ctx)
        except CharmError:
            raise
        except ControlSignal as signal:
            # break/continue that no loop caught
            raise NotInLoop("break" if isinstance(signal, BreakSignal) else "continue") from signal
        except Exception as e:
            if command.handler is None:
                raise
            raise CapabilityError(command.name, e) from e

    def _update_stats(self, command: Command, ctx: ExecutionContext) -> None:
        store = self.variables
        prefix = f"commands.{command.name}"
        try:
            store.increment("stats.commands")
            store.increment(f"{prefix}.uses")
            store.set(f"{prefix}.last_used", utc_timestamp())
            store.set(f"{prefix}.last_user", ctx.actor.id)
        except Exception:
            logger.warning("Could not update statistics for %s", command.name, exc_info=True)

    # =========================================================================
    # Reporting
    # =========================================================================

    def format_error(self, error: CharmError) -> str:
        """Text shown to the actor."""
        if self.config.debug:
            return f"❌ {error.message} ({error.error_id})"
        return f"❌ {error.message}"

    async def _reject(self, command: Command, ctx: ExecutionContext, error: CharmError) -> CommandResult:
        logger.info("Rejected %s for %s: %s", command.name, ctx.actor.id, error)
        await self._report(ctx, error)
        return CommandResult(command.name, None, error, tuple(ctx.responses))

    async def _fail(self, command: Command, ctx: ExecutionContext, error: CharmError) -> CommandResult:
        logger.warning("Command %s failed for %s: %s", command.name, ctx.actor.id, error)
        await self._report(ctx, error)
        await self.hooks.run_error(command, ctx, error)
        return CommandResult(command.name, None, error, tuple(ctx.responses))

    async def _report(self, ctx: ExecutionContext, error: CharmError) -> None:
        try:
            await ctx.send(self.format_error(error))
        except Exception:
            logger.exception("Could not report error to %s", ctx.actor.id)
