"""CharmApplication - owns every registry and wires the engine together.

Nothing in charmscript looks registries up globally; an application object
builds them and passes them into constructors.

Usage:
    app = CharmApplication()
    app.command("greet", "$say[Hello $$1!]", cooldown="5s")

    result = await app.handle("!greet Ada", Actor("42"), Scope("general", guild_id="1"))
"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from charmscript.charms import register_core_charms
from charmscript.commands import (
    Command,
    CommandDispatcher,
    CommandExecutor,
    CommandHooks,
    CommandResult,
    CommandTable,
    CooldownTracker,
    NativeHandler,
    PermissionResolver,
)
from charmscript.foundation.config import CharmConfig, get_config
from charmscript.foundation.utils import format_uptime, utc_timestamp
from charmscript.runtime import (
    DIRECT_SCOPE,
    SYSTEM_ACTOR,
    Actor,
    CharmRegistry,
    ExecutionContext,
    InvocationEngine,
    ResponseSink,
    Scope,
)
from charmscript.variables import VariableStore

logger = logging.getLogger(__name__)


class CharmApplication:
    """A complete engine instance."""

    def __init__(
        self,
        config: CharmConfig | None = None,
        *,
        variables: VariableStore | None = None,
        permissions: PermissionResolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or get_config()
        self.variables = variables if variables is not None else VariableStore()
        self.registry = register_core_charms(CharmRegistry())
        self.engine = InvocationEngine(self.registry, self.config)
        self.commands = CommandTable(case_insensitive=self.config.commands.case_insensitive)
        self.hooks = CommandHooks()
        self.cooldowns = CooldownTracker(self.config.commands.cooldown_cache_size, clock=clock)
        self.executor = CommandExecutor(
            self.engine,
            self.variables,
            self.config,
            cooldowns=self.cooldowns,
            permissions=permissions,
            hooks=self.hooks,
        )
        self.dispatcher = CommandDispatcher(self.commands, self.executor, self.config.commands.prefix)

        self._clock = clock
        self._started = clock()
        self._register_system_variables()

    # =========================================================================
    # Registration
    # =========================================================================

    def charm(self, name: str, **options: Any) -> Callable:
        """Decorator registering a custom charm (see CharmRegistry.register)."""
        return self.registry.register(name, **options)

    def command(
        self,
        name: str,
        script: str | None = None,
        *,
        cooldown: float | str | None = None,
        requires: Iterable[str] = (),
        bot_requires: Iterable[str] = (),
        aliases: Iterable[str] = (),
        **options: Any,
    ) -> Any:
        """Register a script command, or decorate a native handler.

        ``app.command("ping", "$say[pong]")`` registers immediately and
        returns the Command; ``@app.command("ping")`` registers the decorated
        coroutine function.
        """

        def build(handler: NativeHandler | None) -> Command:
            return self.commands.register(
                Command(
                    name=name,
                    script=script,
                    handler=handler,
                    cooldown=cooldown,
                    required_capabilities=frozenset(requires),
                    bot_capabilities=frozenset(bot_requires),
                    aliases=tuple(aliases),
                    **options,
                )
            )

        if script is not None:
            return build(None)

        def decorator(fn: NativeHandler) -> NativeHandler:
            build(fn)
            return fn

        return decorator

    def freeze(self) -> None:
        """Make the charm registry read-only (call after startup)."""
        self.registry.freeze()

    # =========================================================================
    # Running
    # =========================================================================

    def context(
        self,
        actor: Actor = SYSTEM_ACTOR,
        scope: Scope = DIRECT_SCOPE,
        args: Iterable[Any] = (),
        sink: ResponseSink | None = None,
    ) -> ExecutionContext:
        """A fresh context for one top-level script."""
        return ExecutionContext(
            engine=self.engine,
            variables=self.variables,
            actor=actor,
            scope=scope,
            positional_args=tuple(args),
            sink=sink,
        )

    async def evaluate(self, script: str, ctx: ExecutionContext | None = None, **context: Any) -> Any:
        """Evaluate a script outside the command pipeline."""
        return await self.engine.evaluate(script, ctx or self.context(**context))

    async def handle(
        self,
        text: str,
        actor: Actor,
        scope: Scope,
        sink: ResponseSink | None = None,
    ) -> CommandResult | None:
        """Dispatch a chat line (None when it is not a command)."""
        return await self.dispatcher.dispatch(text, actor, scope, sink)

    # =========================================================================
    # System variables
    # =========================================================================

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def _register_system_variables(self) -> None:
        from charmscript import __version__

        self.variables.set_producer("uptime", lambda: format_uptime(self.elapsed))
        self.variables.set_producer("elapsed", lambda: self.elapsed)
        self.variables.set_producer("timestamp", utc_timestamp)
        self.variables.set("version", __version__)
        logger.debug("Registered system variables")
