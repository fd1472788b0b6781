"""Command and CommandResult types."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from charmscript.foundation.errors import CharmError

if TYPE_CHECKING:
    from charmscript.runtime.context import ExecutionContext

NativeHandler = Callable[["ExecutionContext"], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Command:
    """A registered chat command.

    Exactly one of ``script`` and ``handler`` is set. Commands are immutable;
    use ``CommandTable.reload`` to replace one.
    """

    name: str
    script: str | None = None
    """Script evaluated by the engine."""

    handler: NativeHandler | None = None
    """Python coroutine function called with the ExecutionContext."""

    cooldown: float | str | None = None
    """Seconds or ``<n>[ms|s|m|h|d]``. None uses the configured default."""

    required_capabilities: frozenset[str] = frozenset()
    """Capabilities the actor must hold."""

    bot_capabilities: frozenset[str] = frozenset()
    """Capabilities the bot itself must hold (checked in guild scopes)."""

    aliases: tuple[str, ...] = ()
    description: str = ""
    usage: str = ""
    category: str = "general"
    guild_only: bool = False
    dm_only: bool = False
    owner_only: bool = False
    disabled: bool = False

    def __post_init__(self) -> None:
        if (self.script is None) == (self.handler is None):
            raise ValueError(f"Command '{self.name}' needs exactly one of script or handler")
        if self.guild_only and self.dm_only:
            raise ValueError(f"Command '{self.name}' cannot be both guild_only and dm_only")


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one pipeline run."""

    command: str
    value: Any = None
    error: CharmError | None = None
    responses: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def rejected(self) -> bool:
        """Whether the pipeline refused to run the command at all."""
        return self.error is not None and self.error.code.is_rejection
