"""Prefix command dispatch.

Turns a chat line like ``!greet Ada Lovelace`` into a pipeline run of the
``greet`` command with positional arguments ``("Ada", "Lovelace")``.
"""

import logging
from dataclasses import dataclass

from charmscript.commands.executor import CommandExecutor
from charmscript.commands.table import CommandTable
from charmscript.commands.types import CommandResult
from charmscript.foundation.errors import CommandNotFound
from charmscript.runtime.context import Actor, ExecutionContext, ResponseSink, Scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    """A prefixed chat line split into command name and arguments."""

    command: str
    args: tuple[str, ...]
    raw: str


def parse_command(text: str, prefix: str) -> ParsedCommand | None:
    """Parse a chat line, or None when it is not a command.

    Examples:
        parse_command("!greet Ada", "!")  → ParsedCommand(command="greet", args=("Ada",), ...)
        parse_command("!", "!")           → None
        parse_command("hello", "!")       → None
    """
    text = text.strip()
    if not prefix or not text.startswith(prefix):
        return None
    words = text[len(prefix):].split()
    if not words:
        return None
    return ParsedCommand(command=words[0], args=tuple(words[1:]), raw=text)


class CommandDispatcher:
    """Routes chat lines to commands."""

    def __init__(self, table: CommandTable, executor: CommandExecutor, prefix: str = "!") -> None:
        self.table = table
        self.executor = executor
        self.prefix = prefix

    async def dispatch(
        self,
        text: str,
        actor: Actor,
        scope: Scope,
        sink: ResponseSink | None = None,
    ) -> CommandResult | None:
        """Run the command a chat line names.

        Returns:
            None for text that is not a command; a CommandResult carrying
            CommandNotFound (nothing sent to the actor) for an unknown name;
            otherwise the pipeline's result.
        """
        parsed = parse_command(text, self.prefix)
        if parsed is None:
            return None

        command = self.table.get(parsed.command)
        if command is None:
            logger.debug("Unknown command %s from %s", parsed.command, actor.id)
            return CommandResult(parsed.command, error=CommandNotFound(parsed.command))

        ctx = ExecutionContext(
            engine=self.executor.engine,
            variables=self.executor.variables,
            actor=actor,
            scope=scope,
            positional_args=parsed.args,
            command=command.name,
            sink=sink,
        )
        return await self.executor.run(command, ctx)
