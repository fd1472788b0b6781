"""Command pipeline: table, cooldowns, permissions, hooks, executor and dispatch."""

from charmscript.commands.cooldowns import FALLBACK_COOLDOWN, CooldownTracker, cooldown_seconds
from charmscript.commands.dispatcher import CommandDispatcher, ParsedCommand, parse_command
from charmscript.commands.executor import CommandExecutor
from charmscript.commands.hooks import CommandHooks
from charmscript.commands.permissions import (
    PermissionResolver,
    StaticPermissionResolver,
    missing_capabilities,
)
from charmscript.commands.table import CommandTable
from charmscript.commands.types import Command, CommandResult, NativeHandler

__all__ = [
    "FALLBACK_COOLDOWN",
    "Command",
    "CommandDispatcher",
    "CommandExecutor",
    "CommandHooks",
    "CommandResult",
    "CommandTable",
    "CooldownTracker",
    "NativeHandler",
    "ParsedCommand",
    "PermissionResolver",
    "StaticPermissionResolver",
    "cooldown_seconds",
    "missing_capabilities",
    "parse_command",
]
