"""Command table: commands by name and alias."""

import logging
import threading
from dataclasses import dataclass, field

from charmscript.commands.types import Command

logger = logging.getLogger(__name__)


@dataclass
class CommandTable:
    """Registry of commands.

    Names and aliases share one namespace; a collision is a ValueError.
    Thread-safe.
    """

    case_insensitive: bool = True

    _commands: dict[str, Command] = field(default_factory=dict)
    _aliases: dict[str, str] = field(default_factory=dict)
    """alias key -> command key"""

    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _key(self, name: str) -> str:
        return name.lower() if self.case_insensitive else name

    def register(self, command: Command) -> Command:
        """Add a command.

        Raises:
            ValueError: If the name or an alias is already taken.
        """
        with self._lock:
            self._check_free(command)
            self._insert(command)
        logger.debug("Registered command %s", command.name)
        return command

    def unregister(self, name: str) -> bool:
        with self._lock:
            key = self._resolve(name)
            if key is None:
                return False
            self._remove(key)
        logger.debug("Unregistered command %s", name)
        return True

    def reload(self, command: Command) -> Command:
        """Replace the command with the same name in place (or add it)."""
        with self._lock:
            key = self._key(command.name)
            previous = self._commands.get(key)
            if previous is not None:
                self._remove(key)
            try:
                self._check_free(command)
            except ValueError:
                if previous is not None:
                    self._insert(previous)
                raise
            self._insert(command)
        logger.info("Reloaded command %s", command.name)
        return command

    def get(self, name: str) -> Command | None:
        """Get a command by name or alias."""
        with self._lock:
            key = self._resolve(name)
            return self._commands.get(key) if key is not None else None

    def list_commands(self, category: str | None = None) -> list[Command]:
        """Commands sorted by name, optionally filtered by category."""
        with self._lock:
            commands = sorted(self._commands.values(), key=lambda c: c.name)
        if category is not None:
            commands = [c for c in commands if c.category == category]
        return commands

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    # =========================================================================
    # Internals (call with the lock held)
    # =========================================================================

    def _resolve(self, name: str) -> str | None:
        key = self._key(name)
        if key in self._commands:
            return key
        return self._aliases.get(key)

    def _check_free(self, command: Command) -> None:
        for name in (command.name, *command.aliases):
            key = self._key(name)
            if key in self._commands or key in self._aliases:
                raise ValueError(f"Command name or alias '{name}' is already registered")

    def _insert(self, command: Command) -> None:
        key = self._key(command.name)
        self._commands[key] = command
        for alias in command.aliases:
            self._aliases[self._key(alias)] = key

    def _remove(self, key: str) -> None:
        self._commands.pop(key, None)
        for alias in [a for a, target in self._aliases.items() if target == key]:
            del self._aliases[alias]
