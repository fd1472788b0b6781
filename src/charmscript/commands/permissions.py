"""Capability resolution for the command pipeline."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from charmscript.runtime.context import Actor, Scope


@runtime_checkable
class PermissionResolver(Protocol):
    """Answers which capabilities the actor and the bot hold in a scope."""

    def actor_capabilities(self, actor: Actor, scope: Scope) -> frozenset[str]: ...

    def bot_capabilities(self, scope: Scope) -> frozenset[str] | None:
        """None when bot capabilities do not apply in this scope."""
        ...


@dataclass(frozen=True, slots=True)
class StaticPermissionResolver:
    """Actor capabilities come from the Actor; the bot holds a fixed set in guilds."""

    bot: frozenset[str] = frozenset()

    def actor_capabilities(self, actor: Actor, scope: Scope) -> frozenset[str]:
        return actor.capabilities

    def bot_capabilities(self, scope: Scope) -> frozenset[str] | None:
        return self.bot if scope.is_guild else None


def missing_capabilities(required: Iterable[str], held: Iterable[str]) -> list[str]:
    """Required capabilities not held, sorted."""
    held_set = set(held)
    return sorted(c for c in set(required) if c not in held_set)
