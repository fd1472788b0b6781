"""Charm registry.

Charms are registered once at startup, usually with the decorator:

    @registry.register("say", params=("content",), syntax={Tier.POSITIONAL})
    async def say(args, ctx):
        return await ctx.send(args["content"])

After ``freeze()`` the registry is read-only.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from charmscript.foundation.errors import CharmError, ErrorCode, UnknownCapability
from charmscript.parsing.scanner import NAME_PATTERN
from charmscript.parsing.tiers import ALL_TIERS, Tier

if TYPE_CHECKING:
    from charmscript.runtime.context import ExecutionContext

logger = logging.getLogger(__name__)

# execute(structured_args, context) -> result
Capability = Callable[[Any, "ExecutionContext"], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class CharmDescriptor:
    """Immutable description of a registered charm."""

    name: str
    implementation: Capability
    params: tuple[str, ...] = ()
    """Ordered parameter names. Empty: the charm receives the parsed value as-is."""

    lazy: frozenset[str] = frozenset()
    """Parameters holding sub-scripts, delivered unevaluated as ScriptBody."""

    syntax: frozenset[Tier] = ALL_TIERS
    """Payload tiers the charm accepts."""

    description: str = ""
    usage: str = ""
    examples: tuple[str, ...] = ()

    @property
    def tier(self) -> Tier:
        """Richest accepted tier (advisory)."""
        return max(self.syntax)


@dataclass
class CharmRegistry:
    """Name -> CharmDescriptor map (names are case-sensitive)."""

    _charms: dict[str, CharmDescriptor] = field(default_factory=dict)
    _frozen: bool = False

    def add(self, descriptor: CharmDescriptor, *, replace: bool = False) -> CharmDescriptor:
        if self._frozen:
            raise RuntimeError(f"Cannot register '{descriptor.name}': registry is frozen")
        if not NAME_PATTERN.fullmatch(descriptor.name):
            raise CharmError(ErrorCode.PARSE_INVALID_NAME, context={"charm": descriptor.name})
        if descriptor.name in self._charms and not replace:
            raise CharmError(ErrorCode.CHARM_DUPLICATE, context={"charm": descriptor.name})
        self._charms[descriptor.name] = descriptor
        logger.debug("Registered charm %s", descriptor.name)
        return descriptor

    def register(
        self,
        name: str,
        *,
        params: Iterable[str] = (),
        lazy: Iterable[str] = (),
        syntax: Iterable[Tier] = ALL_TIERS,
        description: str = "",
        usage: str = "",
        examples: Iterable[str] = (),
    ) -> Callable[[Capability], Capability]:
        """Decorator to register a charm implementation."""

        def decorator(fn: Capability) -> Capability:
            self.add(
                CharmDescriptor(
                    name=name,
                    implementation=fn,
                    params=tuple(params),
                    lazy=frozenset(lazy),
                    syntax=frozenset(syntax) or ALL_TIERS,
                    description=description or (fn.__doc__ or "").strip().split("\n")[0],
                    usage=usage,
                    examples=tuple(examples),
                )
            )
            return fn

        return decorator

    def get(self, name: str) -> CharmDescriptor | None:
        return self._charms.get(name)

    def require(self, name: str) -> CharmDescriptor:
        """Get a descriptor or raise UnknownCapability."""
        descriptor = self._charms.get(name)
        if descriptor is None:
            raise UnknownCapability(name)
        return descriptor

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> list[str]:
        return sorted(self._charms)

    def __contains__(self, name: str) -> bool:
        return name in self._charms

    def __len__(self) -> int:
        return len(self._charms)

    def get_help(self) -> str:
        """Formatted one line per charm."""
        lines = ["Available charms:"]
        for name in self.names:
            lines.append(f"  ${name:<12} {self._charms[name].description}")
        return "\n".join(lines)
