"""Runtime: execution context, charm registry, argument binding and the engine."""

from charmscript.runtime.binding import bind_arguments
from charmscript.runtime.context import (
    DIRECT_SCOPE,
    SYSTEM_ACTOR,
    Actor,
    ExecutionContext,
    LoopContext,
    ResponseSink,
    Scope,
    error_binding,
)
from charmscript.runtime.engine import InvocationEngine
from charmscript.runtime.registry import Capability, CharmDescriptor, CharmRegistry

__all__ = [
    "DIRECT_SCOPE",
    "SYSTEM_ACTOR",
    "Actor",
    "Capability",
    "CharmDescriptor",
    "CharmRegistry",
    "ExecutionContext",
    "InvocationEngine",
    "LoopContext",
    "ResponseSink",
    "Scope",
    "bind_arguments",
    "error_binding",
]
