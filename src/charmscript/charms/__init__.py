"""Built-in charms and the comparison primitive."""

from charmscript.charms.builtin import register_builtin_charms
from charmscript.charms.conditions import compare, evaluate_condition, is_truthy
from charmscript.charms.control import register_control_charms
from charmscript.runtime.registry import CharmRegistry


def register_core_charms(registry: CharmRegistry) -> CharmRegistry:
    """Register every charm shipped with the engine."""
    register_control_charms(registry)
    register_builtin_charms(registry)
    return registry


__all__ = [
    "compare",
    "evaluate_condition",
    "is_truthy",
    "register_builtin_charms",
    "register_control_charms",
    "register_core_charms",
]
