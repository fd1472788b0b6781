"""Charmscript - an embedded scripting engine for chat bots.

Operators describe bot behavior as ``$charm[arguments]`` invocations with
control flow (``$if``, ``$while``, ``$loop``, ``$try``...) built from nested
invocations, and bind scripts to prefixed chat commands.
"""

__version__ = "0.1.0"

from charmscript.app import CharmApplication
from charmscript.commands import Command, CommandResult
from charmscript.foundation.config import CharmConfig, get_config, load_config, reset_config
from charmscript.foundation.errors import CharmError, ErrorCode
from charmscript.parsing import Tier, detect_tier
from charmscript.runtime import Actor, ExecutionContext, InvocationEngine, Scope
from charmscript.variables import VariableStore

__all__ = [
    "Actor",
    "CharmApplication",
    "CharmConfig",
    "CharmError",
    "Command",
    "CommandResult",
    "ErrorCode",
    "ExecutionContext",
    "InvocationEngine",
    "Scope",
    "Tier",
    "VariableStore",
    "__version__",
    "detect_tier",
    "get_config",
    "load_config",
    "reset_config",
]
