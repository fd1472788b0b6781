"""Foundation domain - errors, logging, configuration and generic helpers.

Everything else in charmscript imports from here; nothing here imports from
the rest of the package.
"""

from charmscript.foundation.config import (
    CharmConfig,
    CommandConfig,
    LoggingConfig,
    LoopConfig,
    ParsingConfig,
    config_from_dict,
    get_config,
    load_config,
    reset_config,
    save_default_config,
)
from charmscript.foundation.errors import (
    AlreadyRunning,
    AssertionFailed,
    BreakSignal,
    CapabilityError,
    CharmError,
    CommandDisabled,
    CommandNotFound,
    ConfigError,
    ContinueSignal,
    ControlSignal,
    CooldownActive,
    ErrorCode,
    InvalidArguments,
    LoopIterationLimit,
    LoopTimeout,
    NotInLoop,
    OwnerOnly,
    ParseError,
    PermissionDenied,
    ScopeMismatch,
    ScriptError,
    ThrownError,
    UnknownCapability,
    UnknownOperator,
)
from charmscript.foundation.logging import configure_logging
from charmscript.foundation.utils import format_uptime, parse_duration, render_value

__all__ = [
    # Config
    "CharmConfig",
    "CommandConfig",
    "LoggingConfig",
    "LoopConfig",
    "ParsingConfig",
    "config_from_dict",
    "get_config",
    "load_config",
    "reset_config",
    "save_default_config",
    # Errors
    "AlreadyRunning",
    "AssertionFailed",
    "BreakSignal",
    "CapabilityError",
    "CharmError",
    "CommandDisabled",
    "CommandNotFound",
    "ConfigError",
    "ContinueSignal",
    "ControlSignal",
    "CooldownActive",
    "ErrorCode",
    "InvalidArguments",
    "LoopIterationLimit",
    "LoopTimeout",
    "NotInLoop",
    "OwnerOnly",
    "ParseError",
    "PermissionDenied",
    "ScopeMismatch",
    "ScriptError",
    "ThrownError",
    "UnknownCapability",
    "UnknownOperator",
    # Logging
    "configure_logging",
    # Utils
    "format_uptime",
    "parse_duration",
    "render_value",
]
