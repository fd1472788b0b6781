"""Charmscript Error System.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Context for debugging
- One exception class per failure kind so callers can catch precisely

Control signals (break/continue) live here too but are deliberately not
CharmErrors: a script-level ``try`` must never swallow them.
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Parse errors
        2xxx - Dispatch/capability errors
        3xxx - Control-flow errors
        4xxx - Script-level errors (throw/assert)
        5xxx - Command pipeline errors
        6xxx - Configuration errors
    """

    # 1xxx - Parse Errors
    PARSE_INVALID_PAYLOAD = 1001
    PARSE_UNTERMINATED = 1002
    PARSE_INVALID_NAME = 1003

    # 2xxx - Dispatch Errors
    CHARM_UNKNOWN = 2001
    CHARM_INVALID_ARGUMENTS = 2002
    CHARM_FAILED = 2003
    CHARM_DUPLICATE = 2004

    # 3xxx - Control-flow Errors
    FLOW_NOT_IN_LOOP = 3001
    FLOW_LOOP_TIMEOUT = 3002
    FLOW_LOOP_ITERATION_LIMIT = 3003
    FLOW_UNKNOWN_OPERATOR = 3004

    # 4xxx - Script Errors
    SCRIPT_THROWN = 4001
    SCRIPT_ASSERTION_FAILED = 4002

    # 5xxx - Command Pipeline Errors
    COMMAND_NOT_FOUND = 5001
    COMMAND_DISABLED = 5002
    COMMAND_SCOPE_MISMATCH = 5003
    COMMAND_OWNER_ONLY = 5004
    COMMAND_ALREADY_RUNNING = 5005
    COMMAND_COOLDOWN_ACTIVE = 5006
    COMMAND_PERMISSION_DENIED = 5007

    # 6xxx - Configuration Errors
    CONFIG_INVALID = 6001

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "parse",
            2: "dispatch",
            3: "flow",
            4: "script",
            5: "command",
            6: "config",
        }.get(prefix, "unknown")

    @property
    def is_rejection(self) -> bool:
        """Whether this code is a pipeline rejection raised before evaluation."""
        return self.value // 1000 == 5


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Parse errors
    ErrorCode.PARSE_INVALID_PAYLOAD: "Cannot parse arguments of '{charm}': {detail}",
    ErrorCode.PARSE_UNTERMINATED: "Unterminated invocation '${charm}[' at position {position}.",
    ErrorCode.PARSE_INVALID_NAME: "Invalid charm name '{charm}'.",

    # Dispatch errors
    ErrorCode.CHARM_UNKNOWN: "Unknown charm: {charm}",
    ErrorCode.CHARM_INVALID_ARGUMENTS: "Invalid arguments for '{charm}': {detail}",
    ErrorCode.CHARM_FAILED: "Charm '{charm}' failed: {detail}",
    ErrorCode.CHARM_DUPLICATE: "Charm '{charm}' is already registered.",

    # Control-flow errors
    ErrorCode.FLOW_NOT_IN_LOOP: "'{charm}' can only be used inside a loop.",
    ErrorCode.FLOW_LOOP_TIMEOUT: "'{charm}' timed out after {timeout} seconds.",
    ErrorCode.FLOW_LOOP_ITERATION_LIMIT: "'{charm}' exceeded maximum iterations ({limit}).",
    ErrorCode.FLOW_UNKNOWN_OPERATOR: "Invalid operator: {operator}",

    # Script errors
    ErrorCode.SCRIPT_THROWN: "{detail}",
    ErrorCode.SCRIPT_ASSERTION_FAILED: "{detail}",

    # Command pipeline errors
    ErrorCode.COMMAND_NOT_FOUND: "Command '{command}' not found.",
    ErrorCode.COMMAND_DISABLED: "This command is disabled.",
    ErrorCode.COMMAND_SCOPE_MISMATCH: "This command can only be used {where}.",
    ErrorCode.COMMAND_OWNER_ONLY: "This command can only be used by the bot owner.",
    ErrorCode.COMMAND_ALREADY_RUNNING: "You already have a command executing.",
    ErrorCode.COMMAND_COOLDOWN_ACTIVE: "Please wait {wait} before using this command again.",
    ErrorCode.COMMAND_PERMISSION_DENIED: "{who} the following permissions: {missing}",

    # Config errors
    ErrorCode.CONFIG_INVALID: "Invalid configuration for '{key}': {detail}",
}


class CharmError(Exception):
    """Base error type for every failure surfaced by the engine.

    Provides structured error information for:
    - Programmatic error handling (code)
    - User-friendly display (message)
    - Debugging (context, cause)

    Example:
        >>> err = CharmError(
        ...     code=ErrorCode.CHARM_UNKNOWN,
        ...     context={"charm": "sya"},
        ... )
        >>> print(err)
        [CS-2001] Unknown charm: sya
    """

    default_code: ErrorCode = ErrorCode.CHARM_FAILED

    def __init__(
        self,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        self.code = code if code is not None else self.default_code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            # Fallback if context doesn't have all keys
            return template

    @property
    def category(self) -> str:
        """Get the error category."""
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'CS-2001')."""
        return f"CS-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging/hook consumers."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "type": type(self).__name__,
            "category": self.category,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Parse & dispatch
# =============================================================================


class ParseError(CharmError):
    """Payload or script text could not be parsed, even after tier fallback."""

    default_code = ErrorCode.PARSE_INVALID_PAYLOAD


class UnknownCapability(CharmError):
    """Invocation names a charm that is not in the registry."""

    default_code = ErrorCode.CHARM_UNKNOWN

    def __init__(self, charm: str):
        self.charm = charm
        super().__init__(context={"charm": charm})


class InvalidArguments(CharmError):
    """Arguments could not be bound to what the charm expects."""

    default_code = ErrorCode.CHARM_INVALID_ARGUMENTS

    def __init__(self, charm: str, detail: str):
        super().__init__(context={"charm": charm, "detail": detail})


class CapabilityError(CharmError):
    """Opaque failure raised by a capability implementation."""

    default_code = ErrorCode.CHARM_FAILED

    def __init__(self, charm: str, cause: BaseException):
        super().__init__(context={"charm": charm, "detail": str(cause)}, cause=cause)


# =============================================================================
# Control flow
# =============================================================================


class UnknownOperator(CharmError):
    """Comparison operator outside the supported table."""

    default_code = ErrorCode.FLOW_UNKNOWN_OPERATOR

    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(context={"operator": operator})


class NotInLoop(CharmError):
    """break/continue used with an empty loop stack."""

    default_code = ErrorCode.FLOW_NOT_IN_LOOP

    def __init__(self, charm: str):
        super().__init__(context={"charm": charm})


class LoopTimeout(CharmError):
    """A bounded loop ran past its wall-clock budget."""

    default_code = ErrorCode.FLOW_LOOP_TIMEOUT

    def __init__(self, charm: str, timeout: float):
        self.timeout = timeout
        super().__init__(context={"charm": charm, "timeout": _format_number(timeout)})


class LoopIterationLimit(CharmError):
    """A bounded loop ran past its iteration cap."""

    default_code = ErrorCode.FLOW_LOOP_ITERATION_LIMIT

    def __init__(self, charm: str, limit: int):
        self.limit = limit
        super().__init__(context={"charm": charm, "limit": limit})


# =============================================================================
# Script-level failures
# =============================================================================


class ScriptError(CharmError):
    """Failure raised on purpose by a script, with arbitrary extra fields.

    The message is whatever the script author wrote; ``fields`` holds every
    extra property attached through a structured error literal.
    """

    default_code = ErrorCode.SCRIPT_THROWN

    def __init__(self, message: str, fields: dict[str, Any] | None = None):
        self.fields = dict(fields or {})
        super().__init__(context={**self.fields, "detail": message})

    def get(self, name: str, default: Any = None) -> Any:
        """Get an extra field attached to the error."""
        return self.fields.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["fields"] = dict(self.fields)
        return data


class ThrownError(ScriptError):
    """Raised by ``$throw``."""

    default_code = ErrorCode.SCRIPT_THROWN


class AssertionFailed(ScriptError):
    """Raised by ``$assert`` when its condition is falsy."""

    default_code = ErrorCode.SCRIPT_ASSERTION_FAILED


# =============================================================================
# Command pipeline rejections
# =============================================================================


class CommandNotFound(CharmError):
    default_code = ErrorCode.COMMAND_NOT_FOUND

    def __init__(self, command: str):
        super().__init__(context={"command": command})


class CommandDisabled(CharmError):
    default_code = ErrorCode.COMMAND_DISABLED

    def __init__(self, command: str):
        super().__init__(context={"command": command})


class ScopeMismatch(CharmError):
    """Guild-only command used in a DM, or the reverse."""

    default_code = ErrorCode.COMMAND_SCOPE_MISMATCH

    def __init__(self, command: str, where: str):
        super().__init__(context={"command": command, "where": where})


class OwnerOnly(CharmError):
    default_code = ErrorCode.COMMAND_OWNER_ONLY

    def __init__(self, command: str):
        super().__init__(context={"command": command})


class AlreadyRunning(CharmError):
    """The actor already has a command in flight."""

    default_code = ErrorCode.COMMAND_ALREADY_RUNNING

    def __init__(self, actor: str, running: str | None = None):
        super().__init__(context={"actor": actor, "running": running})


class CooldownActive(CharmError):
    """Command used again before its cooldown window elapsed."""

    default_code = ErrorCode.COMMAND_COOLDOWN_ACTIVE

    def __init__(self, command: str, remaining: float):
        self.remaining = remaining
        super().__init__(
            context={"command": command, "remaining": remaining, "wait": format_wait(remaining)}
        )


class PermissionDenied(CharmError):
    """Actor (or the bot itself) lacks required capabilities."""

    default_code = ErrorCode.COMMAND_PERMISSION_DENIED

    def __init__(self, command: str, missing: list[str], subject: str = "actor"):
        self.missing = tuple(missing)
        self.subject = subject
        who = "I need" if subject == "bot" else "You need"
        super().__init__(
            context={
                "command": command,
                "subject": subject,
                "who": who,
                "missing": ", ".join(self.missing),
            }
        )


class ConfigError(CharmError):
    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, key: str, detail: str):
        super().__init__(context={"key": key, "detail": detail})


# =============================================================================
# Control signals
# =============================================================================


class ControlSignal(Exception):
    """Non-error unwinding used by break/continue.

    Travels up the evaluation stack to the innermost loop. Not a CharmError,
    so ``$try`` lets it pass (its ``finally`` still runs).
    """

    def __init__(self, reason: str = ""):
        self.reason = reason
        super().__init__(reason)


class BreakSignal(ControlSignal):
    """Stop the innermost loop."""


class ContinueSignal(ControlSignal):
    """Skip the rest of the current iteration of the innermost loop."""


# =============================================================================
# Helpers
# =============================================================================


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def format_wait(seconds: float) -> str:
    """Format a remaining wait like '3 seconds' or '2 minutes' (rounded up)."""
    whole = max(1, int(-(-seconds // 1)))
    if whole < 60:
        return f"{whole} second{'s' if whole != 1 else ''}"
    minutes = int(-(-whole // 60))
    return f"{minutes} minute{'s' if minutes != 1 else ''}"
