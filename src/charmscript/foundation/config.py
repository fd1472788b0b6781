"""Charmscript configuration management.

Loads configuration from .charmscript/config.yaml with sensible defaults.
All settings can be overridden via environment variables (CHARMSCRIPT_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .charmscript/config.yaml (project-local)
3. ~/.charmscript/config.yaml (user-global)
4. Built-in defaults

Thread Safety:
    Uses threading.Lock for thread-safe lazy initialization.
"""


import logging
import os
import threading
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, get_origin

import yaml

from charmscript.foundation.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParsingConfig:
    """Configuration for payload tier detection."""

    strict: bool = False
    """Raise ParseError on a malformed {...}/[...] literal instead of degrading to tier 2/1."""


@dataclass(frozen=True, slots=True)
class LoopConfig:
    """Default caps for bounded loops."""

    timeout_seconds: float = 30.0
    """Wall-clock budget of a $while loop."""

    max_iterations: int = 100
    """Iteration cap of a $while loop."""


@dataclass(frozen=True, slots=True)
class CommandConfig:
    """Configuration for the command pipeline."""

    prefix: str = "!"
    """Prefix that marks a chat line as a command."""

    default_cooldown: float | str = 0
    """Cooldown applied to commands that don't declare one (seconds or '3s')."""

    cooldown_cache_size: int = 10_000
    """Maximum cooldown entries kept in memory (LRU)."""

    owners: tuple[str, ...] = ()
    """Actor ids allowed to run owner-only commands."""

    case_insensitive: bool = True
    """Match command names and aliases case-insensitively."""


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Session log files written by configure_logging."""

    persist: bool = False
    """Write a DEBUG-level log file per session."""

    directory: str = ".charmscript/logs"
    """Where session logs go; relative paths resolve against the working directory."""

    max_sessions: int = 10
    """Session logs kept, newest first."""


@dataclass(frozen=True, slots=True)
class CharmConfig:
    """Root configuration for Charmscript."""

    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    """Tier detection configuration."""

    loops: LoopConfig = field(default_factory=LoopConfig)
    """Loop cap defaults."""

    commands: CommandConfig = field(default_factory=CommandConfig)
    """Command pipeline configuration."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    """Session log configuration."""

    debug: bool = False
    """Include error ids in reports sent to actors."""


# Global config instance (lazy-loaded, thread-safe)
_config: CharmConfig | None = None
_config_lock = threading.Lock()

_SECTIONS: dict[str, type] = {
    "parsing": ParsingConfig,
    "loops": LoopConfig,
    "commands": CommandConfig,
    "logging": LoggingConfig,
}


def _defaults() -> dict[str, Any]:
    """Get defaults from dataclass definitions (single source of truth)."""
    return {
        "parsing": asdict(ParsingConfig()),
        "loops": asdict(LoopConfig()),
        "commands": asdict(CommandConfig()),
        "logging": asdict(LoggingConfig()),
        "debug": False,
    }


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


_TRUE_TEXT = ("true", "1", "yes", "on")
_FALSE_TEXT = ("false", "0", "no", "off")


def _coerce_loose(value: str) -> Any:
    """Coerce an environment string to bool/int/float/list/str."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        pass
    if "," in value:
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _coerce_env_value(value: str, annotation: Any = None) -> Any:
    """Coerce an environment string to the annotated type of its field.

    Fields without a single concrete type (``float | str``) or unknown
    fields are coerced loosely.

    Raises:
        ValueError: If the text does not fit the field's type.
    """
    if annotation is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE_TEXT:
            return True
        if lowered in _FALSE_TEXT:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")
    if annotation is int:
        return int(value.strip())
    if annotation is float:
        return float(value.strip())
    if annotation is str:
        return value
    if get_origin(annotation) is tuple:
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return _coerce_loose(value)


def _field_types(cls: type) -> dict[str, Any]:
    return {f.name: f.type for f in fields(cls)}


def _apply_env_overrides(config_dict: dict, environ: dict[str, str] | None = None) -> dict:
    """Apply environment variable overrides.

    Environment variables follow pattern: CHARMSCRIPT_SECTION_KEY

    Examples:
        CHARMSCRIPT_PARSING_STRICT=true
        CHARMSCRIPT_LOOPS_MAX_ITERATIONS=500
        CHARMSCRIPT_COMMANDS_OWNERS=123,456
        CHARMSCRIPT_DEBUG=true

    Raises:
        ConfigError: If a value does not fit its field's type.
    """
    prefix = "CHARMSCRIPT_"
    env = os.environ if environ is None else environ

    for key, value in env.items():
        if not key.startswith(prefix):
            continue

        path_str = key[len(prefix):].lower()

        if path_str == "debug":
            section_dict, final_key, annotation = config_dict, "debug", bool
        else:
            for section, cls in _SECTIONS.items():
                if path_str.startswith(section + "_"):
                    final_key = path_str[len(section) + 1:]
                    section_dict = config_dict.setdefault(section, {})
                    annotation = _field_types(cls).get(final_key)
                    break
            else:
                # Unknown sections (e.g. CHARMSCRIPT_LOG_LEVEL) belong to other layers
                continue

        try:
            section_dict[final_key] = _coerce_env_value(value, annotation)
        except ValueError as e:
            raise ConfigError(key, str(e)) from e

    return config_dict


def _build_section(name: str, data: Any) -> Any:
    """Build one section dataclass, rejecting unknown keys."""
    cls = _SECTIONS[name]
    if not isinstance(data, dict):
        raise ConfigError(name, f"expected a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(name, f"unknown keys: {', '.join(sorted(unknown))}")

    values = dict(data)
    if name == "commands" and "owners" in values:
        owners = values["owners"]
        if isinstance(owners, (str, int)):
            owners = [owners]
        values["owners"] = tuple(str(o) for o in owners or ())
    return cls(**values)


def _dict_to_config(data: dict) -> CharmConfig:
    """Convert a dict to CharmConfig."""
    return CharmConfig(
        parsing=_build_section("parsing", data.get("parsing", {})),
        loops=_build_section("loops", data.get("loops", {})),
        commands=_build_section("commands", data.get("commands", {})),
        logging=_build_section("logging", data.get("logging", {})),
        debug=bool(data.get("debug", False)),
    )


def config_from_dict(data: dict[str, Any]) -> CharmConfig:
    """Build a config from a plain mapping merged over the defaults (no env, no files)."""
    config_dict = _defaults()
    _deep_update(config_dict, data)
    return _dict_to_config(config_dict)


def load_config(path: str | Path | None = None) -> CharmConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (CHARMSCRIPT_*)
    2. Explicit path if provided
    3. .charmscript/config.yaml (project-local)
    4. ~/.charmscript/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        Merged CharmConfig instance.

    Raises:
        ConfigError: If a config file is malformed or holds unknown keys.
    """
    global _config

    config_dict = _defaults()

    config_paths = []
    if path:
        config_paths.append(Path(path))
    config_paths.extend([
        Path(".charmscript/config.yaml"),
        Path.home() / ".charmscript" / "config.yaml",
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(str(config_path), str(e)) from e
            if not isinstance(file_config, dict):
                raise ConfigError(str(config_path), "top level must be a mapping")
            _deep_update(config_dict, file_config)
            logger.debug("Loaded config from %s", config_path)
            break  # Use first found config

    config_dict = _apply_env_overrides(config_dict)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> CharmConfig:
    """Get the current configuration, loading if needed.

    Thread-safe with double-check locking.
    """
    global _config

    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None


def save_default_config(path: str | Path) -> Path:
    """Write the built-in defaults as YAML so operators have a template."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    data = _defaults()
    data["commands"]["owners"] = list(data["commands"]["owners"])
    with open(target, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return target
