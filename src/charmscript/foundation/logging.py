"""Logging setup for applications embedding Charmscript.

The engine itself only creates module loggers; hosts call
``configure_logging(config)`` once at startup.

Level, highest priority first:
    1. ``level`` argument
    2. CHARMSCRIPT_LOG_LEVEL (DEBUG, INFO, ... or a number)
    3. CHARMSCRIPT_DEBUG=true
    4. ``config.debug``
    5. WARNING

With ``config.logging.persist`` every session also writes a DEBUG log file
under ``config.logging.directory``; only the newest ``max_sessions`` are kept.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from charmscript.foundation.config import CharmConfig, LoggingConfig

CONSOLE_FORMAT = "%(name)s: %(message)s"
DETAILED_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"

SESSION_PATTERN = "session_*.log"

_QUIET = ("asyncio",)


def _level_from_name(name: int | str) -> int:
    if isinstance(name, int):
        return name
    text = name.strip()
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text.upper(), logging.WARNING)


def resolve_level(level: int | str | None = None, *, debug: bool = False) -> int:
    """Effective log level for the console."""
    if level is not None:
        return _level_from_name(level)
    env_level = os.environ.get("CHARMSCRIPT_LOG_LEVEL")
    if env_level:
        return _level_from_name(env_level)
    env_debug = os.environ.get("CHARMSCRIPT_DEBUG", "").lower() in ("true", "1", "yes")
    return logging.DEBUG if env_debug or debug else logging.WARNING


def session_directory(settings: LoggingConfig, base: Path | None = None) -> Path:
    directory = Path(settings.directory).expanduser()
    if not directory.is_absolute():
        directory = (base or Path.cwd()) / directory
    return directory


def prune_sessions(directory: Path, keep: int) -> list[Path]:
    """Delete all but the newest ``keep`` session logs. Returns what was removed."""
    # Names embed a sortable timestamp
    sessions = sorted(directory.glob(SESSION_PATTERN), reverse=True)
    removed = []
    for stale in sessions[max(0, keep):]:
        try:
            stale.unlink()
        except OSError:
            continue
        removed.append(stale)
    return removed


def _session_handler(settings: LoggingConfig) -> logging.Handler:
    directory = session_directory(settings)
    directory.mkdir(parents=True, exist_ok=True)
    # Leave room for the file opened below
    prune_sessions(directory, settings.max_sessions - 1)
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S-%f")
    handler = logging.FileHandler(directory / f"session_{stamp}.log", mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
    return handler


def configure_logging(
    config: CharmConfig | None = None,
    *,
    level: int | str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install a console handler (and a session file when enabled) on the root logger.

    Args:
        config: Supplies ``debug`` and the ``logging`` section (defaults when None).
        level: Console level override (int or name such as "INFO").
        stream: Console stream (default: stderr).
    """
    config = config or CharmConfig()
    settings = config.logging
    console_level = resolve_level(level, debug=config.debug)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(
        logging.Formatter(DETAILED_FORMAT if console_level <= logging.DEBUG else CONSOLE_FORMAT)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(console_level)

    if settings.persist:
        try:
            root.addHandler(_session_handler(settings))
        except OSError as e:
            sys.stderr.write(f"Warning: session logging disabled: {e}\n")
        else:
            # The file captures DEBUG even when the console is quieter
            root.setLevel(logging.DEBUG)

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: console=%s persist=%s",
        logging.getLevelName(console_level),
        settings.persist,
    )
