"""Per-(command, actor) cooldowns.

Uses OrderedDict as an LRU so memory stays bounded no matter how many
actors show up. Thread-safe via internal locking.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from charmscript.foundation.errors import CooldownActive
from charmscript.foundation.utils import parse_duration

logger = logging.getLogger(__name__)

FALLBACK_COOLDOWN = 3.0
"""Used when a cooldown spec cannot be parsed."""


def cooldown_seconds(spec: float | str | None, default: float | str = 0) -> float:
    """Resolve a command's cooldown spec to seconds.

    Examples:
        >>> cooldown_seconds("5m")
        300.0
        >>> cooldown_seconds("soon")
        3.0
        >>> cooldown_seconds(None, default=2)
        2.0
    """
    if spec is None or spec == "":
        spec = default
    return parse_duration(spec, default=FALLBACK_COOLDOWN)


class CooldownTracker:
    """Tracks the last use of each (command, actor) pair."""

    def __init__(self, max_entries: int = 10_000, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: OrderedDict[tuple[str, str], float] = OrderedDict()
        self._lock = threading.Lock()
        self._max_entries = max(1, max_entries)
        self._clock = clock

    def remaining(self, command: str, actor_id: str, seconds: float) -> float:
        """Seconds left before the pair may run again (0 when ready)."""
        with self._lock:
            last = self._entries.get((command, actor_id))
        if last is None:
            return 0.0
        return max(0.0, last + seconds - self._clock())

    def check(self, command: str, actor_id: str, seconds: float) -> None:
        """Raise CooldownActive if the pair is cooling down, else record now."""
        if seconds <= 0:
            return
        key = (command, actor_id)
        now = self._clock()
        with self._lock:
            last = self._entries.get(key)
            if last is not None and now < last + seconds:
                remaining = last + seconds - now
                raise CooldownActive(command, remaining)

            self._entries[key] = now
            self._entries.move_to_end(key)
            # Evict oldest if over capacity
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def reset(self, command: str | None = None, actor_id: str | None = None) -> int:
        """Forget entries matching the filters. Returns how many were removed."""
        with self._lock:
            keys = [
                k
                for k in self._entries
                if (command is None or k[0] == command) and (actor_id is None or k[1] == actor_id)
            ]
            for k in keys:
                del self._entries[k]
        return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
