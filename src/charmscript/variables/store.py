"""Variable Store - shared, dot-path addressed values.

Values are one of:
- Scalars (str, int, float, bool, None)
- Structured values (dicts and lists)
- Producers: zero-argument callables re-evaluated on every read

Mutations are serialized with a lock (last writer wins) and are visible to
every context immediately. Persistence is not done here: a collaborator
attaches a listener and receives ``(key, value)`` after each change.
"""

import copy
import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

Producer = Callable[[], Any]
Listener = Callable[[str, Any], None]

_MISSING = object()


def _split(key: str) -> list[str]:
    parts = [p for p in key.split(".") if p]
    if not parts:
        raise KeyError(f"Invalid variable name: {key!r}")
    return parts


@dataclass
class VariableStore:
    """Thread-safe store of script variables.

    Example:
        >>> store = VariableStore()
        >>> store.set("user.name", "ada")
        >>> store.get("user")
        {'name': 'ada'}
    """

    data: dict[str, Any] = field(default_factory=dict)
    """Top-level namespace; nested maps hold dotted keys."""

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _listeners: list[Listener] = field(default_factory=list, repr=False)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot path, evaluating producers on the way."""
        with self._lock:
            value = self._lookup(key)
        return default if value is _MISSING else value

    def has(self, key: str) -> bool:
        """Whether a value exists at the dot path."""
        with self._lock:
            return self._lookup(key, resolve=False) is not _MISSING

    def keys(self) -> list[str]:
        """Top-level variable names."""
        with self._lock:
            return list(self.data)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of all values with producers resolved."""
        with self._lock:
            return {k: self._materialize(k, v) for k, v in self.data.items()}

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    # =========================================================================
    # Writes
    # =========================================================================

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot path, creating intermediate maps."""
        parts = _split(key)
        with self._lock:
            self._assign(parts, value)
        self._notify(key, value)

    def set_producer(self, key: str, producer: Producer) -> None:
        """Register a live value computed on every read."""
        if not callable(producer):
            raise TypeError(f"Producer for {key!r} must be callable")
        self.set(key, producer)

    def delete(self, key: str) -> bool:
        """Delete a value. Returns whether anything was removed."""
        parts = _split(key)
        with self._lock:
            node: Any = self.data
            for part in parts[:-1]:
                node = node.get(part) if isinstance(node, dict) else None
                if node is None:
                    return False
            if not isinstance(node, dict) or parts[-1] not in node:
                return False
            del node[parts[-1]]
        self._notify(key, None)
        return True

    def update(self, key: str, values: Mapping[str, Any]) -> dict[str, Any]:
        """Merge a mapping into the map at ``key`` (replacing non-maps)."""
        parts = _split(key)
        with self._lock:
            current = self._lookup(key, resolve=False)
            merged = dict(current) if isinstance(current, dict) else {}
            merged.update(values)
            self._assign(parts, merged)
        self._notify(key, merged)
        return merged

    def increment(self, key: str, amount: float = 1) -> float:
        """Atomically add to a numeric value (missing or non-numeric counts as 0)."""
        parts = _split(key)
        with self._lock:
            current = self._lookup(key)
            try:
                base = float(current) if current not in (_MISSING, None, "") else 0
            except (TypeError, ValueError):
                base = 0
            result = base + amount
            if isinstance(result, float) and result.is_integer():
                result = int(result)
            self._assign(parts, result)
        self._notify(key, result)
        return result

    def clear(self) -> None:
        """Remove every variable."""
        with self._lock:
            names = list(self.data)
            self.data.clear()
        for name in names:
            self._notify(name, None)

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: Listener) -> None:
        """Register a change listener called with ``(key, value)``."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, key: str, value: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(key, value)
            except Exception:
                logger.exception("Variable listener failed for %s", key)

    # =========================================================================
    # Internals
    # =========================================================================

    def _assign(self, parts: list[str], value: Any) -> None:
        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def _lookup(self, key: str, *, resolve: bool = True) -> Any:
        try:
            parts = _split(key)
        except KeyError:
            return _MISSING

        node: Any = self.data
        for i, part in enumerate(parts):
            if isinstance(node, dict) and part in node:
                node = node[part]
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                return _MISSING
            if resolve and callable(node):
                node = self._produce(".".join(parts[: i + 1]), node)
        return node

    def _produce(self, key: str, producer: Producer) -> Any:
        try:
            return producer()
        except Exception:
            logger.warning("Producer for variable %s failed", key, exc_info=True)
            return ""

    def _materialize(self, key: str, value: Any) -> Any:
        if callable(value):
            return self._produce(key, value)
        if isinstance(value, dict):
            return {k: self._materialize(f"{key}.{k}", v) for k, v in value.items()}
        return copy.deepcopy(value)
