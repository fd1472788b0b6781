"""Shared variable storage."""

from charmscript.variables.store import Listener, Producer, VariableStore

__all__ = ["Listener", "Producer", "VariableStore"]
