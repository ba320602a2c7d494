"""Estado persistido entre runs (execution modes incrementais)."""

from .state_store import InMemoryStateStore, JsonStateStore

__all__ = ["JsonStateStore", "InMemoryStateStore"]
