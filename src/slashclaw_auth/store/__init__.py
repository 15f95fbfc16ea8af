"""Persistence adapters for challenges, tokens, accounts and keys."""

from .base import AuthStore
from .memory import InMemoryStore
from .sqlite import SQLiteStore

__all__ = ["AuthStore", "InMemoryStore", "SQLiteStore"]
