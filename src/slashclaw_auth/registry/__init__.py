"""Account and key registry."""

from .accounts import AccountRegistry

__all__ = ["AccountRegistry"]
