"""Slashclaw Auth - Challenge/response identity for agents."""

from .agent import AgentAuthClient, AgentSigner
from .core import (
    Account,
    AccountKey,
    AccountProfile,
    AuthConfig,
    Challenge,
    Credential,
    SUPPORTED_ALGORITHMS,
    Token,
    verify,
)
from .issuer import ChallengeIssuer, TokenService
from .registry import AccountRegistry
from .services import AuthServices
from .store import AuthStore, InMemoryStore, SQLiteStore

__version__ = "0.1.0"

__all__ = [
    # Agent
    "AgentAuthClient",
    "AgentSigner",
    # Core
    "Account",
    "AccountKey",
    "AccountProfile",
    "AuthConfig",
    "Challenge",
    "Credential",
    "SUPPORTED_ALGORITHMS",
    "Token",
    "verify",
    # Services
    "AuthServices",
    "ChallengeIssuer",
    "TokenService",
    "AccountRegistry",
    # Storage
    "AuthStore",
    "InMemoryStore",
    "SQLiteStore",
]
