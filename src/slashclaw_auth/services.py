"""Wiring of the auth services around one store."""

import logging
from datetime import datetime
from typing import Callable, Optional

from .core.config import AuthConfig
from .core.models import utcnow
from .issuer import ChallengeIssuer, TokenService
from .registry import AccountRegistry
from .store import AuthStore, SQLiteStore

logger = logging.getLogger(__name__)


class AuthServices:
    """Challenge issuer, token service and account registry sharing a store."""

    def __init__(
        self,
        store: AuthStore,
        config: Optional[AuthConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize services.

        Args:
            store: Persistence backend
            config: TTLs and admin secret (default: ``AuthConfig()``)
            clock: Returns the current UTC time
        """
        self.store = store
        self.config = config or AuthConfig()
        self.clock = clock
        self.challenges = ChallengeIssuer(store, self.config.challenge_ttl, clock)
        self.tokens = TokenService(store, self.config.token_ttl, clock)
        self.accounts = AccountRegistry(store, self.tokens, clock)

    @classmethod
    def from_config(cls, config: AuthConfig) -> "AuthServices":
        """Open the SQLite database named in the config and build the services."""
        return cls(SQLiteStore(config.database_path), config)

    def cleanup(self) -> int:
        """Delete expired challenges and tokens; returns the number removed."""
        deleted = self.store.delete_expired(self.clock())
        logger.info("Removed %d expired challenges and tokens", deleted)
        return deleted

    def close(self) -> None:
        self.store.close()
