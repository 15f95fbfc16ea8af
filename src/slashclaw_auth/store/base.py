"""Persistence contract for challenges, tokens, accounts and account keys."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..core.models import Account, AccountKey, Challenge, Token


class AuthStore(ABC):
    """Storage backend used by the auth services.

    Implementations must provide two atomic guarantees:

    * ``delete_challenge`` returns True for exactly one caller per challenge,
      so a challenge can be consumed once even under concurrent requests.
    * Inserting an account key whose ``(algorithm, public_key)`` matches an
      active key raises ``ConflictError`` without a separate existence check.

    Backend failures are raised as ``StorageError``.
    """

    # Challenges

    @abstractmethod
    def create_challenge(self, challenge: Challenge) -> None:
        """Persist a new challenge."""

    @abstractmethod
    def get_challenge(self, challenge: str) -> Optional[Challenge]:
        """Look up a challenge by its string value, expired or not."""

    @abstractmethod
    def delete_challenge(self, challenge_id: str) -> bool:
        """Delete a challenge; True only if this call removed it."""

    # Tokens

    @abstractmethod
    def create_token(self, token: Token) -> None:
        """Persist a new token."""

    @abstractmethod
    def get_token(self, token: str, now: datetime) -> Optional[Token]:
        """Look up a token that is still valid at ``now``."""

    # Accounts

    @abstractmethod
    def create_account(self, account: Account) -> None:
        """Persist a new account."""

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Look up an account by id."""

    @abstractmethod
    def create_account_with_key(self, account: Account, key: AccountKey) -> None:
        """Persist an account and its first key as one unit.

        Raises:
            ConflictError: If the key is already actively registered; the
                account is not created in that case
        """

    # Account keys

    @abstractmethod
    def create_account_key(self, key: AccountKey) -> None:
        """Persist a new account key.

        Raises:
            ConflictError: If the key is already actively registered
        """

    @abstractmethod
    def get_account_key(self, key_id: str) -> Optional[AccountKey]:
        """Look up a key by id, including revoked keys."""

    @abstractmethod
    def get_account_key_by_public_key(
        self, algorithm: str, public_key: str
    ) -> Optional[AccountKey]:
        """Look up the active key for ``(algorithm, public_key)``."""

    @abstractmethod
    def list_account_keys(self, account_id: str) -> list[AccountKey]:
        """List all keys of an account, oldest first, including revoked ones."""

    @abstractmethod
    def revoke_account_key(self, key_id: str, now: datetime) -> bool:
        """Set ``revoked_at`` if the key is active; True if it was changed."""

    # Housekeeping

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        """Remove challenges and tokens that expired before ``now``."""

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "AuthStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
