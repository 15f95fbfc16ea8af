"""In-memory store for tests and embedded use."""

import threading
from datetime import datetime
from typing import Optional

from ..core.errors import ConflictError, StorageError
from ..core.models import Account, AccountKey, Challenge, Token
from .base import AuthStore


class InMemoryStore(AuthStore):
    """Keeps all records in dictionaries guarded by a single lock.

    Every operation holds the lock for its whole read-modify-write, which
    gives the same atomic consume-once and uniqueness guarantees as the
    SQLite store within one process.
    """

    def __init__(self):
        """Initialize an empty store."""
        self._lock = threading.Lock()
        self._challenges: dict[str, Challenge] = {}
        self._tokens: dict[str, Token] = {}
        self._accounts: dict[str, Account] = {}
        self._keys: dict[str, AccountKey] = {}

    def create_challenge(self, challenge: Challenge) -> None:
        with self._lock:
            if challenge.challenge in self._challenges:
                raise StorageError("Duplicate challenge string")
            self._challenges[challenge.challenge] = challenge.model_copy()

    def get_challenge(self, challenge: str) -> Optional[Challenge]:
        with self._lock:
            found = self._challenges.get(challenge)
            return found.model_copy() if found else None

    def delete_challenge(self, challenge_id: str) -> bool:
        with self._lock:
            for value, challenge in self._challenges.items():
                if challenge.id == challenge_id:
                    del self._challenges[value]
                    return True
            return False

    def create_token(self, token: Token) -> None:
        with self._lock:
            if token.token in self._tokens:
                raise StorageError("Duplicate token string")
            self._tokens[token.token] = token.model_copy()

    def get_token(self, token: str, now: datetime) -> Optional[Token]:
        with self._lock:
            found = self._tokens.get(token)
            if found is None or not found.is_valid(now):
                return None
            return found.model_copy()

    def create_account(self, account: Account) -> None:
        with self._lock:
            self._insert_account(account)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            found = self._accounts.get(account_id)
            return found.model_copy() if found else None

    def create_account_with_key(self, account: Account, key: AccountKey) -> None:
        with self._lock:
            self._check_key_unique(key)
            self._insert_account(account)
            self._keys[key.id] = key.model_copy()

    def create_account_key(self, key: AccountKey) -> None:
        with self._lock:
            if key.account_id not in self._accounts:
                raise StorageError(f"Unknown account: {key.account_id}")
            self._check_key_unique(key)
            self._keys[key.id] = key.model_copy()

    def get_account_key(self, key_id: str) -> Optional[AccountKey]:
        with self._lock:
            found = self._keys.get(key_id)
            return found.model_copy() if found else None

    def get_account_key_by_public_key(
        self, algorithm: str, public_key: str
    ) -> Optional[AccountKey]:
        with self._lock:
            found = self._find_active(algorithm, public_key)
            return found.model_copy() if found else None

    def list_account_keys(self, account_id: str) -> list[AccountKey]:
        with self._lock:
            keys = [k.model_copy() for k in self._keys.values() if k.account_id == account_id]
        return sorted(keys, key=lambda k: k.created_at)

    def revoke_account_key(self, key_id: str, now: datetime) -> bool:
        with self._lock:
            key = self._keys.get(key_id)
            if key is None or not key.is_active:
                return False
            self._keys[key_id] = key.model_copy(update={"revoked_at": now})
            return True

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired_challenges = [
                value for value, c in self._challenges.items() if c.is_expired(now)
            ]
            expired_tokens = [value for value, t in self._tokens.items() if not t.is_valid(now)]
            for value in expired_challenges:
                del self._challenges[value]
            for value in expired_tokens:
                del self._tokens[value]
            return len(expired_challenges) + len(expired_tokens)

    # Callers must hold the lock

    def _insert_account(self, account: Account) -> None:
        if account.id in self._accounts:
            raise StorageError(f"Duplicate account id: {account.id}")
        self._accounts[account.id] = account.model_copy()

    def _find_active(self, algorithm: str, public_key: str) -> Optional[AccountKey]:
        for key in self._keys.values():
            if key.is_active and key.algorithm == algorithm and key.public_key == public_key:
                return key
        return None

    def _check_key_unique(self, key: AccountKey) -> None:
        if key.id in self._keys:
            raise StorageError(f"Duplicate key id: {key.id}")
        if self._find_active(key.algorithm, key.public_key) is not None:
            raise ConflictError("Public key is already registered to an account")
