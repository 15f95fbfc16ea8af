"""SQLite-backed store."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ..core.errors import ConflictError, StorageError
from ..core.models import Account, AccountKey, Challenge, Token
from .base import AuthStore

logger = logging.getLogger(__name__)

# Fixed-width UTC timestamps compare correctly as text
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    bio TEXT,
    homepage_url TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS account_keys (
    id TEXT PRIMARY KEY,
    account_id TEXT NOT NULL REFERENCES accounts(id),
    algorithm TEXT NOT NULL,
    public_key TEXT NOT NULL,
    created_at TEXT NOT NULL,
    revoked_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_account_keys_account ON account_keys(account_id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_account_keys_active_pubkey
    ON account_keys(algorithm, public_key) WHERE revoked_at IS NULL;

CREATE TABLE IF NOT EXISTS challenges (
    id TEXT PRIMARY KEY,
    agent_id TEXT NOT NULL,
    algorithm TEXT NOT NULL,
    challenge TEXT NOT NULL UNIQUE,
    expires_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tokens (
    id TEXT PRIMARY KEY,
    account_id TEXT,
    key_id TEXT NOT NULL,
    agent_id TEXT NOT NULL,
    token TEXT NOT NULL UNIQUE,
    expires_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_challenges_expires ON challenges(expires_at);
CREATE INDEX IF NOT EXISTS idx_tokens_expires ON tokens(expires_at);
"""


def _ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _is_key_conflict(error: sqlite3.IntegrityError) -> bool:
    return "account_keys.algorithm" in str(error)


class SQLiteStore(AuthStore):
    """Stores auth records in a SQLite database.

    One connection is shared across threads; a lock serializes its use and
    each operation runs in its own transaction.
    """

    def __init__(self, db_path: str | Path = "slashclaw.db"):
        """Open (and migrate) the database.

        Args:
            db_path: Database file path, or ``":memory:"``

        Raises:
            StorageError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e
        logger.debug("Opened auth database at %s", self.db_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.IntegrityError as e:
                if _is_key_conflict(e):
                    raise ConflictError("Public key is already registered to an account") from e
                raise StorageError(f"Integrity error: {e}") from e
            except sqlite3.Error as e:
                raise StorageError(f"Database error: {e}") from e

    # Challenges

    def create_challenge(self, challenge: Challenge) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO challenges (id, agent_id, algorithm, challenge, expires_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    challenge.id,
                    challenge.agent_id,
                    challenge.algorithm,
                    challenge.challenge,
                    _ts(challenge.expires_at),
                ),
            )

    def get_challenge(self, challenge: str) -> Optional[Challenge]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, agent_id, algorithm, challenge, expires_at
                FROM challenges WHERE challenge = ?
                """,
                (challenge,),
            ).fetchone()
        if row is None:
            return None
        return Challenge(
            id=row["id"],
            agent_id=row["agent_id"],
            algorithm=row["algorithm"],
            challenge=row["challenge"],
            expires_at=_parse_ts(row["expires_at"]),
        )

    def delete_challenge(self, challenge_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM challenges WHERE id = ?", (challenge_id,))
            return cursor.rowcount == 1

    # Tokens

    def create_token(self, token: Token) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO tokens (id, account_id, key_id, agent_id, token, expires_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    token.id,
                    token.account_id,
                    token.key_id,
                    token.agent_id,
                    token.token,
                    _ts(token.expires_at),
                ),
            )

    def get_token(self, token: str, now: datetime) -> Optional[Token]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, account_id, key_id, agent_id, token, expires_at
                FROM tokens WHERE token = ? AND expires_at > ?
                """,
                (token, _ts(now)),
            ).fetchone()
        if row is None:
            return None
        return Token(
            id=row["id"],
            account_id=row["account_id"],
            key_id=row["key_id"],
            agent_id=row["agent_id"],
            token=row["token"],
            expires_at=_parse_ts(row["expires_at"]),
        )

    # Accounts

    def _insert_account(self, conn: sqlite3.Connection, account: Account) -> None:
        conn.execute(
            """
            INSERT INTO accounts (id, display_name, bio, homepage_url, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.display_name,
                account.bio,
                account.homepage_url,
                _ts(account.created_at),
            ),
        )

    def _insert_key(self, conn: sqlite3.Connection, key: AccountKey) -> None:
        conn.execute(
            """
            INSERT INTO account_keys (id, account_id, algorithm, public_key, created_at, revoked_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                key.id,
                key.account_id,
                key.algorithm,
                key.public_key,
                _ts(key.created_at),
                _ts(key.revoked_at) if key.revoked_at else None,
            ),
        )

    def create_account(self, account: Account) -> None:
        with self._transaction() as conn:
            self._insert_account(conn, account)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, display_name, bio, homepage_url, created_at
                FROM accounts WHERE id = ?
                """,
                (account_id,),
            ).fetchone()
        if row is None:
            return None
        return Account(
            id=row["id"],
            display_name=row["display_name"],
            bio=row["bio"],
            homepage_url=row["homepage_url"],
            created_at=_parse_ts(row["created_at"]),
        )

    def create_account_with_key(self, account: Account, key: AccountKey) -> None:
        with self._transaction() as conn:
            self._insert_account(conn, account)
            self._insert_key(conn, key)

    # Account keys

    @staticmethod
    def _row_to_key(row: sqlite3.Row) -> AccountKey:
        return AccountKey(
            id=row["id"],
            account_id=row["account_id"],
            algorithm=row["algorithm"],
            public_key=row["public_key"],
            created_at=_parse_ts(row["created_at"]),
            revoked_at=_parse_ts(row["revoked_at"]),
        )

    def create_account_key(self, key: AccountKey) -> None:
        with self._transaction() as conn:
            self._insert_key(conn, key)

    def get_account_key(self, key_id: str) -> Optional[AccountKey]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, account_id, algorithm, public_key, created_at, revoked_at
                FROM account_keys WHERE id = ?
                """,
                (key_id,),
            ).fetchone()
        return self._row_to_key(row) if row else None

    def get_account_key_by_public_key(
        self, algorithm: str, public_key: str
    ) -> Optional[AccountKey]:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT id, account_id, algorithm, public_key, created_at, revoked_at
                FROM account_keys
                WHERE algorithm = ? AND public_key = ? AND revoked_at IS NULL
                """,
                (algorithm, public_key),
            ).fetchone()
        return self._row_to_key(row) if row else None

    def list_account_keys(self, account_id: str) -> list[AccountKey]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, account_id, algorithm, public_key, created_at, revoked_at
                FROM account_keys WHERE account_id = ?
                ORDER BY created_at, rowid
                """,
                (account_id,),
            ).fetchall()
        return [self._row_to_key(row) for row in rows]

    def revoke_account_key(self, key_id: str, now: datetime) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE account_keys SET revoked_at = ? WHERE id = ? AND revoked_at IS NULL",
                (_ts(now), key_id),
            )
            return cursor.rowcount == 1

    # Housekeeping

    def delete_expired(self, now: datetime) -> int:
        stamp = _ts(now)
        with self._transaction() as conn:
            challenges = conn.execute(
                "DELETE FROM challenges WHERE expires_at < ?", (stamp,)
            ).rowcount
            tokens = conn.execute("DELETE FROM tokens WHERE expires_at <= ?", (stamp,)).rowcount
        return challenges + tokens

    def close(self) -> None:
        with self._lock:
            self._conn.close()
