"""Challenge verification and bearer token issuance."""

import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..core.crypto import is_supported_algorithm, verify
from ..core.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidAlgorithmError,
    InvalidSignatureError,
)
from ..core.models import Credential, Token, utcnow
from ..store.base import AuthStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32

UNREGISTERED_KEY_PREFIX = "unregistered:"


def unregistered_key_id(public_key: str) -> str:
    """Key id recorded on tokens whose key is not bound to an account."""
    return UNREGISTERED_KEY_PREFIX + public_key[:16]


class TokenService:
    """Verifies signed challenges and issues short-lived bearer tokens."""

    def __init__(
        self,
        store: AuthStore,
        token_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize token service.

        Args:
            store: Persistence backend
            token_ttl: Lifetime of issued tokens
            clock: Returns the current UTC time
        """
        self.store = store
        self.token_ttl = token_ttl
        self.clock = clock

    def verify_credential(self, agent_id: str, credential: Credential) -> None:
        """Check a signed challenge and consume it.

        The challenge is deleted only after the signature verifies, and the
        delete itself decides the winner when several requests race on the
        same challenge.

        Args:
            agent_id: Agent the challenge must have been issued to
            credential: Algorithm, public key, challenge and signature

        Raises:
            InvalidAlgorithmError: If the algorithm is not supported
            ChallengeNotFoundError: If the challenge is unknown, already
                consumed, or was issued for another agent or algorithm
            ChallengeExpiredError: If the challenge has expired
            InvalidPublicKeyError: If the public key is malformed
            InvalidSignatureEncodingError: If the signature is malformed
            InvalidSignatureError: If the signature does not verify
            StorageError: If the store fails
        """
        if not is_supported_algorithm(credential.algorithm):
            raise InvalidAlgorithmError(f"Unsupported algorithm {credential.algorithm!r}")

        challenge = self.store.get_challenge(credential.challenge)
        if challenge is None:
            raise ChallengeNotFoundError("Challenge not found")
        if challenge.is_expired(self.clock()):
            raise ChallengeExpiredError("Challenge expired")
        if challenge.agent_id != agent_id or challenge.algorithm != credential.algorithm:
            raise ChallengeNotFoundError("Challenge not found")

        message = credential.challenge.encode("utf-8")
        if not verify(credential.algorithm, credential.public_key, message, credential.signature):
            logger.debug("Rejected %s signature from agent %s", credential.algorithm, agent_id)
            raise InvalidSignatureError("Signature verification failed")

        if not self.store.delete_challenge(challenge.id):
            raise ChallengeNotFoundError("Challenge already used")

    def verify_and_issue(
        self,
        agent_id: str,
        algorithm: str,
        public_key: str,
        challenge: str,
        signature: str,
    ) -> Token:
        """Verify a signed challenge and issue a bearer token.

        If ``(algorithm, public_key)`` is an active account key the token is
        bound to that account; otherwise it carries an unregistered key id
        and no account.

        Raises:
            See ``verify_credential``.
        """
        credential = Credential(
            algorithm=algorithm,
            public_key=public_key,
            challenge=challenge,
            signature=signature,
        )
        self.verify_credential(agent_id, credential)

        account_key = self.store.get_account_key_by_public_key(algorithm, public_key)

        token = Token(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            account_id=account_key.account_id if account_key else None,
            key_id=account_key.id if account_key else unregistered_key_id(public_key),
            token=secrets.token_urlsafe(TOKEN_BYTES),
            expires_at=self.clock() + self.token_ttl,
        )
        self.store.create_token(token)
        logger.info(
            "Issued token for agent %s (account=%s, key=%s)",
            agent_id,
            token.account_id or "-",
            token.key_id,
        )
        return token

    def validate(self, token: Optional[str]) -> Optional[Token]:
        """Look up a token that is still valid.

        Unknown and expired tokens both return None.

        Raises:
            StorageError: If the store fails
        """
        if not token:
            return None
        return self.store.get_token(token, self.clock())
