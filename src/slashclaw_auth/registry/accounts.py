"""Account and account key lifecycle."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from ..core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from ..core.models import Account, AccountKey, AccountProfile, Credential, Token, utcnow
from ..issuer.token import TokenService
from ..store.base import AuthStore

logger = logging.getLogger(__name__)


class AccountRegistry:
    """Creates accounts and manages the public keys bound to them.

    Every key registration requires a freshly signed challenge for that key.
    Global uniqueness of active ``(algorithm, public_key)`` pairs is enforced
    by the store at insert time.
    """

    def __init__(
        self,
        store: AuthStore,
        tokens: TokenService,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize registry.

        Args:
            store: Persistence backend
            tokens: Token service used to verify key credentials
            clock: Returns the current UTC time
        """
        self.store = store
        self.tokens = tokens
        self.clock = clock

    def create_account(
        self, profile: AccountProfile, credential: Credential, agent_id: str
    ) -> tuple[Account, AccountKey]:
        """Create an account with its first key.

        Args:
            profile: Display name and optional bio/homepage
            credential: Signed challenge for the account's first key
            agent_id: Agent the challenge was issued to

        Returns:
            Tuple of (account, key)

        Raises:
            ConflictError: If the key is already registered to an account
            ChallengeNotFoundError, ChallengeExpiredError, InvalidSignatureError, ...:
                If the credential does not verify
        """
        self.tokens.verify_credential(agent_id, credential)

        now = self.clock()
        account = Account(
            id=str(uuid.uuid4()),
            display_name=profile.display_name,
            bio=profile.bio,
            homepage_url=profile.homepage_url,
            created_at=now,
        )
        key = AccountKey(
            id=str(uuid.uuid4()),
            account_id=account.id,
            algorithm=credential.algorithm,
            public_key=credential.public_key,
            created_at=now,
        )
        self.store.create_account_with_key(account, key)
        logger.info("Created account %s with %s key %s", account.id, key.algorithm, key.id)
        return account, key

    def add_key(
        self, account_id: str, credential: Credential, requesting_token: Token
    ) -> AccountKey:
        """Bind an additional key to an account.

        The new key proves possession with its own challenge, issued to the
        same agent as the requesting token.

        Raises:
            ForbiddenError: If the token does not belong to the account
            NotFoundError: If the account does not exist
            ConflictError: If the key is already registered to an account
        """
        self._check_owner(account_id, requesting_token)
        self.get_account(account_id)

        self.tokens.verify_credential(requesting_token.agent_id, credential)

        key = AccountKey(
            id=str(uuid.uuid4()),
            account_id=account_id,
            algorithm=credential.algorithm,
            public_key=credential.public_key,
            created_at=self.clock(),
        )
        self.store.create_account_key(key)
        logger.info("Added %s key %s to account %s", key.algorithm, key.id, account_id)
        return key

    def revoke_key(self, account_id: str, key_id: str, requesting_token: Token) -> AccountKey:
        """Revoke one of an account's keys.

        Revocation is permanent. Revoking an already revoked key changes
        nothing and returns it as stored. Tokens already issued for the key
        stay valid until they expire.

        Raises:
            ForbiddenError: If the token does not belong to the account
            NotFoundError: If the key does not exist on this account
            InvalidRequestError: If the key is the one authenticating the request
        """
        self._check_owner(account_id, requesting_token)

        key = self.store.get_account_key(key_id)
        if key is None or key.account_id != account_id:
            raise NotFoundError("key not found")
        if key.id == requesting_token.key_id:
            raise InvalidRequestError("cannot revoke the key currently in use")

        if self.store.revoke_account_key(key_id, self.clock()):
            logger.info("Revoked key %s of account %s", key_id, account_id)
        else:
            logger.debug("Key %s of account %s was already revoked", key_id, account_id)

        revoked = self.store.get_account_key(key_id)
        if revoked is None:
            raise NotFoundError("key not found")
        return revoked

    def get_account(self, account_id: str) -> Account:
        """Get an account by id.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.store.get_account(account_id)
        if account is None:
            raise NotFoundError("account not found")
        return account

    def list_keys(self, account_id: str) -> list[AccountKey]:
        """List an account's keys, including revoked ones.

        Raises:
            NotFoundError: If the account does not exist
        """
        self.get_account(account_id)
        return self.store.list_account_keys(account_id)

    def find_active_key(self, algorithm: str, public_key: str) -> Optional[AccountKey]:
        """Find the active key for ``(algorithm, public_key)``, if any."""
        return self.store.get_account_key_by_public_key(algorithm, public_key)

    @staticmethod
    def _check_owner(account_id: str, requesting_token: Token) -> None:
        if requesting_token.account_id is None or requesting_token.account_id != account_id:
            raise ForbiddenError("not authorized to modify this account")
