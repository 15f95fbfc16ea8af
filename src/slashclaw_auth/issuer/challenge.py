"""Challenge issuance."""

import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Callable

from ..core.crypto import SUPPORTED_ALGORITHMS, is_supported_algorithm
from ..core.errors import InvalidAlgorithmError, InvalidRequestError
from ..core.models import Challenge, utcnow
from ..store.base import AuthStore

logger = logging.getLogger(__name__)

# 32 random bytes = 256 bits of entropy
CHALLENGE_BYTES = 32


class ChallengeIssuer:
    """Issues one-time challenges bound to an agent and an algorithm."""

    def __init__(
        self,
        store: AuthStore,
        challenge_ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize issuer.

        Args:
            store: Persistence backend
            challenge_ttl: How long a challenge can be answered
            clock: Returns the current UTC time
        """
        self.store = store
        self.challenge_ttl = challenge_ttl
        self.clock = clock

    def create_challenge(self, agent_id: str, algorithm: str) -> Challenge:
        """Create and persist a new challenge.

        Args:
            agent_id: Client-asserted agent identifier
            algorithm: Algorithm the agent will sign with

        Returns:
            The persisted challenge

        Raises:
            InvalidAlgorithmError: If the algorithm is not supported
            InvalidRequestError: If the agent id is blank
            StorageError: If the challenge cannot be stored
        """
        if not is_supported_algorithm(algorithm):
            raise InvalidAlgorithmError(
                f"Unsupported algorithm {algorithm!r}; supported: {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        if not agent_id or not agent_id.strip():
            raise InvalidRequestError("agent_id is required")

        challenge = Challenge(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            algorithm=algorithm,
            challenge=secrets.token_urlsafe(CHALLENGE_BYTES),
            expires_at=self.clock() + self.challenge_ttl,
        )
        self.store.create_challenge(challenge)
        logger.debug("Issued %s challenge for agent %s", algorithm, agent_id)
        return challenge
