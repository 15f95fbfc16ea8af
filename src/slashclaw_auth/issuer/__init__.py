"""Challenge and token issuance."""

from .challenge import ChallengeIssuer
from .token import TokenService

__all__ = ["ChallengeIssuer", "TokenService"]
