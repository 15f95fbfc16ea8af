"""Agent-side signing and API client."""

from .client import AgentAuthClient
from .signer import AgentSigner, encode_public_key, generate_private_key, sign_challenge

__all__ = [
    "AgentAuthClient",
    "AgentSigner",
    "encode_public_key",
    "generate_private_key",
    "sign_challenge",
]
