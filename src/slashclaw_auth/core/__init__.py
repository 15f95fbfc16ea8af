"""Core functionality for slashclaw-auth."""

from .config import AuthConfig, parse_duration
from .crypto import (
    ALG_ED25519,
    ALG_RSA_PSS,
    ALG_RSA_SHA256,
    ALG_SECP256K1,
    SUPPORTED_ALGORITHMS,
    eip191_digest,
    is_supported_algorithm,
    verify,
)
from .errors import (
    SlashclawAuthError,
    SignatureError,
    InvalidAlgorithmError,
    InvalidPublicKeyError,
    InvalidSignatureEncodingError,
    InvalidSignatureError,
    ChallengeError,
    ChallengeNotFoundError,
    ChallengeExpiredError,
    RegistryError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    InvalidRequestError,
    StorageError,
    ConfigurationError,
    AuthRequestError,
)
from .models import (
    Account,
    AccountKey,
    AccountProfile,
    Challenge,
    Credential,
    Token,
    utcnow,
)

__all__ = [
    # Config
    "AuthConfig",
    "parse_duration",
    # Crypto
    "ALG_ED25519",
    "ALG_RSA_PSS",
    "ALG_RSA_SHA256",
    "ALG_SECP256K1",
    "SUPPORTED_ALGORITHMS",
    "eip191_digest",
    "is_supported_algorithm",
    "verify",
    # Errors
    "SlashclawAuthError",
    "SignatureError",
    "InvalidAlgorithmError",
    "InvalidPublicKeyError",
    "InvalidSignatureEncodingError",
    "InvalidSignatureError",
    "ChallengeError",
    "ChallengeNotFoundError",
    "ChallengeExpiredError",
    "RegistryError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "InvalidRequestError",
    "StorageError",
    "ConfigurationError",
    "AuthRequestError",
    # Models
    "Account",
    "AccountKey",
    "AccountProfile",
    "Challenge",
    "Credential",
    "Token",
    "utcnow",
]
