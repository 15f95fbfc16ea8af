"""Exception hierarchy for slashclaw-auth."""


class SlashclawAuthError(Exception):
    """Base exception for all slashclaw-auth errors."""

    pass


# Signature errors
class SignatureError(SlashclawAuthError):
    """Base exception for signature-related errors."""

    pass


class InvalidAlgorithmError(SignatureError):
    """Algorithm is not one of the supported signature algorithms."""

    pass


class InvalidPublicKeyError(SignatureError):
    """Public key could not be decoded for the given algorithm."""

    pass


class InvalidSignatureEncodingError(SignatureError):
    """Signature could not be decoded for the given algorithm."""

    pass


class InvalidSignatureError(SignatureError):
    """Signature verification failed."""

    pass


# Challenge errors
class ChallengeError(SlashclawAuthError):
    """Base exception for challenge-related errors."""

    pass


class ChallengeNotFoundError(ChallengeError):
    """Challenge does not exist, was already consumed, or belongs to another agent."""

    pass


class ChallengeExpiredError(ChallengeError):
    """Challenge has expired."""

    pass


# Registry errors
class RegistryError(SlashclawAuthError):
    """Base exception for account and key registry errors."""

    pass


class ConflictError(RegistryError):
    """Public key is already actively bound to an account."""

    pass


class ForbiddenError(RegistryError):
    """Requesting token does not own the target account."""

    pass


class NotFoundError(RegistryError):
    """Account or key does not exist."""

    pass


class InvalidRequestError(RegistryError):
    """Request is well-formed but not allowed (e.g. revoking the key in use)."""

    pass


# Infrastructure errors
class StorageError(SlashclawAuthError):
    """Persistence backend failed."""

    pass


class ConfigurationError(SlashclawAuthError):
    """Configuration could not be loaded or is invalid."""

    pass


# Client errors
class AuthRequestError(SlashclawAuthError):
    """Auth server rejected a request."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
