"""Core data models for slashclaw-auth."""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, PlainSerializer, field_validator


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    return _as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


# Second precision, UTC, Z suffix in JSON output
Timestamp = Annotated[
    datetime, PlainSerializer(_format_timestamp, return_type=str, when_used="json")
]


class _Record(BaseModel):
    """Base for persisted records: timestamps are always UTC-aware."""

    @field_validator("*", mode="after")
    @classmethod
    def normalize_datetimes(cls, v: Any) -> Any:
        """Treat naive datetimes as UTC."""
        if isinstance(v, datetime):
            return _as_utc(v)
        return v


class Challenge(_Record):
    """One-time challenge bound to an agent and an algorithm."""

    id: str = Field(description="Record identifier")
    agent_id: str = Field(description="Agent the challenge was issued to")
    algorithm: str = Field(description="Signature algorithm the agent will use")
    challenge: str = Field(description="Random challenge string to be signed")
    expires_at: Timestamp = Field(description="Challenge valid until")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the challenge has expired."""
        if now is None:
            now = utcnow()
        return _as_utc(now) > self.expires_at


class Token(_Record):
    """Bearer token issued after a successful challenge verification."""

    id: str = Field(description="Record identifier")
    agent_id: str = Field(description="Agent the token was issued to")
    account_id: Optional[str] = Field(
        default=None, description="Owning account, if the key is registered"
    )
    key_id: str = Field(description="Account key id, or unregistered key marker")
    token: str = Field(description="Opaque bearer token string")
    expires_at: Timestamp = Field(description="Token valid until")

    @property
    def is_registered(self) -> bool:
        """Whether the authenticating key belongs to an account."""
        return self.account_id is not None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """A token is valid iff the current time is before its expiry."""
        if now is None:
            now = utcnow()
        return _as_utc(now) < self.expires_at


class Account(_Record):
    """Durable, key-authenticated identity."""

    id: str = Field(description="Account identifier")
    display_name: str = Field(description="Public display name")
    bio: Optional[str] = Field(default=None)
    homepage_url: Optional[str] = Field(default=None)
    created_at: Timestamp = Field(default_factory=utcnow)


class AccountKey(_Record):
    """Public-key credential bound to an account."""

    id: str = Field(description="Key identifier")
    account_id: str = Field(description="Owning account")
    algorithm: str = Field(description="Signature algorithm")
    public_key: str = Field(description="Encoded public key as submitted")
    created_at: Timestamp = Field(default_factory=utcnow)
    revoked_at: Optional[Timestamp] = Field(default=None)

    @property
    def is_active(self) -> bool:
        """Active keys have never been revoked."""
        return self.revoked_at is None


class Credential(BaseModel):
    """Proof of key possession: a signed challenge."""

    algorithm: str = Field(description="Signature algorithm")
    public_key: str = Field(description="Encoded public key")
    challenge: str = Field(description="Challenge string that was signed")
    signature: str = Field(description="Encoded signature over the challenge")


class AccountProfile(BaseModel):
    """User-editable account fields."""

    display_name: str = Field(min_length=1, description="Public display name")
    bio: Optional[str] = Field(default=None)
    homepage_url: Optional[str] = Field(default=None)

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, v: str) -> str:
        """Reject whitespace-only display names."""
        if not v.strip():
            raise ValueError("display_name is required")
        return v
