"""Request and response bodies of the auth HTTP API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import AccountKey, AccountProfile, Credential


class ChallengeRequest(BaseModel):
    agent_id: str = Field(min_length=1)
    alg: str = Field(min_length=1)


class ChallengeResponse(BaseModel):
    challenge: str
    expires_at: datetime


class CredentialFields(BaseModel):
    """The signed-challenge fields shared by verify and key registration."""

    alg: str = Field(min_length=1)
    public_key: str = Field(min_length=1)
    challenge: str = Field(min_length=1)
    signature: str = Field(min_length=1)

    def to_credential(self) -> Credential:
        return Credential(
            algorithm=self.alg,
            public_key=self.public_key,
            challenge=self.challenge,
            signature=self.signature,
        )


class VerifyRequest(CredentialFields):
    agent_id: str = Field(min_length=1)


class VerifyResponse(BaseModel):
    access_token: str
    expires_at: datetime
    key_id: str
    account_id: Optional[str] = None


class CreateAccountRequest(CredentialFields):
    display_name: str = Field(min_length=1)
    bio: Optional[str] = None
    homepage_url: Optional[str] = None

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("display_name is required")
        return v

    def to_profile(self) -> AccountProfile:
        return AccountProfile(
            display_name=self.display_name, bio=self.bio, homepage_url=self.homepage_url
        )


class CreateAccountResponse(BaseModel):
    account_id: str
    key_id: str


class AddKeyRequest(CredentialFields):
    pass


class AddKeyResponse(BaseModel):
    key_id: str


class DeleteKeyResponse(BaseModel):
    ok: bool = True


class AccountResponse(BaseModel):
    id: str
    display_name: str
    bio: Optional[str] = None
    homepage_url: Optional[str] = None
    created_at: datetime


class AccountKeyResponse(BaseModel):
    id: str
    account_id: str
    alg: str
    public_key: str
    created_at: datetime
    revoked_at: Optional[datetime] = None

    @classmethod
    def from_key(cls, key: AccountKey) -> "AccountKeyResponse":
        return cls(
            id=key.id,
            account_id=key.account_id,
            alg=key.algorithm,
            public_key=key.public_key,
            created_at=key.created_at,
            revoked_at=key.revoked_at,
        )


class AccountKeysResponse(BaseModel):
    keys: list[AccountKeyResponse]


class CleanupResponse(BaseModel):
    deleted: int


class ErrorResponse(BaseModel):
    error: str
