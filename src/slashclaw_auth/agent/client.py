"""HTTP client for the auth API."""

import logging
from typing import Any, Optional

import httpx

from ..core.errors import AuthRequestError
from ..core.schemas import (
    AccountKeyResponse,
    AccountResponse,
    ChallengeResponse,
    CreateAccountResponse,
    VerifyResponse,
)
from .signer import AgentSigner

logger = logging.getLogger(__name__)


class AgentAuthClient:
    """Runs the challenge/verify handshake and account calls for an agent.

    Usage:
        signer = AgentSigner("my-agent", "ed25519")
        client = AgentAuthClient("https://slashclaw.example", signer)
        token = client.authenticate()
        account = client.create_account("My Agent")
    """

    def __init__(
        self,
        base_url: str,
        signer: AgentSigner,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """Initialize client.

        Args:
            base_url: Server base URL
            signer: Agent identity and key
            timeout: Request timeout in seconds
            http_client: Optional HTTP client to use
        """
        self.base_url = base_url.rstrip("/")
        self.signer = signer
        self._http_client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None
        self.access_token: Optional[VerifyResponse] = None

    def close(self) -> None:
        if self._owns_client:
            self._http_client.close()

    def __enter__(self) -> "AgentAuthClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        authenticated: bool = False,
    ) -> dict[str, Any]:
        headers = {"X-Agent-Id": self.signer.agent_id}
        if authenticated:
            if self.access_token is None:
                raise AuthRequestError(401, "not authenticated; call authenticate() first")
            headers["Authorization"] = f"Bearer {self.access_token.access_token}"

        response = self._http_client.request(
            method, f"{self.base_url}{path}", json=json, headers=headers
        )
        if response.status_code >= 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            logger.debug("%s %s failed: %s %s", method, path, response.status_code, message)
            raise AuthRequestError(response.status_code, message)
        return response.json()

    def request_challenge(self, signer: Optional[AgentSigner] = None) -> ChallengeResponse:
        """Ask the server for a challenge for the signer's algorithm."""
        signer = signer or self.signer
        data = self._request(
            "POST",
            "/api/auth/challenge",
            json={"agent_id": self.signer.agent_id, "alg": signer.algorithm},
        )
        return ChallengeResponse(**data)

    def _signed_fields(self, signer: AgentSigner) -> dict[str, str]:
        challenge = self.request_challenge(signer)
        credential = signer.credential(challenge.challenge)
        return {
            "alg": credential.algorithm,
            "public_key": credential.public_key,
            "challenge": credential.challenge,
            "signature": credential.signature,
        }

    def authenticate(self) -> VerifyResponse:
        """Prove possession of the signer's key and store the access token."""
        fields = self._signed_fields(self.signer)
        data = self._request(
            "POST", "/api/auth/verify", json={"agent_id": self.signer.agent_id, **fields}
        )
        self.access_token = VerifyResponse(**data)
        return self.access_token

    def create_account(
        self,
        display_name: str,
        bio: Optional[str] = None,
        homepage_url: Optional[str] = None,
    ) -> CreateAccountResponse:
        """Register an account whose first key is the signer's key.

        Re-authenticate afterwards to get a token bound to the new account.
        """
        body = {"display_name": display_name, **self._signed_fields(self.signer)}
        if bio is not None:
            body["bio"] = bio
        if homepage_url is not None:
            body["homepage_url"] = homepage_url
        data = self._request("POST", "/api/accounts", json=body)
        return CreateAccountResponse(**data)

    def get_account(self, account_id: str) -> AccountResponse:
        return AccountResponse(**self._request("GET", f"/api/accounts/{account_id}"))

    def list_keys(self, account_id: str) -> list[AccountKeyResponse]:
        data = self._request("GET", f"/api/accounts/{account_id}/keys")
        return [AccountKeyResponse(**key) for key in data["keys"]]

    def add_key(self, account_id: str, new_signer: AgentSigner) -> str:
        """Bind another key to the account; returns the new key id.

        Requires a token bound to the account. The new key signs its own
        challenge, issued to this client's agent id.
        """
        data = self._request(
            "POST",
            f"/api/accounts/{account_id}/keys",
            json=self._signed_fields(new_signer),
            authenticated=True,
        )
        return data["key_id"]

    def revoke_key(self, account_id: str, key_id: str) -> None:
        """Revoke one of the account's keys (not the one in use)."""
        self._request(
            "DELETE", f"/api/accounts/{account_id}/keys/{key_id}", authenticated=True
        )
