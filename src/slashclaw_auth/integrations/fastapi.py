"""FastAPI integration for slashclaw-auth."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.config import AuthConfig
from ..core.crypto import SUPPORTED_ALGORITHMS
from ..core.errors import (
    ChallengeError,
    ConflictError,
    ForbiddenError,
    InvalidAlgorithmError,
    InvalidPublicKeyError,
    InvalidRequestError,
    InvalidSignatureEncodingError,
    InvalidSignatureError,
    NotFoundError,
    SlashclawAuthError,
    StorageError,
)
from ..core.models import Token
from ..core.schemas import (
    AccountKeyResponse,
    AccountKeysResponse,
    AccountResponse,
    AddKeyRequest,
    AddKeyResponse,
    ChallengeRequest,
    ChallengeResponse,
    CleanupResponse,
    CreateAccountRequest,
    CreateAccountResponse,
    DeleteKeyResponse,
    VerifyRequest,
    VerifyResponse,
)
from ..services import AuthServices

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "authentication required"

# Status code and client-facing message per error kind. ``None`` uses the
# exception's own message.
ERROR_RESPONSES: dict[type, tuple[int, Optional[str]]] = {
    InvalidAlgorithmError: (
        400,
        f"invalid algorithm; supported: {', '.join(SUPPORTED_ALGORITHMS)}",
    ),
    InvalidPublicKeyError: (400, "invalid public key format"),
    InvalidSignatureEncodingError: (400, "invalid signature encoding"),
    InvalidSignatureError: (401, "invalid signature"),
    ChallengeError: (400, "challenge expired or not found"),
    ConflictError: (409, "public key is already registered to an account"),
    ForbiddenError: (403, None),
    NotFoundError: (404, None),
    InvalidRequestError: (400, None),
}


class AgentContext(BaseModel):
    """Who is calling: from a bearer token, or an unverified X-Agent-Id header."""

    agent_id: str
    verified: bool = False
    account_id: Optional[str] = Field(default=None)
    key_id: Optional[str] = Field(default=None)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def auth_error_handler(request: Request, exc: SlashclawAuthError) -> JSONResponse:
    """Translate auth errors into stable status codes and messages."""
    for cls in type(exc).__mro__:
        if cls in ERROR_RESPONSES:
            status_code, message = ERROR_RESPONSES[cls]
            return error_response(status_code, message or str(exc))

    if isinstance(exc, StorageError):
        logger.error(
            "Storage failure on %s %s", request.method, request.url.path, exc_info=exc
        )
    else:
        logger.error(
            "Unexpected auth error on %s %s", request.method, request.url.path, exc_info=exc
        )
    return error_response(500, "internal error")


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the first problem."""
    errors = exc.errors()
    if not errors:
        return error_response(400, "invalid request")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return error_response(400, f"{location}: {message}" if location else message)


def get_services(request: Request) -> AuthServices:
    """Dependency returning the services installed on the app."""
    return request.app.state.auth


def bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def resolve_token(request: Request) -> Optional[Token]:
    """Validate the request's bearer token once and cache the result."""
    if hasattr(request.state, "auth_token"):
        return request.state.auth_token
    token = get_services(request).tokens.validate(bearer_token(request))
    request.state.auth_token = token
    return token


def resolve_agent(request: Request) -> Optional[AgentContext]:
    """Build the caller's agent context from a token or the X-Agent-Id header."""
    token = resolve_token(request)
    if token is not None:
        return AgentContext(
            agent_id=token.agent_id,
            verified=True,
            account_id=token.account_id,
            key_id=token.key_id,
        )
    agent_id = request.headers.get("X-Agent-Id")
    if agent_id:
        return AgentContext(agent_id=agent_id, verified=False)
    return None


class AgentContextMiddleware(BaseHTTPMiddleware):
    """Attaches ``request.state.agent`` to every request.

    The middleware never rejects a request; use ``require_token`` on routes
    that need authentication.
    """

    async def dispatch(self, request: Request, call_next):
        """Process request."""
        try:
            request.state.agent = await run_in_threadpool(resolve_agent, request)
        except StorageError:
            logger.exception("Could not resolve agent for %s %s", request.method, request.url.path)
            request.state.agent = None
        return await call_next(request)


def get_agent_context(required: bool = False):
    """Dependency to get the caller's agent context.

    Args:
        required: If True, raise 401 when the caller is not identified

    Returns:
        Dependency returning an ``AgentContext`` or None
    """

    def _get_agent_context(request: Request) -> Optional[AgentContext]:
        if hasattr(request.state, "agent"):
            agent = request.state.agent
        else:
            agent = resolve_agent(request)
        if required and agent is None:
            raise HTTPException(status_code=401, detail=AUTH_REQUIRED)
        return agent

    return _get_agent_context


def require_token(request: Request) -> Token:
    """Dependency requiring a valid, unexpired bearer token."""
    token = resolve_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail=AUTH_REQUIRED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def require_admin(
    request: Request,
    x_admin_secret: Optional[str] = Header(default=None),
) -> None:
    """Dependency requiring the configured ``X-Admin-Secret``."""
    secret = get_services(request).config.admin_secret
    if not secret or not x_admin_secret or not secrets.compare_digest(
        x_admin_secret.encode("utf-8"), secret.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="admin authentication required")


def create_auth_router() -> APIRouter:
    """Build the router with the challenge, verify and account endpoints."""
    router = APIRouter(prefix="/api")

    @router.post("/auth/challenge", response_model=ChallengeResponse)
    def create_challenge(
        body: ChallengeRequest, services: AuthServices = Depends(get_services)
    ) -> ChallengeResponse:
        challenge = services.challenges.create_challenge(body.agent_id, body.alg)
        return ChallengeResponse(challenge=challenge.challenge, expires_at=challenge.expires_at)

    @router.post("/auth/verify", response_model=VerifyResponse, response_model_exclude_none=True)
    def verify_challenge(
        body: VerifyRequest, services: AuthServices = Depends(get_services)
    ) -> VerifyResponse:
        token = services.tokens.verify_and_issue(
            body.agent_id, body.alg, body.public_key, body.challenge, body.signature
        )
        return VerifyResponse(
            access_token=token.token,
            expires_at=token.expires_at,
            key_id=token.key_id,
            account_id=token.account_id,
        )

    @router.post("/accounts", response_model=CreateAccountResponse, status_code=201)
    def create_account(
        body: CreateAccountRequest,
        request: Request,
        services: AuthServices = Depends(get_services),
    ) -> CreateAccountResponse:
        agent = resolve_agent(request)
        agent_id = agent.agent_id if agent else body.display_name
        account, key = services.accounts.create_account(
            body.to_profile(), body.to_credential(), agent_id
        )
        return CreateAccountResponse(account_id=account.id, key_id=key.id)

    @router.get("/accounts/{account_id}", response_model=AccountResponse)
    def get_account(
        account_id: str, services: AuthServices = Depends(get_services)
    ) -> AccountResponse:
        account = services.accounts.get_account(account_id)
        return AccountResponse(**account.model_dump())

    @router.get("/accounts/{account_id}/keys", response_model=AccountKeysResponse)
    def list_keys(
        account_id: str, services: AuthServices = Depends(get_services)
    ) -> AccountKeysResponse:
        keys = services.accounts.list_keys(account_id)
        return AccountKeysResponse(keys=[AccountKeyResponse.from_key(k) for k in keys])

    @router.post("/accounts/{account_id}/keys", response_model=AddKeyResponse, status_code=201)
    def add_key(
        account_id: str,
        body: AddKeyRequest,
        token: Token = Depends(require_token),
        services: AuthServices = Depends(get_services),
    ) -> AddKeyResponse:
        key = services.accounts.add_key(account_id, body.to_credential(), token)
        return AddKeyResponse(key_id=key.id)

    @router.delete("/accounts/{account_id}/keys/{key_id}", response_model=DeleteKeyResponse)
    def revoke_key(
        account_id: str,
        key_id: str,
        token: Token = Depends(require_token),
        services: AuthServices = Depends(get_services),
    ) -> DeleteKeyResponse:
        services.accounts.revoke_key(account_id, key_id, token)
        return DeleteKeyResponse(ok=True)

    @router.post(
        "/admin/cleanup",
        response_model=CleanupResponse,
        dependencies=[Depends(require_admin)],
    )
    def cleanup(services: AuthServices = Depends(get_services)) -> CleanupResponse:
        return CleanupResponse(deleted=services.cleanup())

    return router


def install_auth(app: FastAPI, services: AuthServices) -> None:
    """Mount the auth API, middleware and error handlers on an app."""
    app.state.auth = services
    app.add_middleware(AgentContextMiddleware)
    app.add_exception_handler(SlashclawAuthError, auth_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(create_auth_router())


def create_app(
    config: Optional[AuthConfig] = None, services: Optional[AuthServices] = None
) -> FastAPI:
    """Create a FastAPI app serving the auth API.

    Args:
        config: Settings (default: from environment variables)
        services: Prebuilt services (default: SQLite store from config)
    """
    if services is None:
        services = AuthServices.from_config(config or AuthConfig.from_env())

    app = FastAPI(title="Slashclaw Auth")
    install_auth(app, services)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app
