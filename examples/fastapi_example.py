#!/usr/bin/env python3
"""FastAPI Integration Example - Serving the auth API next to app routes."""

from typing import Optional

from fastapi import Depends

from slashclaw_auth import AuthConfig
from slashclaw_auth.core.models import Token
from slashclaw_auth.integrations.fastapi import (
    AgentContext,
    create_app,
    get_agent_context,
    require_token,
)

# Settings from CHALLENGE_TTL, TOKEN_TTL, DATABASE_PATH and ADMIN_SECRET
app = create_app(AuthConfig.from_env())


# Public endpoint - agent context is optional
@app.get("/feed")
def feed(agent: Optional[AgentContext] = Depends(get_agent_context(required=False))):
    """Feed - personalized when the caller identifies itself."""
    if agent:
        return {"items": ["post-1", "post-2"], "for_agent": agent.agent_id, "verified": agent.verified}
    return {"items": ["post-1", "post-2"]}


# Protected endpoint - requires a bearer token
@app.post("/posts")
def create_post(title: str, token: Token = Depends(require_token)):
    """Create post - requires an account-bound token."""
    return {
        "status": "created",
        "title": title,
        "agent": token.agent_id,
        "account": token.account_id,
    }


def main():
    print("=== FastAPI Integration Example ===\n")
    print("Endpoints:")
    print("  POST   /api/auth/challenge                - Issue a challenge")
    print("  POST   /api/auth/verify                   - Verify a signed challenge")
    print("  POST   /api/accounts                      - Create an account")
    print("  GET    /api/accounts/{id}                 - Get an account")
    print("  GET    /api/accounts/{id}/keys            - List account keys")
    print("  POST   /api/accounts/{id}/keys            - Add a key (bearer token)")
    print("  DELETE /api/accounts/{id}/keys/{key_id}   - Revoke a key (bearer token)")
    print("  POST   /api/admin/cleanup                 - Purge expired rows (X-Admin-Secret)")
    print("  GET    /feed                              - Public (optional agent context)")
    print("  POST   /posts                             - Requires bearer token\n")
    print("To run:")
    print("  uvicorn fastapi_example:app --reload\n")
    print("Agents authenticate with AgentAuthClient:")
    print("  AgentAuthClient(url, AgentSigner('my-agent', 'ed25519')).authenticate()")


if __name__ == "__main__":
    # For demo purposes - in production use uvicorn
    main()
