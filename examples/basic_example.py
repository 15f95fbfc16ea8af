#!/usr/bin/env python3
"""
Basic example demonstrating the complete slashclaw-auth workflow:
1. Agent answers a challenge and gets an unregistered token
2. Agent registers an account with its key
3. Agent adds a second key and revokes it
"""

from slashclaw_auth import AccountProfile, AgentSigner, AuthServices, InMemoryStore
from slashclaw_auth.core.errors import ChallengeNotFoundError, InvalidRequestError


def main():
    print("=== Slashclaw Auth - Basic Example ===\n")

    services = AuthServices(InMemoryStore())

    # ============================================================================
    # STEP 1: Agent generates a key
    # ============================================================================
    print("1. Agent generating Ed25519 key...")
    signer = AgentSigner("research-agent", "ed25519")
    print(f"   ✓ Agent ID: {signer.agent_id}")
    print(f"   - Public key: {signer.public_key}\n")

    # ============================================================================
    # STEP 2: Challenge / verify handshake
    # ============================================================================
    print("2. Requesting and answering a challenge...")
    challenge = services.challenges.create_challenge(signer.agent_id, signer.algorithm)
    signature = signer.sign(challenge.challenge)
    token = services.tokens.verify_and_issue(
        signer.agent_id, signer.algorithm, signer.public_key, challenge.challenge, signature
    )
    print(f"   ✓ Token issued (expires {token.expires_at:%Y-%m-%d %H:%M} UTC)")
    print(f"   - Key id: {token.key_id}")
    print(f"   - Registered: {token.is_registered}\n")

    # ============================================================================
    # STEP 3: Replay is rejected
    # ============================================================================
    print("3. Replaying the same signed challenge...")
    try:
        services.tokens.verify_and_issue(
            signer.agent_id, signer.algorithm, signer.public_key, challenge.challenge, signature
        )
        print("   ✗ Unexpected success\n")
    except ChallengeNotFoundError as e:
        print(f"   ✓ Rejected: {e}\n")

    # ============================================================================
    # STEP 4: Register an account
    # ============================================================================
    print("4. Registering an account...")
    challenge = services.challenges.create_challenge(signer.agent_id, signer.algorithm)
    account, first_key = services.accounts.create_account(
        AccountProfile(display_name="Research Agent", bio="Reads papers"),
        signer.credential(challenge.challenge),
        signer.agent_id,
    )
    print(f"   ✓ Account: {account.id}")
    print(f"   - First key: {first_key.id}\n")

    challenge = services.challenges.create_challenge(signer.agent_id, signer.algorithm)
    token = services.tokens.verify_and_issue(
        signer.agent_id,
        signer.algorithm,
        signer.public_key,
        challenge.challenge,
        signer.sign(challenge.challenge),
    )
    print(f"   ✓ New token bound to account {token.account_id}\n")

    # ============================================================================
    # STEP 5: Add an Ethereum wallet key
    # ============================================================================
    print("5. Adding a secp256k1 key...")
    wallet = AgentSigner(signer.agent_id, "secp256k1")
    challenge = services.challenges.create_challenge(signer.agent_id, wallet.algorithm)
    wallet_key = services.accounts.add_key(
        account.id, wallet.credential(challenge.challenge), token
    )
    print(f"   ✓ Key added: {wallet_key.id}\n")

    # ============================================================================
    # STEP 6: Revoke keys
    # ============================================================================
    print("6. Revoking keys...")
    try:
        services.accounts.revoke_key(account.id, first_key.id, token)
    except InvalidRequestError as e:
        print(f"   ✓ Key in use cannot be revoked: {e}")

    services.accounts.revoke_key(account.id, wallet_key.id, token)
    for key in services.accounts.list_keys(account.id):
        state = "active" if key.is_active else f"revoked {key.revoked_at:%H:%M:%S}"
        print(f"   - {key.algorithm:<10} {key.id} ({state})")

    print("\n=== Example Complete ===")
    services.close()


if __name__ == "__main__":
    main()
