"""Tests for challenge verification and token issuance."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from helpers import login

from slashclaw_auth import AgentSigner
from slashclaw_auth.core.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    InvalidAlgorithmError,
    InvalidPublicKeyError,
    InvalidSignatureEncodingError,
    InvalidSignatureError,
)
from slashclaw_auth.core.models import AccountProfile
from slashclaw_auth.issuer.token import unregistered_key_id


@pytest.fixture
def signer():
    return AgentSigner("a1", "ed25519")


def _issue(services, signer, agent_id="a1"):
    challenge = services.challenges.create_challenge(agent_id, signer.algorithm)
    return challenge.challenge, signer.sign(challenge.challenge)


def test_verify_and_issue_unregistered_key(services, signer, clock):
    """A valid signature from an unknown key yields an account-less token."""
    token = login(services, signer)

    assert token.agent_id == "a1"
    assert token.account_id is None
    assert not token.is_registered
    assert token.key_id == unregistered_key_id(signer.public_key)
    assert token.key_id == "unregistered:" + signer.public_key[:16]
    assert token.expires_at == clock.now + timedelta(hours=24)


def test_token_is_validated(services, signer):
    token = login(services, signer)

    found = services.tokens.validate(token.token)
    assert found is not None
    assert found.id == token.id
    assert found.agent_id == "a1"


@pytest.mark.parametrize("algorithm", ["ed25519", "secp256k1", "rsa-sha256"])
def test_handshake_for_each_algorithm(services, algorithm, rsa_signer):
    if algorithm.startswith("rsa"):
        signer = AgentSigner("a1", algorithm, private_key=rsa_signer.private_key)
    else:
        signer = AgentSigner("a1", algorithm)

    token = login(services, signer)
    assert services.tokens.validate(token.token) is not None


def test_rsa_pss_handshake(services, rsa_signer):
    token = login(services, rsa_signer)

    assert token.agent_id == "rsa-agent"


def test_challenge_is_single_use(services, signer):
    """Replaying a consumed challenge fails with not-found."""
    challenge, signature = _issue(services, signer)
    services.tokens.verify_and_issue("a1", "ed25519", signer.public_key, challenge, signature)

    with pytest.raises(ChallengeNotFoundError):
        services.tokens.verify_and_issue("a1", "ed25519", signer.public_key, challenge, signature)


def test_unknown_challenge(services, signer):
    with pytest.raises(ChallengeNotFoundError):
        services.tokens.verify_and_issue(
            "a1", "ed25519", signer.public_key, "never-issued", signer.sign("never-issued")
        )


def test_expired_challenge(services, signer, clock):
    challenge, signature = _issue(services, signer)
    clock.advance(minutes=5, seconds=1)

    with pytest.raises(ChallengeExpiredError):
        services.tokens.verify_and_issue("a1", "ed25519", signer.public_key, challenge, signature)


def test_challenge_valid_until_expiry(services, signer, clock):
    challenge, signature = _issue(services, signer)
    clock.advance(minutes=5)

    token = services.tokens.verify_and_issue(
        "a1", "ed25519", signer.public_key, challenge, signature
    )
    assert token.token


def test_challenge_for_other_agent_is_not_found(services, signer):
    """A challenge answered under a different agent id looks nonexistent."""
    challenge, signature = _issue(services, signer, agent_id="a1")

    with pytest.raises(ChallengeNotFoundError):
        services.tokens.verify_and_issue("a2", "ed25519", signer.public_key, challenge, signature)

    # Still usable by the right agent
    services.tokens.verify_and_issue("a1", "ed25519", signer.public_key, challenge, signature)


def test_challenge_for_other_algorithm_is_not_found(services):
    ed_signer = AgentSigner("a1", "ed25519")
    k1_signer = AgentSigner("a1", "secp256k1")
    challenge = services.challenges.create_challenge("a1", "ed25519").challenge

    with pytest.raises(ChallengeNotFoundError):
        services.tokens.verify_and_issue(
            "a1", "secp256k1", k1_signer.public_key, challenge, k1_signer.sign(challenge)
        )

    token = services.tokens.verify_and_issue(
        "a1", "ed25519", ed_signer.public_key, challenge, ed_signer.sign(challenge)
    )
    assert token.agent_id == "a1"


def test_invalid_signature_leaves_challenge_usable(services, signer):
    """A failed attempt does not consume the challenge."""
    impostor = AgentSigner("a1", "ed25519")
    challenge, signature = _issue(services, signer)

    with pytest.raises(InvalidSignatureError):
        services.tokens.verify_and_issue(
            "a1", "ed25519", impostor.public_key, challenge, signature
        )

    token = services.tokens.verify_and_issue(
        "a1", "ed25519", signer.public_key, challenge, signature
    )
    assert token.agent_id == "a1"


def test_unsupported_algorithm(services, signer):
    challenge, signature = _issue(services, signer)

    with pytest.raises(InvalidAlgorithmError):
        services.tokens.verify_and_issue("a1", "dsa", signer.public_key, challenge, signature)


def test_malformed_inputs(services, signer):
    challenge, signature = _issue(services, signer)

    with pytest.raises(InvalidPublicKeyError):
        services.tokens.verify_and_issue("a1", "ed25519", "AAAA", challenge, signature)
    with pytest.raises(InvalidSignatureEncodingError):
        services.tokens.verify_and_issue("a1", "ed25519", signer.public_key, challenge, "!!")


def test_validate_unknown_and_blank_tokens(services):
    assert services.tokens.validate("no-such-token") is None
    assert services.tokens.validate("") is None
    assert services.tokens.validate(None) is None


def test_validate_expired_token(services, signer, clock):
    """Tokens are valid strictly before their expiry."""
    token = login(services, signer)

    clock.advance(hours=23, minutes=59)
    assert services.tokens.validate(token.token) is not None

    clock.advance(minutes=1)
    assert services.tokens.validate(token.token) is None


def test_tokens_are_distinct(services, signer):
    first = login(services, signer)
    second = login(services, signer)

    assert first.token != second.token
    assert services.tokens.validate(first.token).id == first.id
    assert services.tokens.validate(second.token).id == second.id


def test_registered_key_binds_token_to_account(services, signer):
    """Once the key is registered, new tokens carry the account and key id."""
    challenge, _ = _issue(services, signer)
    account, key = services.accounts.create_account(
        AccountProfile(display_name="Agent One"), signer.credential(challenge), "a1"
    )

    token = login(services, signer)
    assert token.is_registered
    assert token.account_id == account.id
    assert token.key_id == key.id


def test_concurrent_verification_issues_one_token(services, signer):
    """Exactly one of many concurrent submissions of a challenge wins."""
    challenge, signature = _issue(services, signer)

    def attempt(_):
        try:
            return services.tokens.verify_and_issue(
                "a1", "ed25519", signer.public_key, challenge, signature
            )
        except ChallengeNotFoundError:
            return None

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(attempt, range(50)))

    issued = [token for token in results if token is not None]
    assert len(issued) == 1
    assert services.tokens.validate(issued[0].token) is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
