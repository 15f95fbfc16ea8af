"""Tests for agent-side key handling."""

import base64

import pytest

from slashclaw_auth import AgentSigner, verify
from slashclaw_auth.core.errors import InvalidAlgorithmError


def test_public_key_encodings(rsa_signer):
    ed = AgentSigner("a1", "ed25519")
    k1 = AgentSigner("a1", "secp256k1")

    assert len(base64.b64decode(ed.public_key)) == 32
    assert len(bytes.fromhex(k1.public_key)) == 33
    assert rsa_signer.public_key.startswith("-----BEGIN PUBLIC KEY-----")


def test_secp256k1_signature_format():
    """0x-prefixed hex of r || s || v with v in {27, 28}."""
    signer = AgentSigner("a1", "secp256k1")
    raw = bytes.fromhex(signer.sign("challenge")[2:])

    assert len(raw) == 65
    assert raw[64] in (27, 28)


@pytest.mark.parametrize("algorithm", ["ed25519", "secp256k1"])
def test_pem_round_trip(algorithm):
    signer = AgentSigner("a1", algorithm)

    restored = AgentSigner.from_pem("a1", algorithm, signer.private_key_pem())

    assert restored.public_key == signer.public_key
    assert verify(algorithm, signer.public_key, b"challenge", restored.sign("challenge"))


def test_credential(rsa_signer):
    credential = rsa_signer.credential("challenge")

    assert credential.algorithm == "rsa-pss"
    assert credential.public_key == rsa_signer.public_key
    assert credential.challenge == "challenge"
    assert verify("rsa-pss", credential.public_key, b"challenge", credential.signature)


def test_unsupported_algorithm():
    with pytest.raises(InvalidAlgorithmError):
        AgentSigner("a1", "dsa")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
