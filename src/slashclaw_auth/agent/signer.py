"""Agent-side key handling and challenge signing."""

import base64
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from eth_keys import keys

from ..core.crypto import (
    ALG_ED25519,
    ALG_RSA_PSS,
    ALG_RSA_SHA256,
    ALG_SECP256K1,
    eip191_digest,
    is_supported_algorithm,
)
from ..core.errors import InvalidAlgorithmError
from ..core.models import Credential

PrivateKey = Union[ed25519.Ed25519PrivateKey, ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]


def generate_private_key(algorithm: str, rsa_key_size: int = 2048) -> PrivateKey:
    """Generate a private key suitable for an algorithm.

    Args:
        algorithm: One of the supported algorithms
        rsa_key_size: Modulus size for RSA algorithms

    Returns:
        A ``cryptography`` private key object
    """
    if algorithm == ALG_ED25519:
        return ed25519.Ed25519PrivateKey.generate()
    if algorithm == ALG_SECP256K1:
        return ec.generate_private_key(ec.SECP256K1())
    if algorithm in (ALG_RSA_PSS, ALG_RSA_SHA256):
        return rsa.generate_private_key(public_exponent=65537, key_size=rsa_key_size)
    raise InvalidAlgorithmError(f"Unsupported algorithm {algorithm!r}")


def encode_public_key(algorithm: str, private_key: PrivateKey) -> str:
    """Encode the public half of a key the way the server expects it.

    ed25519: base64 of the 32 raw bytes. secp256k1: hex of the compressed
    point. RSA: PEM SubjectPublicKeyInfo.
    """
    public_key = private_key.public_key()
    if algorithm == ALG_ED25519:
        raw = public_key.public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )
        return base64.b64encode(raw).decode("ascii")
    if algorithm == ALG_SECP256K1:
        return public_key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        ).hex()
    if algorithm in (ALG_RSA_PSS, ALG_RSA_SHA256):
        return public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
    raise InvalidAlgorithmError(f"Unsupported algorithm {algorithm!r}")


def sign_challenge(algorithm: str, private_key: PrivateKey, challenge: str) -> str:
    """Sign a challenge string and encode the signature.

    Args:
        algorithm: One of the supported algorithms
        private_key: Key matching the algorithm
        challenge: Challenge string exactly as issued

    Returns:
        Encoded signature (base64, or 0x-prefixed hex for secp256k1)
    """
    message = challenge.encode("utf-8")
    if algorithm == ALG_ED25519:
        signature = private_key.sign(message)
        return base64.b64encode(signature).decode("ascii")
    if algorithm == ALG_SECP256K1:
        secret = private_key.private_numbers().private_value.to_bytes(32, "big")
        signature = keys.PrivateKey(secret).sign_msg_hash(eip191_digest(message))
        # personal_sign convention: v in {27, 28}
        return "0x" + (signature.to_bytes()[:64] + bytes([signature.v + 27])).hex()
    if algorithm == ALG_RSA_PSS:
        signature = private_key.sign(
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.MAX_LENGTH),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("ascii")
    if algorithm == ALG_RSA_SHA256:
        signature = private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(signature).decode("ascii")
    raise InvalidAlgorithmError(f"Unsupported algorithm {algorithm!r}")


class AgentSigner:
    """Holds an agent's identity and key and answers challenges with it."""

    def __init__(
        self,
        agent_id: str,
        algorithm: str,
        private_key: Optional[PrivateKey] = None,
    ):
        """Initialize agent signer.

        Args:
            agent_id: Agent identifier used when requesting challenges
            algorithm: Signature algorithm
            private_key: Existing private key (default: generate a new one)
        """
        if not is_supported_algorithm(algorithm):
            raise InvalidAlgorithmError(f"Unsupported algorithm {algorithm!r}")
        self.agent_id = agent_id
        self.algorithm = algorithm
        self.private_key = private_key or generate_private_key(algorithm)
        self.public_key = encode_public_key(algorithm, self.private_key)

    def sign(self, challenge: str) -> str:
        """Sign a challenge string."""
        return sign_challenge(self.algorithm, self.private_key, challenge)

    def credential(self, challenge: str) -> Credential:
        """Build the credential proving possession of this key."""
        return Credential(
            algorithm=self.algorithm,
            public_key=self.public_key,
            challenge=challenge,
            signature=self.sign(challenge),
        )

    def private_key_pem(self) -> bytes:
        """Serialize the private key as unencrypted PKCS#8 PEM."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    @classmethod
    def from_pem(cls, agent_id: str, algorithm: str, pem: bytes) -> "AgentSigner":
        """Load a signer from a PKCS#8 PEM private key."""
        private_key = serialization.load_pem_private_key(pem, password=None)
        return cls(agent_id=agent_id, algorithm=algorithm, private_key=private_key)
