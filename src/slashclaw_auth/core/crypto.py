"""Signature verification for the supported challenge algorithms.

Each algorithm is a plain function with the signature
``(public_key, message, signature) -> bool`` registered in ``VERIFIERS``.
Malformed inputs raise ``InvalidPublicKeyError`` or
``InvalidSignatureEncodingError``; a well-formed signature that does not
match returns ``False``.
"""

import base64
import re
from typing import Callable

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as EthKeysValidationError
from eth_utils import ValidationError as EthUtilsValidationError
from eth_utils import keccak

from .errors import (
    InvalidAlgorithmError,
    InvalidPublicKeyError,
    InvalidSignatureEncodingError,
)

ALG_ED25519 = "ed25519"
ALG_SECP256K1 = "secp256k1"
ALG_RSA_PSS = "rsa-pss"
ALG_RSA_SHA256 = "rsa-sha256"

SUPPORTED_ALGORITHMS = (ALG_ED25519, ALG_SECP256K1, ALG_RSA_PSS, ALG_RSA_SHA256)

ED25519_PUBLIC_KEY_SIZE = 32
SECP256K1_SIGNATURE_SIZE = 65

EIP191_PREFIX = b"\x19Ethereum Signed Message:\n"

_HEX_RE = re.compile(r"^(?:[0-9a-fA-F]{2})+$")


def is_supported_algorithm(algorithm: str) -> bool:
    """Check whether an algorithm name is supported."""
    return algorithm in VERIFIERS


def verify(algorithm: str, public_key: str, message: bytes, signature: str) -> bool:
    """Verify a signature over a message.

    Args:
        algorithm: One of ``SUPPORTED_ALGORITHMS``
        public_key: Encoded public key (encoding depends on algorithm)
        message: Exact bytes that were signed
        signature: Encoded signature (encoding depends on algorithm)

    Returns:
        True if the signature is valid, False otherwise

    Raises:
        InvalidAlgorithmError: If the algorithm is not supported
        InvalidPublicKeyError: If the public key cannot be decoded
        InvalidSignatureEncodingError: If the signature cannot be decoded
    """
    verifier = VERIFIERS.get(algorithm)
    if verifier is None:
        raise InvalidAlgorithmError(f"Unsupported algorithm: {algorithm!r}")
    return verifier(public_key, message, signature)


def eip191_digest(message: bytes) -> bytes:
    """Hash a message the way Ethereum ``personal_sign`` does."""
    return keccak(EIP191_PREFIX + str(len(message)).encode("ascii") + message)


def _b64decode(value: str) -> bytes:
    # Raises ValueError for bad padding, bad characters and non-ASCII text
    return base64.b64decode(value.strip(), validate=True)


def _decode_hex_or_base64(value: str) -> bytes:
    value = value.strip()
    if value[:2] in ("0x", "0X"):
        return bytes.fromhex(value[2:])
    if _HEX_RE.match(value):
        return bytes.fromhex(value)
    return _b64decode(value)


# Ed25519


def verify_ed25519(public_key: str, message: bytes, signature: str) -> bool:
    """Verify a raw Ed25519 signature (base64 key and signature)."""
    try:
        key_bytes = _b64decode(public_key)
    except ValueError:
        raise InvalidPublicKeyError("Ed25519 public key is not valid base64")
    if len(key_bytes) != ED25519_PUBLIC_KEY_SIZE:
        raise InvalidPublicKeyError(
            f"Ed25519 public key must be {ED25519_PUBLIC_KEY_SIZE} bytes, got {len(key_bytes)}"
        )
    try:
        key = ed25519.Ed25519PublicKey.from_public_bytes(key_bytes)
    except ValueError:
        raise InvalidPublicKeyError("Ed25519 public key is invalid")

    try:
        signature_bytes = _b64decode(signature)
    except ValueError:
        raise InvalidSignatureEncodingError("Ed25519 signature is not valid base64")

    try:
        key.verify(signature_bytes, message)
        return True
    except InvalidSignature:
        return False


# secp256k1 (EIP-191 personal_sign)


def load_secp256k1_public_key(public_key: str) -> bytes:
    """Decode a hex secp256k1 public key into 64 raw ``X || Y`` bytes.

    Accepts compressed (33 bytes), uncompressed (65 bytes) SEC1 points and
    bare 64-byte coordinates, with or without a ``0x`` prefix.
    """
    value = public_key.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    if not _HEX_RE.match(value):
        raise InvalidPublicKeyError("secp256k1 public key must be hex-encoded")
    point = bytes.fromhex(value)
    if len(point) == 64:
        point = b"\x04" + point
    try:
        key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), point)
    except ValueError:
        raise InvalidPublicKeyError("secp256k1 public key is not a valid curve point")
    return key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )[1:]


def verify_secp256k1(public_key: str, message: bytes, signature: str) -> bool:
    """Verify an Ethereum ``personal_sign`` signature against a public key."""
    expected = load_secp256k1_public_key(public_key)

    try:
        signature_bytes = _decode_hex_or_base64(signature)
    except ValueError:
        raise InvalidSignatureEncodingError("secp256k1 signature must be hex or base64")
    if len(signature_bytes) != SECP256K1_SIGNATURE_SIZE:
        raise InvalidSignatureEncodingError(
            f"secp256k1 signature must be {SECP256K1_SIGNATURE_SIZE} bytes (r || s || v)"
        )

    r = int.from_bytes(signature_bytes[0:32], "big")
    s = int.from_bytes(signature_bytes[32:64], "big")
    v = signature_bytes[64]
    if v in (27, 28):
        v -= 27
    if v not in (0, 1):
        return False

    try:
        recovered = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(
            eip191_digest(message)
        )
    except (BadSignature, EthKeysValidationError, EthUtilsValidationError, ValueError):
        return False
    return recovered.to_bytes() == expected


# RSA


def load_rsa_public_key(public_key: str) -> rsa.RSAPublicKey:
    """Load an RSA public key from PEM or base64-encoded DER SubjectPublicKeyInfo."""
    value = public_key.strip()
    try:
        if value.startswith("-----BEGIN"):
            key = serialization.load_pem_public_key(value.encode("utf-8"))
        else:
            key = serialization.load_der_public_key(_b64decode(value))
    except (ValueError, TypeError, UnsupportedAlgorithm):
        raise InvalidPublicKeyError("RSA public key must be PEM or base64 DER")
    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidPublicKeyError("Public key is not an RSA key")
    return key


def _verify_rsa(
    public_key: str, message: bytes, signature: str, pad: padding.AsymmetricPadding
) -> bool:
    key = load_rsa_public_key(public_key)
    try:
        signature_bytes = _b64decode(signature)
    except ValueError:
        raise InvalidSignatureEncodingError("RSA signature is not valid base64")
    try:
        key.verify(signature_bytes, message, pad, hashes.SHA256())
        return True
    except InvalidSignature:
        return False


def verify_rsa_pss(public_key: str, message: bytes, signature: str) -> bool:
    """Verify an RSASSA-PSS / SHA-256 signature with automatic salt length."""
    return _verify_rsa(
        public_key,
        message,
        signature,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO),
    )


def verify_rsa_sha256(public_key: str, message: bytes, signature: str) -> bool:
    """Verify an RSASSA-PKCS1-v1_5 / SHA-256 signature."""
    return _verify_rsa(public_key, message, signature, padding.PKCS1v15())


VERIFIERS: dict[str, Callable[[str, bytes, str], bool]] = {
    ALG_ED25519: verify_ed25519,
    ALG_SECP256K1: verify_secp256k1,
    ALG_RSA_PSS: verify_rsa_pss,
    ALG_RSA_SHA256: verify_rsa_sha256,
}
