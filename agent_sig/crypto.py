"""Ed25519 key generation, signing primitives and encoding utilities."""

from __future__ import annotations

import base64
import binascii
import secrets
from typing import NamedTuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives import serialization

from .errors import InternalFailure

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
NONCE_BYTES = 16


class KeyPair(NamedTuple):
    """Raw Ed25519 key material: 32-byte seed and 32-byte public key."""

    private_key: bytes
    public_key: bytes


def generate_keypair() -> KeyPair:
    """Generate an Ed25519 keypair from the OS CSPRNG.

    Returns:
        KeyPair of (private_key, public_key), both 32 raw bytes.
    """
    private_key = Ed25519PrivateKey.generate()
    raw_private = private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )
    return KeyPair(raw_private, public_key_from_private(raw_private))


def public_key_from_private(private_key: bytes) -> bytes:
    """Derive the 32-byte public key from a 32-byte seed (or 64-byte seed||pub)."""
    key = Ed25519PrivateKey.from_private_bytes(private_key[:PRIVATE_KEY_LENGTH])
    return key.public_key().public_bytes(
        serialization.Encoding.Raw,
        serialization.PublicFormat.Raw,
    )


def ed25519_sign(private_key: bytes, payload: bytes) -> bytes:
    """Sign a payload with an Ed25519 private key.

    Args:
        private_key: 32-byte seed, or 64-byte seed || public key.
        payload: The bytes to sign.

    Returns:
        64-byte Ed25519 signature.
    """
    key = Ed25519PrivateKey.from_private_bytes(private_key[:PRIVATE_KEY_LENGTH])
    return key.sign(payload)


def ed25519_verify(public_key: bytes, payload: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature.

    Returns:
        True if valid, False for a bad signature or unusable public key.
    """
    try:
        key = Ed25519PublicKey.from_public_bytes(public_key)
    except ValueError:
        return False
    try:
        key.verify(signature, payload)
    except InvalidSignature:
        return False
    return True


def generate_nonce() -> str:
    """Generate a fresh random 16-byte nonce, hex-encoded.

    Raises:
        InternalFailure: If the OS random source is unavailable.
    """
    try:
        return secrets.token_hex(NONCE_BYTES)
    except (NotImplementedError, OSError) as exc:
        raise InternalFailure("random source unavailable") from exc


def b64encode(data: bytes) -> str:
    """Standard base64 with padding, as carried in the Signature header."""
    return base64.b64encode(data).decode("ascii")


def b64decode(s: str) -> bytes:
    """Strict standard base64 decode.

    Raises:
        ValueError: On characters outside the alphabet or bad padding.
    """
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64: {exc}") from exc


def hex_encode(data: bytes) -> str:
    return data.hex()


def hex_decode(s: str) -> bytes:
    """Decode a hex string (the wire/storage encoding for keys).

    Raises:
        ValueError: If the string is not valid hex.
    """
    return bytes.fromhex(s)
