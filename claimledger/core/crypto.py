"""Ed25519 key handling and domain-separated claim digests.

Signature wire format::

    ed25519:<64-hex public key>:<base64url signature, no padding>

The public key travels with the signature so the signing identity can be
recovered from the pair and then compared with the one authorized signer.
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path
from typing import Any, Mapping

import jcs
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

SIGNATURE_SCHEME = "ed25519"


class SignatureFormatError(ValueError):
    """Raised when a signature string cannot be parsed."""


def canonicalize(obj: Mapping[str, Any]) -> bytes:
    """RFC 8785 canonical JSON bytes; key order never affects the output."""
    return jcs.canonicalize(dict(obj))


def domain_digest(domain: Mapping[str, str], message: Mapping[str, Any]) -> bytes:
    """SHA-256 over the domain and the message, encoded together."""
    return hashlib.sha256(canonicalize({"domain": dict(domain), "message": dict(message)})).digest()


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


class Ed25519KeyManager:
    """Holds the signing key; never exposes the private half except via ``save``."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        private_key = load_pem_private_key(path.read_bytes(), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Key file {path} does not contain an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def from_seed_hex(cls, seed_hex: str) -> "Ed25519KeyManager":
        seed = bytes.fromhex(seed_hex)
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign_digest(self, digest: bytes) -> str:
        raw = self._private_key.sign(digest)
        return f"{SIGNATURE_SCHEME}:{self._public_key_hex}:{_b64url_encode(raw)}"

    def save(self, path: Path) -> None:
        pem = self._private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(pem)
        path.chmod(0o600)


def recover_signer(digest: bytes, signature: str) -> str | None:
    """Return the public key hex that produced ``signature`` over ``digest``.

    ``None`` means the signature does not verify under the key it names.
    Malformed input raises ``SignatureFormatError``.
    """
    parts = signature.split(":") if isinstance(signature, str) else []
    if len(parts) != 3 or parts[0] != SIGNATURE_SCHEME:
        raise SignatureFormatError("unrecognised signature format")
    _, public_key_hex, encoded = parts
    try:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
        raw = _b64url_decode(encoded)
    except ValueError as exc:
        raise SignatureFormatError(str(exc)) from exc
    try:
        public_key.verify(raw, digest)
    except InvalidSignature:
        return None
    return public_key_hex.lower()


__all__ = [
    "Ed25519KeyManager",
    "SignatureFormatError",
    "canonicalize",
    "domain_digest",
    "recover_signer",
]
