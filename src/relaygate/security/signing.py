"""
Relay request signing.

The gateway authenticates every call it makes to the relay with an
ECDSA secp256k1 key. The signature covers the exact request body bytes
and travels in the X-Relay-Signature header as "<key_id>:<hex DER sig>".

KEY MANAGEMENT ASSUMPTIONS:
- The private key is loaded once at startup (hex scalar or PEM file)
- The signer is shared read-only by every in-flight request
- Key material never leaves this object: no repr, no logging
"""

from __future__ import annotations

import hashlib
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from relaygate.protocol.errors import SigningKeyError

SIGNATURE_HEADER = "X-Relay-Signature"


class RelaySigner:
    """
    ECDSA secp256k1 signer for outbound relay requests.

    Usage:
        # From a hex private key (as usually passed via env/flag)
        signer = RelaySigner.from_hex("0x4c0883a6...")

        # From PEM file
        signer = RelaySigner.from_pem_file("/path/to/key.pem")

        # Generate new key (for testing only)
        signer = RelaySigner.generate()
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey):
        if not isinstance(private_key.curve, ec.SECP256K1):
            raise SigningKeyError(f"Expected secp256k1 key, got {private_key.curve.name}")
        self._private_key = private_key
        self._public_key = private_key.public_key()

        # Key ID is SHA256 of the compressed public key (first 16 chars for readability)
        self._key_id = hashlib.sha256(self.public_key_bytes).hexdigest()[:16]

    def __repr__(self) -> str:
        return f"RelaySigner(key_id={self._key_id!r})"

    @property
    def key_id(self) -> str:
        """Public identifier for this signing key."""
        return self._key_id

    @property
    def public_key_bytes(self) -> bytes:
        """Compressed SEC1 public key (33 bytes)."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        )

    def sign(self, data: bytes) -> bytes:
        """Sign data with ECDSA/SHA-256. Returns a DER encoded signature."""
        return self._private_key.sign(data, ec.ECDSA(hashes.SHA256()))

    def signature_header(self, data: bytes) -> str:
        """Value for the X-Relay-Signature header over ``data``."""
        return f"{self._key_id}:{self.sign(data).hex()}"

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
            return True
        except InvalidSignature:
            return False

    @classmethod
    def generate(cls) -> "RelaySigner":
        """
        Generate a new secp256k1 key.

        WARNING: Use only for testing.
        """
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_hex(cls, key_hex: str) -> "RelaySigner":
        """Create signer from a 32-byte hex private scalar (0x prefix optional)."""
        raw = (key_hex or "").strip()
        if raw.startswith(("0x", "0X")):
            raw = raw[2:]
        if len(raw) != 64:
            raise SigningKeyError("Signing key must be 32 bytes of hex")
        try:
            value = int(raw, 16)
            private_key = ec.derive_private_key(value, ec.SECP256K1())
        except ValueError:
            # Never echo the offending key material.
            raise SigningKeyError("Signing key is not a valid secp256k1 scalar") from None
        return cls(private_key)

    @classmethod
    def from_pem_file(cls, path: str, password: Optional[bytes] = None) -> "RelaySigner":
        """Load signer from PEM-encoded private key file."""
        try:
            with open(path, "rb") as f:
                private_key = serialization.load_pem_private_key(f.read(), password=password)
        except (OSError, ValueError, TypeError) as e:
            raise SigningKeyError(f"Cannot load signing key from {path}: {type(e).__name__}") from None
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise SigningKeyError(f"Expected EC private key, got {type(private_key).__name__}")
        return cls(private_key)
