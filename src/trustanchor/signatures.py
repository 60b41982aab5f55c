"""
Signature verification schemes.

Each supported algorithm is one SignatureScheme subclass registered in
SCHEMES; verify_signatures() in verify.py only dispatches by name. Key
material always comes from the caller as a KeyMaterial value.

SECURITY: HMAC secrets and key bytes must never be logged.
"""

import base64
import binascii
import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from .config import DEFAULT_KEY_ID

# DER SubjectPublicKeyInfo prefix for a raw 32-byte Ed25519 key (RFC 8410).
ED25519_SPKI_PREFIX = bytes.fromhex("302a300506032b6570032100")


class SignatureCheckFailed(Exception):
    """A signature could not be verified. Converted to SIGNATURE_INVALID."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


@dataclass(frozen=True)
class KeyMaterial:
    """Caller-supplied verification keys."""
    public_keys: Mapping[str, str] = field(default_factory=dict)
    hmac_secret: str | None = None


def _decode_signature(signature_value: str) -> bytes:
    try:
        return base64.b64decode(signature_value, validate=True)
    except (binascii.Error, ValueError):
        raise SignatureCheckFailed("Signature is not valid base64")


class SignatureScheme(ABC):
    """Verifies one signature algorithm over the canonical bundle bytes."""

    algorithm: str

    @abstractmethod
    def verify(self, signature: Mapping[str, Any], payload: bytes, keys: KeyMaterial) -> None:
        """Return on success; raise SignatureCheckFailed otherwise."""


class HmacSha256Scheme(SignatureScheme):
    algorithm = "hmac-sha256"

    def verify(self, signature, payload, keys):
        if not keys.hmac_secret:
            raise SignatureCheckFailed("HMAC signature present but no hmac_secret provided")

        expected = hmac.new(keys.hmac_secret.encode("utf-8"), payload, hashlib.sha256).digest()
        actual = _decode_signature(signature["signature_value"])
        if not hmac.compare_digest(expected, actual):
            raise SignatureCheckFailed("HMAC signature verification failed")


class AsymmetricScheme(SignatureScheme):
    """Public-key schemes: resolve the key, check its type, verify."""

    key_type: type

    def verify(self, signature, payload, keys):
        key_id = signature.get("public_key_id") or DEFAULT_KEY_ID
        key_text = keys.public_keys.get(key_id)
        if key_text is None:
            raise SignatureCheckFailed(f"Missing public key for key_id={key_id}", public_key_id=key_id)

        try:
            public_key = self.load_public_key(key_text)
        except ValueError as exc:
            raise SignatureCheckFailed(
                f"Invalid public key for {self.algorithm}: {exc}", public_key_id=key_id,
            )

        signature_bytes = _decode_signature(signature["signature_value"])
        try:
            self._verify_with_key(public_key, signature_bytes, payload)
        except InvalidSignature:
            raise SignatureCheckFailed(
                f"{self.algorithm} signature verification failed", public_key_id=key_id,
            )

    def load_public_key(self, key_text: str):
        """Load a public key from PEM text or base64 (raw Ed25519 or DER)."""
        if not isinstance(key_text, str) or not key_text.strip():
            raise ValueError("empty public key")
        key_text = key_text.strip()

        try:
            if "BEGIN" in key_text:
                key = serialization.load_pem_public_key(key_text.encode("utf-8"))
            else:
                key = serialization.load_der_public_key(self._der_from_base64(key_text))
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ValueError(f"unreadable public key ({exc})")

        if not isinstance(key, self.key_type):
            raise ValueError(f"expected {self.key_type.__name__}, got {type(key).__name__}")
        return key

    def _der_from_base64(self, key_text: str) -> bytes:
        try:
            return base64.b64decode(key_text, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("public key must be PEM or base64")

    @abstractmethod
    def _verify_with_key(self, public_key, signature: bytes, payload: bytes) -> None:
        """Raise InvalidSignature on mismatch."""


class Ed25519Scheme(AsymmetricScheme):
    algorithm = "ed25519"
    key_type = ed25519.Ed25519PublicKey

    def _der_from_base64(self, key_text):
        decoded = super()._der_from_base64(key_text)
        # Raw keys are wrapped so a single DER loader handles both encodings
        if len(decoded) == 32:
            return ED25519_SPKI_PREFIX + decoded
        return decoded

    def _verify_with_key(self, public_key, signature, payload):
        public_key.verify(signature, payload)


class RsaSha256Scheme(AsymmetricScheme):
    algorithm = "rsa-sha256"
    key_type = rsa.RSAPublicKey

    def _verify_with_key(self, public_key, signature, payload):
        public_key.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())


class EcdsaP256Scheme(AsymmetricScheme):
    algorithm = "ecdsa-p256"
    key_type = ec.EllipticCurvePublicKey

    def load_public_key(self, key_text):
        key = super().load_public_key(key_text)
        if not isinstance(key.curve, ec.SECP256R1):
            raise ValueError(f"ecdsa-p256 requires a P-256 key, got {key.curve.name}")
        return key

    def _verify_with_key(self, public_key, signature, payload):
        public_key.verify(signature, payload, ec.ECDSA(hashes.SHA256()))


SCHEMES: dict[str, SignatureScheme] = {
    scheme.algorithm: scheme
    for scheme in (HmacSha256Scheme(), Ed25519Scheme(), RsaSha256Scheme(), EcdsaP256Scheme())
}

SUPPORTED_ALGORITHMS = tuple(SCHEMES)


def get_scheme(algorithm: Any) -> SignatureScheme:
    try:
        return SCHEMES[algorithm]
    except (KeyError, TypeError):
        raise SignatureCheckFailed(f"Unsupported signature algorithm: {algorithm}")
