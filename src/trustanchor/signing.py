"""
Bundle signing for trustanchor.

Produces signatures over the canonical bundle content with the
``signatures`` member excluded, which is exactly what the verifier
recomputes.

SECURITY: Secrets and private keys are supplied by the caller and are
never persisted or logged here.
"""

import base64
import hashlib
import hmac
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from .canonical import signing_payload
from .config import DEFAULT_KEY_ID
from .hashing import prefixed_digest
from .models import Signature


def _new_signature(
    payload: bytes,
    raw_signature: bytes,
    algorithm: str,
    signer_id: str,
    key_id: str,
) -> dict[str, Any]:
    return Signature(
        signature_id=f"sig-{uuid.uuid4()}",
        algorithm=algorithm,
        signer_id=signer_id,
        signature_value=base64.b64encode(raw_signature).decode("ascii"),
        signed_at=datetime.now(timezone.utc).isoformat(),
        public_key_id=key_id,
        content_hash=prefixed_digest(payload),
    ).to_dict()


def _require_bundle_id(bundle: Mapping[str, Any]) -> None:
    if not bundle.get("bundle_id"):
        raise ValueError("Bundle missing bundle_id")


def sign_bundle_hmac(
    bundle: Mapping[str, Any],
    secret: str,
    signer_id: str = "ci-pipeline",
    key_id: str = DEFAULT_KEY_ID,
) -> dict[str, Any]:
    """
    Sign a bundle with HMAC-SHA256 and return a signature object.

    Args:
        bundle: Sealed evidence bundle dict
        secret: HMAC shared secret (must match verifier)
        signer_id: Identity of the signer (e.g., "ci-pipeline", "deploy-bot")
        key_id: Key identifier for key rotation support

    Returns:
        Signature dict ready for attach_signature()

    Raises:
        ValueError: If secret is empty or bundle has no bundle_id
    """
    if not secret:
        raise ValueError("HMAC secret must not be empty")
    _require_bundle_id(bundle)

    payload = signing_payload(bundle)
    mac = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return _new_signature(payload, mac, "hmac-sha256", signer_id, key_id)


def sign_bundle(
    bundle: Mapping[str, Any],
    private_key,
    algorithm: str,
    signer_id: str = "ci-pipeline",
    key_id: str = DEFAULT_KEY_ID,
) -> dict[str, Any]:
    """
    Sign a bundle with an asymmetric private key.

    Args:
        bundle: Sealed evidence bundle dict
        private_key: cryptography private key matching ``algorithm``
        algorithm: "ed25519", "rsa-sha256" or "ecdsa-p256"
        signer_id: Identity of the signer
        key_id: public_key_id the verifier will look up

    Raises:
        ValueError: Unknown algorithm, key of the wrong type, or missing bundle_id
    """
    _require_bundle_id(bundle)
    payload = signing_payload(bundle)

    if algorithm == "ed25519" and isinstance(private_key, ed25519.Ed25519PrivateKey):
        raw = private_key.sign(payload)
    elif algorithm == "rsa-sha256" and isinstance(private_key, rsa.RSAPrivateKey):
        raw = private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    elif (
        algorithm == "ecdsa-p256"
        and isinstance(private_key, ec.EllipticCurvePrivateKey)
        and isinstance(private_key.curve, ec.SECP256R1)
    ):
        raw = private_key.sign(payload, ec.ECDSA(hashes.SHA256()))
    else:
        raise ValueError(f"Cannot sign with {algorithm} using {type(private_key).__name__}")

    return _new_signature(payload, raw, algorithm, signer_id, key_id)


def attach_signature(
    bundle: Mapping[str, Any],
    signature: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Return a new bundle dict with ``signature`` appended to its signatures.

    Does not mutate the original bundle. Existing signatures stay valid
    because the signed payload excludes the signatures list.
    """
    new_bundle = dict(bundle)
    new_bundle["signatures"] = [*bundle.get("signatures", []), dict(signature)]
    return new_bundle
