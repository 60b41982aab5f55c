"""Signature production and verification tests."""

import base64
from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from trustanchor import (
    ErrorCode,
    VerifyOptions,
    attach_signature,
    sign_bundle,
    sign_bundle_hmac,
    signing_payload,
    verify_bundle,
    verify_signatures,
)

SECRET = "test-shared-secret"


def _manual_signature(bundle: dict, private_key, algorithm: str, key_id: str | None = "key-1") -> dict:
    """Sign without the library's signing helpers."""
    payload = signing_payload(bundle)

    if algorithm == "ed25519":
        signature = private_key.sign(payload)
    elif algorithm == "rsa-sha256":
        signature = private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    elif algorithm == "ecdsa-p256":
        signature = private_key.sign(payload, ec.ECDSA(hashes.SHA256()))
    else:
        raise ValueError(f"Unsupported algorithm for test: {algorithm}")

    sig = {
        "signature_id": "sig-001",
        "signer_id": "test-signer",
        "algorithm": algorithm,
        "signature_value": base64.b64encode(signature).decode("utf-8"),
        "signed_at": datetime.now(timezone.utc).isoformat(),
    }
    if key_id is not None:
        sig["public_key_id"] = key_id
    return sig


def _public_key_pem(private_key) -> str:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def _public_key_der_b64(private_key) -> str:
    der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def _options(**kwargs) -> VerifyOptions:
    return VerifyOptions(require_signatures=True, **kwargs)


PRIVATE_KEY_FACTORIES = {
    "ed25519": ed25519.Ed25519PrivateKey.generate,
    "rsa-sha256": lambda: rsa.generate_private_key(public_exponent=65537, key_size=2048),
    "ecdsa-p256": lambda: ec.generate_private_key(ec.SECP256R1()),
}


@pytest.mark.parametrize("algorithm", sorted(PRIVATE_KEY_FACTORIES))
def test_manual_signature_passes(sealed_bundle, algorithm):
    private_key = PRIVATE_KEY_FACTORIES[algorithm]()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, algorithm))
    result = verify_bundle(bundle, _options(public_keys={"key-1": _public_key_pem(private_key)}))

    assert result.valid, f"Expected valid bundle, got: {result.to_dict()['errors']}"


@pytest.mark.parametrize("algorithm", sorted(PRIVATE_KEY_FACTORIES))
def test_sign_bundle_round_trip(sealed_bundle, algorithm):
    private_key = PRIVATE_KEY_FACTORIES[algorithm]()
    signature = sign_bundle(sealed_bundle, private_key, algorithm, key_id="key-1")
    bundle = attach_signature(sealed_bundle, signature)

    assert signature["algorithm"] == algorithm
    assert signature["content_hash"].startswith("sha256:")
    result = verify_bundle(bundle, _options(public_keys={"key-1": _public_key_der_b64(private_key)}))
    assert result.valid, f"Expected valid bundle, got: {result.to_dict()['errors']}"


def test_raw_ed25519_key(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    bundle = attach_signature(sealed_bundle, sign_bundle(sealed_bundle, private_key, "ed25519", key_id="raw"))
    result = verify_bundle(bundle, _options(public_keys={"raw": base64.b64encode(raw).decode("ascii")}))

    assert result.valid, f"Expected valid bundle, got: {result.to_dict()['errors']}"


def test_default_key_used_without_key_id(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ed25519", key_id=None))
    result = verify_bundle(bundle, _options(public_keys={"default": _public_key_pem(private_key)}))

    assert result.valid


def test_tampered_signature_fails(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ed25519"))
    bundle["signatures"][0]["signature_value"] = "AAAA"

    result = verify_bundle(bundle, _options(public_keys={"key-1": _public_key_pem(private_key)}))

    assert not result.valid
    assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]
    assert result.errors[0].details["signature_id"] == "sig-001"


def test_bundle_modified_after_signing_fails(sealed_bundle):
    private_key = ec.generate_private_key(ec.SECP256R1())
    bundle = attach_signature(sealed_bundle, sign_bundle(sealed_bundle, private_key, "ecdsa-p256", key_id="k"))
    bundle["metadata"] = {"note": "added later"}

    result = verify_bundle(bundle, _options(public_keys={"k": _public_key_pem(private_key)}))

    assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]


def test_wrong_key_fails(sealed_bundle):
    signer = ed25519.Ed25519PrivateKey.generate()
    other = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, signer, "ed25519"))

    result = verify_bundle(bundle, _options(public_keys={"key-1": _public_key_pem(other)}))

    assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]


def test_missing_public_key(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ed25519"))

    result = verify_signatures(bundle, public_keys={"someone-else": _public_key_pem(private_key)})

    assert not result.valid
    assert result.errors[0].details == {"signature_id": "sig-001", "public_key_id": "key-1"}


def test_key_type_mismatch(sealed_bundle):
    signer = ed25519.Ed25519PrivateKey.generate()
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, signer, "ed25519"))

    result = verify_signatures(bundle, public_keys={"key-1": _public_key_pem(rsa_key)})

    assert not result.valid
    assert "Invalid public key" in result.errors[0].message


def test_ecdsa_requires_p256(sealed_bundle):
    private_key = ec.generate_private_key(ec.SECP384R1())
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ecdsa-p256"))

    result = verify_signatures(bundle, public_keys={"key-1": _public_key_pem(private_key)})

    assert not result.valid
    assert "P-256" in result.errors[0].message


def test_garbage_key_material(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ed25519"))

    for key_text in ("", "not base64 !!", base64.b64encode(b"short").decode(), "-----BEGIN PUBLIC KEY-----\nxx"):
        result = verify_signatures(bundle, public_keys={"key-1": key_text})
        assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]


def test_signature_not_base64(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, _manual_signature(sealed_bundle, private_key, "ed25519"))
    bundle["signatures"][0]["signature_value"] = "%%%"

    result = verify_signatures(bundle, public_keys={"key-1": _public_key_pem(private_key)})

    assert result.errors[0].message == "Signature is not valid base64"


def test_unsupported_algorithm(sealed_bundle):
    signature = sign_bundle_hmac(sealed_bundle, SECRET)
    signature["algorithm"] = "md5"
    result = verify_signatures(attach_signature(sealed_bundle, signature), hmac_secret=SECRET)

    assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]
    assert "md5" in result.errors[0].message


def test_missing_signature_value(sealed_bundle):
    signature = sign_bundle_hmac(sealed_bundle, SECRET)
    del signature["signature_value"]
    result = verify_signatures(attach_signature(sealed_bundle, signature), hmac_secret=SECRET)

    assert result.errors[0].message == "Signature missing signature_value"


def test_no_signatures_is_success(sealed_bundle):
    assert verify_signatures(sealed_bundle).valid
    assert verify_signatures({**sealed_bundle, "signatures": []}).valid


class TestHmac:

    def test_round_trip(self, sealed_bundle):
        bundle = attach_signature(sealed_bundle, sign_bundle_hmac(sealed_bundle, SECRET))
        assert verify_bundle(bundle, _options(hmac_secret=SECRET)).valid

    def test_wrong_secret(self, sealed_bundle):
        bundle = attach_signature(sealed_bundle, sign_bundle_hmac(sealed_bundle, SECRET))
        result = verify_bundle(bundle, _options(hmac_secret="other-secret"))
        assert result.codes == [ErrorCode.SIGNATURE_INVALID.value]
        assert result.errors[0].message == "HMAC signature verification failed"

    def test_secret_required(self, sealed_bundle):
        bundle = attach_signature(sealed_bundle, sign_bundle_hmac(sealed_bundle, SECRET))
        result = verify_signatures(bundle)
        assert "no hmac_secret" in result.errors[0].message

    def test_empty_secret_refused(self, sealed_bundle):
        with pytest.raises(ValueError):
            sign_bundle_hmac(sealed_bundle, "")

    def test_bundle_id_required(self):
        with pytest.raises(ValueError):
            sign_bundle_hmac({"items": []}, SECRET)


def test_multiple_signatures(sealed_bundle):
    private_key = ed25519.Ed25519PrivateKey.generate()
    bundle = attach_signature(sealed_bundle, sign_bundle_hmac(sealed_bundle, SECRET))
    bundle = attach_signature(bundle, sign_bundle(bundle, private_key, "ed25519", key_id="ed"))

    result = verify_bundle(
        bundle,
        _options(hmac_secret=SECRET, public_keys={"ed": _public_key_pem(private_key)}),
    )
    assert result.valid, f"Expected valid bundle, got: {result.to_dict()['errors']}"


def test_attach_signature_does_not_mutate(sealed_bundle):
    signature = sign_bundle_hmac(sealed_bundle, SECRET)
    attach_signature(sealed_bundle, signature)
    assert "signatures" not in sealed_bundle


def test_sign_bundle_rejects_mismatched_key(sealed_bundle):
    with pytest.raises(ValueError):
        sign_bundle(sealed_bundle, ed25519.Ed25519PrivateKey.generate(), "rsa-sha256")
    with pytest.raises(ValueError):
        sign_bundle(sealed_bundle, ec.generate_private_key(ec.SECP384R1()), "ecdsa-p256")
