"""
Offline bundle verification for trustanchor.

Every check recomputes what sealing produced and reports each
divergence as a typed VerificationError. Checks accumulate; nothing here
raises on malformed input. Hash comparisons go through safe_equal.
"""

import logging
import warnings
from typing import Any, Iterable, Mapping, Sequence

from cryptography.exceptions import UnsupportedAlgorithm

from .canonical import signing_payload
from .chain import compute_root_hash
from .config import (
    CURRENT_PROOF_VERSION,
    GENESIS_HASH,
    REQUIRED_BUNDLE_FIELDS,
    VerifyOptions,
)
from .errors import (
    ErrorCode,
    LegacyProofWarning,
    VerificationError,
    VerificationResult,
)
from .hashing import (
    chain_hash_current,
    chain_hash_legacy,
    compute_content_hash,
    safe_equal,
)
from .signatures import KeyMaterial, SignatureCheckFailed, get_scheme

logger = logging.getLogger(__name__)

LEGACY_WARNING = (
    "Legacy proof format accepted: legacy chain hashes do not bind item_id "
    "or content_type. Re-seal archives with the current proof version."
)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _type_name(value: Any) -> str:
    return "empty array" if _is_array(value) else type(value).__name__


def _is_index(value: Any, expected: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value == expected


def verify_content_hashes(items: Sequence[Mapping[str, Any]]) -> VerificationResult:
    """
    Verify that each item's content_hash matches SHA-256 of its canonical content.

    Detects content tampering.
    """
    errors: list[VerificationError] = []

    if not _is_array(items) or len(items) == 0:
        errors.append(VerificationError(
            code=ErrorCode.INPUT_VALIDATION_FAILED,
            message="Items must be a non-empty array",
            details={"received": _type_name(items)},
        ))
        return VerificationResult.from_errors(errors)

    for idx, item in enumerate(items):
        if not isinstance(item, Mapping):
            errors.append(VerificationError(
                code=ErrorCode.INPUT_VALIDATION_FAILED,
                message=f"Item {idx} is not an object",
                details={"index": idx, "received": type(item).__name__},
            ))
            continue

        item_id = item.get("item_id")
        try:
            expected = compute_content_hash(item.get("content"))
        except (TypeError, ValueError) as exc:
            errors.append(VerificationError(
                code=ErrorCode.INPUT_VALIDATION_FAILED,
                message=f"Content of item {item_id} cannot be canonicalized: {exc}",
                details={"index": idx, "item_id": item_id},
            ))
            continue

        actual = item.get("content_hash")
        if not safe_equal(actual, expected):
            errors.append(VerificationError(
                code=ErrorCode.CONTENT_HASH_MISMATCH,
                message=f"Content hash mismatch for item {item_id}",
                details={
                    "index": idx,
                    "item_id": item_id,
                    "expected": expected,
                    "actual": actual,
                },
            ))

    return VerificationResult.from_errors(errors)


def verify_hash_chain(
    chain: Sequence[Mapping[str, Any]],
    accept_proof_versions: Iterable[str] | None = None,
) -> VerificationResult:
    """
    Verify that each link in the chain correctly references the previous link
    and that the chain_hash is computed correctly.

    Args:
        chain: Persisted hash chain links
        accept_proof_versions: Formats a chain_hash may match. Defaults to the
            current format only; "legacy" must be requested explicitly and
            issues a LegacyProofWarning.
    """
    errors: list[VerificationError] = []
    notices: list[str] = []
    accepted = tuple(accept_proof_versions or (CURRENT_PROOF_VERSION,))
    policy = VerifyOptions(accept_proof_versions=accepted)
    allow_current = policy.accepts_current
    allow_legacy = policy.accepts_legacy

    if allow_legacy:
        warnings.warn(LEGACY_WARNING, LegacyProofWarning, stacklevel=2)
        logger.warning(LEGACY_WARNING)
        notices.append(LEGACY_WARNING)

    if not _is_array(chain) or len(chain) == 0:
        errors.append(VerificationError(
            code=ErrorCode.INPUT_VALIDATION_FAILED,
            message="Hash chain must be a non-empty array",
            details={"received": _type_name(chain)},
        ))
        return VerificationResult.from_errors(errors, notices)

    previous_chain_hash: Any = GENESIS_HASH
    legacy_links = 0

    for seq, link in enumerate(chain):
        if not isinstance(link, Mapping):
            errors.append(VerificationError(
                code=ErrorCode.INPUT_VALIDATION_FAILED,
                message=f"Chain link {seq} is not an object",
                details={"sequence": seq, "received": type(link).__name__},
            ))
            previous_chain_hash = None
            continue

        sequence = link.get("sequence")
        previous_hash = link.get("previous_hash")
        content_hash = link.get("content_hash")
        stored = link.get("chain_hash")

        if not _is_index(sequence, seq):
            errors.append(VerificationError(
                code=ErrorCode.SEQUENCE_GAP,
                message=f"Expected sequence {seq}, got {sequence}",
                details={"expected": seq, "actual": sequence},
            ))

        if not safe_equal(previous_hash, previous_chain_hash):
            errors.append(VerificationError(
                code=ErrorCode.HASH_CHAIN_BROKEN,
                message=f"Chain broken at sequence {seq}: previous_hash mismatch",
                details={
                    "sequence": seq,
                    "expected": previous_chain_hash,
                    "actual": previous_hash,
                },
            ))

        item_id = link.get("item_id")
        content_type = link.get("content_type")
        binds_identity = isinstance(item_id, str) and isinstance(content_type, str)

        expected = None
        matched = False
        if allow_current and binds_identity:
            expected = chain_hash_current(sequence, item_id, content_type, content_hash, previous_hash)
            matched = safe_equal(stored, expected)

        if not matched and allow_legacy:
            legacy = chain_hash_legacy(sequence, content_hash, previous_hash)
            matched = safe_equal(stored, legacy)
            if matched:
                legacy_links += 1
            elif expected is None:
                expected = legacy

        if not matched:
            if allow_current and not binds_identity and not allow_legacy:
                message = f"Chain link {seq} lacks item_id/content_type required by {CURRENT_PROOF_VERSION}"
            else:
                message = f"Chain hash mismatch at sequence {seq}"
            errors.append(VerificationError(
                code=ErrorCode.HASH_CHAIN_BROKEN,
                message=message,
                details={
                    "sequence": seq,
                    "accepted_versions": list(accepted),
                    "expected": expected,
                    "actual": stored,
                },
            ))

        previous_chain_hash = stored

    if legacy_links:
        logger.warning("%d of %d chain links verified only under the legacy format", legacy_links, len(chain))
    return VerificationResult.from_errors(errors, notices)


def verify_root_hash(proof: Mapping[str, Any]) -> VerificationResult:
    """
    Verify the root hash matches the digest of all chain hashes in order.
    """
    errors: list[VerificationError] = []
    chain = proof.get("hash_chain") if isinstance(proof, Mapping) else None

    if not _is_array(chain) or len(chain) == 0:
        errors.append(VerificationError(
            code=ErrorCode.INPUT_VALIDATION_FAILED,
            message="Immutability proof must contain a non-empty hash_chain",
            details={"received": _type_name(chain) if isinstance(proof, Mapping) else "null proof"},
        ))
        return VerificationResult.from_errors(errors)

    expected = compute_root_hash(chain)
    actual = proof.get("root_hash")
    if not safe_equal(actual, expected):
        errors.append(VerificationError(
            code=ErrorCode.ROOT_HASH_MISMATCH,
            message="Root hash does not match computed value",
            details={"expected": expected, "actual": actual},
        ))

    return VerificationResult.from_errors(errors)


def verify_signatures(
    bundle: Mapping[str, Any],
    public_keys: Mapping[str, str] | None = None,
    hmac_secret: str | None = None,
) -> VerificationResult:
    """
    Verify bundle signatures (if present).

    Supports hmac-sha256, ed25519, rsa-sha256 and ecdsa-p256. A bundle
    without signatures passes; use require_signatures in verify_bundle
    to demand them.
    """
    errors: list[VerificationError] = []
    signatures = bundle.get("signatures")

    if not signatures:
        return VerificationResult.from_errors(errors)

    if not _is_array(signatures):
        errors.append(VerificationError(
            code=ErrorCode.SIGNATURE_INVALID,
            message="Signatures must be an array",
            details={"received": type(signatures).__name__},
        ))
        return VerificationResult.from_errors(errors)

    try:
        payload = signing_payload(bundle)
    except TypeError as exc:
        errors.append(VerificationError(
            code=ErrorCode.SIGNATURE_INVALID,
            message=f"Bundle cannot be canonicalized for signature checks: {exc}",
            details={},
        ))
        return VerificationResult.from_errors(errors)

    keys = KeyMaterial(public_keys=dict(public_keys or {}), hmac_secret=hmac_secret)

    for idx, sig in enumerate(signatures):
        if not isinstance(sig, Mapping):
            errors.append(VerificationError(
                code=ErrorCode.SIGNATURE_INVALID,
                message=f"Signature {idx} is not an object",
                details={"index": idx},
            ))
            continue

        signature_id = sig.get("signature_id")
        value = sig.get("signature_value")
        if not isinstance(value, str) or not value:
            errors.append(VerificationError(
                code=ErrorCode.SIGNATURE_INVALID,
                message="Signature missing signature_value",
                details={"signature_id": signature_id},
            ))
            continue

        try:
            get_scheme(sig.get("algorithm")).verify(sig, payload, keys)
        except SignatureCheckFailed as exc:
            errors.append(VerificationError(
                code=ErrorCode.SIGNATURE_INVALID,
                message=exc.message,
                details={"signature_id": signature_id, **exc.details},
            ))
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            errors.append(VerificationError(
                code=ErrorCode.SIGNATURE_INVALID,
                message=f"{sig.get('algorithm')} signature could not be checked: {exc}",
                details={"signature_id": signature_id},
            ))

    return VerificationResult.from_errors(errors)


def _cross_check(items: Sequence[Any], chain: Sequence[Any]) -> list[VerificationError]:
    """Bind each item's sequence, hash and identity to the chain link at its index."""
    errors: list[VerificationError] = []

    for seq, (item, link) in enumerate(zip(items, chain)):
        if not isinstance(item, Mapping) or not isinstance(link, Mapping):
            continue

        if not _is_index(item.get("sequence"), seq):
            errors.append(VerificationError(
                code=ErrorCode.SEQUENCE_GAP,
                message=f"Item {seq} has sequence {item.get('sequence')}, expected {seq}",
                details={"sequence": seq, "item_sequence": item.get("sequence")},
            ))

        if not safe_equal(item.get("content_hash"), link.get("content_hash")):
            errors.append(VerificationError(
                code=ErrorCode.CONTENT_HASH_MISMATCH,
                message=f"Item {seq} content_hash does not match chain link",
                details={
                    "sequence": seq,
                    "item_hash": item.get("content_hash"),
                    "chain_hash": link.get("content_hash"),
                },
            ))

        # Legacy links carry no identity fields to bind against
        for name in ("item_id", "content_type"):
            bound = link.get(name)
            if bound is not None and not safe_equal(item.get(name), bound):
                errors.append(VerificationError(
                    code=ErrorCode.CONTENT_HASH_MISMATCH,
                    message=f"Item {seq} {name} does not match chain link",
                    details={
                        "sequence": seq,
                        name: item.get(name),
                        f"chain_{name}": bound,
                    },
                ))

    return errors


def verify_bundle(
    bundle: Mapping[str, Any],
    options: VerifyOptions | None = None,
) -> VerificationResult:
    """
    Full bundle verification: required fields, version, content hashes,
    chain, root, item/chain cross-check and signatures.

    Stops early only when the bundle is not an object or has no items or
    no immutability_proof at all. Otherwise every stage runs and all
    findings are returned together.

    Args:
        bundle: The evidence bundle document to verify
        options: Accepted proof versions, keys and signature policy

    Returns:
        VerificationResult; valid is True iff no errors were found
    """
    options = options or VerifyOptions()
    result = VerificationResult(valid=True)

    if not isinstance(bundle, Mapping):
        result.merge(VerificationResult.from_errors([VerificationError(
            code=ErrorCode.INPUT_VALIDATION_FAILED,
            message="Bundle must be an object",
            details={"received": type(bundle).__name__},
        )]))
        return result

    errors: list[VerificationError] = []
    for name in REQUIRED_BUNDLE_FIELDS:
        if bundle.get(name) is None:
            errors.append(VerificationError(
                code=ErrorCode.MISSING_REQUIRED_FIELD,
                message=f"Missing required field: {name}",
                details={"field": name},
            ))

    version = bundle.get("version")
    if version is not None and version not in options.supported_versions:
        errors.append(VerificationError(
            code=ErrorCode.UNSUPPORTED_VERSION,
            message=f"Unsupported bundle version: {version}. Supported: {', '.join(options.supported_versions)}",
            details={"version": version, "supported": list(options.supported_versions)},
        ))
    result.merge(VerificationResult.from_errors(errors))

    items = bundle.get("items")
    proof = bundle.get("immutability_proof")
    if items is None or proof is None:
        logger.info("Bundle %s not verifiable: items or proof absent", bundle.get("bundle_id"))
        return result

    chain = proof.get("hash_chain") if isinstance(proof, Mapping) else None

    result.merge(verify_content_hashes(items))
    result.merge(verify_hash_chain(chain, options.accept_proof_versions))
    result.merge(verify_root_hash(proof))
    logger.debug("Bundle %s: %d errors after content/chain/root", bundle.get("bundle_id"), len(result.errors))

    item_list = items if _is_array(items) else []
    link_list = chain if _is_array(chain) else []
    if len(item_list) != len(link_list):
        result.merge(VerificationResult.from_errors([VerificationError(
            code=ErrorCode.LENGTH_MISMATCH,
            message=f"Items count ({len(item_list)}) does not match chain length ({len(link_list)})",
            details={"items": len(item_list), "chain": len(link_list)},
        )]))
    result.merge(VerificationResult.from_errors(_cross_check(item_list, link_list)))

    result.merge(verify_signatures(bundle, options.public_keys, options.hmac_secret))
    if options.require_signatures and not bundle.get("signatures"):
        result.merge(VerificationResult.from_errors([VerificationError(
            code=ErrorCode.SIGNATURE_REQUIRED,
            message="Bundle must have signatures when require_signatures is set",
            details={},
        )]))

    logger.info(
        "Verified bundle %s: valid=%s, %d errors",
        bundle.get("bundle_id"), result.valid, len(result.errors),
    )
    return result
