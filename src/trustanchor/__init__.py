"""
trustanchor: offline sealing and verification of evidence bundles.

Hashes produced here are a wire contract: any implementation of the
bundle format must compute byte-identical canonical JSON, content
hashes, chain hashes and root hashes for the same input.
"""

import logging

from .canonical import UNDEFINED, canonical_bytes, canonical_json, signing_payload
from .chain import ChainInput, build_hash_chain, compute_root_hash
from .config import (
    CURRENT_PROOF_VERSION,
    DEFAULT_MAX_CHAIN_LENGTH,
    GENESIS_HASH,
    LEGACY_PROOF_VERSION,
    SUPPORTED_VERSIONS,
    SealOptions,
    VerifyOptions,
)
from .errors import (
    ErrorCode,
    InputTooLargeError,
    InputValidationError,
    LegacyProofWarning,
    SealError,
    VerificationError,
    VerificationResult,
)
from .hashing import compute_content_hash, is_hash_string, safe_equal
from .models import EvidenceBundle, EvidenceItem, HashChainLink, ImmutabilityProof, Signature
from .seal import SealResult, build_bundle, seal_bundle
from .signatures import SUPPORTED_ALGORITHMS
from .signing import attach_signature, sign_bundle, sign_bundle_hmac
from .summary import bundle_summary, format_bundle_summary
from .verify import (
    verify_bundle,
    verify_content_hashes,
    verify_hash_chain,
    verify_root_hash,
    verify_signatures,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.2.0"
__all__ = [
    # Canonical JSON
    "UNDEFINED",
    "canonical_json",
    "canonical_bytes",
    "signing_payload",
    # Hashing and chain
    "GENESIS_HASH",
    "ChainInput",
    "compute_content_hash",
    "build_hash_chain",
    "compute_root_hash",
    "safe_equal",
    "is_hash_string",
    # Sealing
    "SealOptions",
    "SealResult",
    "seal_bundle",
    "build_bundle",
    # Signing
    "SUPPORTED_ALGORITHMS",
    "sign_bundle",
    "sign_bundle_hmac",
    "attach_signature",
    # Verification
    "CURRENT_PROOF_VERSION",
    "LEGACY_PROOF_VERSION",
    "SUPPORTED_VERSIONS",
    "DEFAULT_MAX_CHAIN_LENGTH",
    "VerifyOptions",
    "verify_bundle",
    "verify_hash_chain",
    "verify_root_hash",
    "verify_content_hashes",
    "verify_signatures",
    # Models
    "EvidenceBundle",
    "EvidenceItem",
    "HashChainLink",
    "ImmutabilityProof",
    "Signature",
    # Summaries
    "bundle_summary",
    "format_bundle_summary",
    # Errors
    "ErrorCode",
    "VerificationError",
    "VerificationResult",
    "SealError",
    "InputValidationError",
    "InputTooLargeError",
    "LegacyProofWarning",
]
