"""
Constants and per-call options for sealing and verification.

Every value here is part of the cross-implementation contract unless
noted otherwise. Options are passed explicitly; nothing is read from
disk or the environment.
"""

from dataclasses import dataclass, field
from typing import Literal, Mapping

# Sentinel value for the first link in a hash chain (no predecessor)
GENESIS_HASH = "genesis"

HASH_PREFIX = "sha256:"

CURRENT_PROOF_VERSION = "v0.2.0"
LEGACY_PROOF_VERSION = "legacy"

ProofVersion = Literal["v0.2.0", "legacy"]

# Bundle versions accepted by the verifier.
# 0.2.1 adds optional sanitization metadata; proof format is unchanged from 0.2.0.
SUPPORTED_VERSIONS = ("0.2.0", "0.2.1")
DEFAULT_BUNDLE_VERSION = "0.2.0"

# Upper bound on items per chain. Checked before any hashing.
DEFAULT_MAX_CHAIN_LENGTH = 10_000

# Key used when a signature does not name its public_key_id.
DEFAULT_KEY_ID = "default"

REQUIRED_BUNDLE_FIELDS = (
    "bundle_id",
    "version",
    "created_at",
    "items",
    "immutability_proof",
)


@dataclass(frozen=True)
class SealOptions:
    """Options for sealing a bundle."""
    proof_version: ProofVersion = CURRENT_PROOF_VERSION
    max_chain_length: int = DEFAULT_MAX_CHAIN_LENGTH


@dataclass(frozen=True)
class VerifyOptions:
    """
    Options for bundle verification.

    Attributes:
        accept_proof_versions: Chain-hash formats to accept. Adding
            "legacy" is an explicit downgrade and raises a LegacyProofWarning.
        public_keys: Map of public_key_id -> PEM or base64 public key
        hmac_secret: Shared secret for hmac-sha256 signatures
        require_signatures: Fail bundles that carry no signatures
        supported_versions: Accepted values of the bundle "version" field
    """
    accept_proof_versions: tuple[str, ...] = (CURRENT_PROOF_VERSION,)
    public_keys: Mapping[str, str] | None = None
    hmac_secret: str | None = None
    require_signatures: bool = False
    supported_versions: tuple[str, ...] = field(default=SUPPORTED_VERSIONS)

    @property
    def accepts_current(self) -> bool:
        return CURRENT_PROOF_VERSION in self.accept_proof_versions

    @property
    def accepts_legacy(self) -> bool:
        """True only when the caller explicitly opted into legacy chains."""
        return LEGACY_PROOF_VERSION in self.accept_proof_versions
