"""
Hash-chain construction and root aggregation.

CRITICAL: Chain and root hashes are compared byte-for-byte by other
implementations. Do not change input formats or ordering.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .canonical import utf8_bytes
from .config import (
    CURRENT_PROOF_VERSION,
    DEFAULT_MAX_CHAIN_LENGTH,
    GENESIS_HASH,
    HASH_PREFIX,
    LEGACY_PROOF_VERSION,
)
from .errors import InputTooLargeError, InputValidationError
from .hashing import chain_hash_current, chain_hash_legacy, compute_content_hash
from .models import HashChainLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainInput:
    """Input for building a hash chain."""
    content: Any
    content_type: str
    item_id: str


def build_hash_chain(
    items: Sequence[ChainInput],
    proof_version: str = CURRENT_PROOF_VERSION,
    max_length: int = DEFAULT_MAX_CHAIN_LENGTH,
) -> list[HashChainLink]:
    """
    Build a hash chain from an ordered list of items.

    Args:
        items: Ordered chain inputs
        proof_version: "v0.2.0" (default) or "legacy"
        max_length: Ceiling on len(items), enforced before any hashing

    Returns:
        List of hash chain links, one per item

    Raises:
        InputTooLargeError: If len(items) exceeds max_length
        InputValidationError: If proof_version is unknown
    """
    if len(items) > max_length:
        raise InputTooLargeError(
            f"Chain of {len(items)} items exceeds limit of {max_length}",
            details={"count": len(items), "limit": max_length},
        )
    if proof_version not in (CURRENT_PROOF_VERSION, LEGACY_PROOF_VERSION):
        raise InputValidationError(
            f"Unknown proof version: {proof_version}",
            details={"field": "proof_version", "value": proof_version},
        )

    chain: list[HashChainLink] = []
    previous_hash = GENESIS_HASH

    for seq, item in enumerate(items):
        content_hash = compute_content_hash(item.content)

        if proof_version == LEGACY_PROOF_VERSION:
            chain_hash = chain_hash_legacy(seq, content_hash, previous_hash)
        else:
            chain_hash = chain_hash_current(
                seq, item.item_id, item.content_type, content_hash, previous_hash,
            )

        chain.append(HashChainLink(
            sequence=seq,
            item_id=item.item_id,
            content_type=item.content_type,
            content_hash=content_hash,
            previous_hash=previous_hash,
            chain_hash=chain_hash,
        ))
        previous_hash = chain_hash

    logger.debug("Built %s hash chain of %d links", proof_version, len(chain))
    return chain


def _link_chain_hash(link: HashChainLink | Mapping[str, Any]) -> str:
    if isinstance(link, HashChainLink):
        return link.chain_hash
    value = link.get("chain_hash") if isinstance(link, Mapping) else None
    return value if isinstance(value, str) else ""


def compute_root_hash(chain: Iterable[HashChainLink | Mapping[str, Any]]) -> str:
    """
    Compute the root hash over an entire chain.

    Feeds each link's chain_hash string, in order, into one running
    SHA-256. Equal to hashing the concatenation, without building it.

    Args:
        chain: Hash chain links (dataclasses or persisted dicts)

    Returns:
        "sha256:<hex>" formatted root hash

    Raises:
        InputValidationError: If the chain is empty
    """
    digest = hashlib.sha256()
    count = 0
    for link in chain:
        digest.update(utf8_bytes(_link_chain_hash(link)))
        count += 1

    if count == 0:
        raise InputValidationError(
            "Cannot compute root hash of an empty chain",
            details={"field": "hash_chain"},
        )
    return HASH_PREFIX + digest.hexdigest()
