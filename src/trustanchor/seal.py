"""
Bundle sealing for trustanchor.

Sealing is the only point where hashes are written. It fails fast on
malformed input; a bundle sealed from bad input would verify but prove
nothing.
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .chain import ChainInput, build_hash_chain, compute_root_hash
from .config import CURRENT_PROOF_VERSION, DEFAULT_BUNDLE_VERSION, SealOptions
from .errors import InputValidationError
from .models import EvidenceBundle, EvidenceItem, ImmutabilityProof

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SealResult:
    """Result of sealing: hashed items plus their immutability proof."""
    items: list[EvidenceItem]
    immutability_proof: ImmutabilityProof

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "immutability_proof": self.immutability_proof.to_dict(),
        }


def _validate_items(items: Sequence[Mapping[str, Any]]) -> None:
    if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
        raise InputValidationError(
            "Items must be a list of item objects",
            details={"field": "items", "received": type(items).__name__},
        )
    if len(items) == 0:
        raise InputValidationError(
            "Cannot seal an empty item list",
            details={"field": "items", "count": 0},
        )

    for idx, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise InputValidationError(
                f"Item {idx} must be an object, got {type(item).__name__}",
                details={"index": idx, "field": "item"},
            )
        for name in ("item_id", "content_type"):
            value = item.get(name)
            if not isinstance(value, str) or not value:
                raise InputValidationError(
                    f"Item {idx} is missing a non-empty {name}",
                    details={"index": idx, "field": name},
                )
        if "content" not in item:
            raise InputValidationError(
                f"Item {idx} is missing content",
                details={"index": idx, "field": "content"},
            )


def seal_bundle(
    items: Sequence[Mapping[str, Any]],
    options: SealOptions | None = None,
) -> SealResult:
    """
    Seal a list of items: compute content hashes, build the hash chain,
    and produce the immutability proof.

    Args:
        items: Dicts with 'item_id', 'content_type' and 'content' keys
        options: Sealing options (default: current proof version, 10,000 item limit)

    Returns:
        SealResult with sequenced items and the immutability proof

    Raises:
        InputValidationError: Empty list, non-object item, missing identifier
            or content, or a request to seal with the legacy proof format
        InputTooLargeError: More items than options.max_chain_length
    """
    options = options or SealOptions()
    if options.proof_version != CURRENT_PROOF_VERSION:
        raise InputValidationError(
            f"Sealing only produces {CURRENT_PROOF_VERSION} proofs, not {options.proof_version}",
            details={"field": "proof_version", "value": options.proof_version},
        )

    _validate_items(items)

    chain = build_hash_chain(
        [
            ChainInput(
                content=item["content"],
                content_type=item["content_type"],
                item_id=item["item_id"],
            )
            for item in items
        ],
        proof_version=options.proof_version,
        max_length=options.max_chain_length,
    )
    root_hash = compute_root_hash(chain)

    sealed_items = [
        EvidenceItem(
            item_id=link.item_id,
            content_type=link.content_type,
            content=copy.deepcopy(item["content"]),
            content_hash=link.content_hash,
            sequence=link.sequence,
        )
        for item, link in zip(items, chain)
    ]

    logger.info("Sealed %d items, root %s", len(sealed_items), root_hash)
    return SealResult(
        items=sealed_items,
        immutability_proof=ImmutabilityProof(hash_chain=chain, root_hash=root_hash),
    )


def build_bundle(
    items: Sequence[Mapping[str, Any]],
    bundle_id: str | None = None,
    version: str = DEFAULT_BUNDLE_VERSION,
    created_at: str | None = None,
    metadata: dict[str, Any] | None = None,
    options: SealOptions | None = None,
) -> dict[str, Any]:
    """
    Seal items and wrap them into a complete bundle document.

    Returns:
        Bundle dict with bundle_id, version, created_at, items,
        immutability_proof and (if given) metadata
    """
    result = seal_bundle(items, options)
    bundle = EvidenceBundle(
        bundle_id=bundle_id or f"bundle-{uuid.uuid4()}",
        version=version,
        created_at=created_at or datetime.now(timezone.utc).isoformat(),
        items=result.items,
        immutability_proof=result.immutability_proof,
        metadata=metadata,
    )
    return bundle.to_dict()
