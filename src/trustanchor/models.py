"""
Bundle data model.

Instances are produced once by sealing and treated as read-only after
that; to_dict() yields the persisted document shape that verification
consumes.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HashChainLink:
    """A single link in the hash chain."""
    sequence: int
    item_id: str
    content_type: str
    content_hash: str
    previous_hash: str
    chain_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "item_id": self.item_id,
            "content_type": self.content_type,
            "content_hash": self.content_hash,
            "previous_hash": self.previous_hash,
            "chain_hash": self.chain_hash,
        }


@dataclass(frozen=True)
class ImmutabilityProof:
    """Hash chain plus the root hash summarizing it."""
    hash_chain: list[HashChainLink]
    root_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash_chain": [link.to_dict() for link in self.hash_chain],
            "root_hash": self.root_hash,
        }


@dataclass(frozen=True)
class EvidenceItem:
    """A single sealed evidence item."""
    item_id: str
    content_type: str
    content: Any
    content_hash: str
    sequence: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "content_type": self.content_type,
            "content": self.content,
            "content_hash": self.content_hash,
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class Signature:
    """Detached signature over the canonical bundle (signatures excluded)."""
    signature_id: str
    algorithm: str
    signer_id: str
    signature_value: str
    signed_at: str
    public_key_id: str | None = None
    content_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "signature_id": self.signature_id,
            "algorithm": self.algorithm,
            "signer_id": self.signer_id,
            "signature_value": self.signature_value,
            "signed_at": self.signed_at,
        }
        # Optional members are absent, not null
        if self.public_key_id is not None:
            data["public_key_id"] = self.public_key_id
        if self.content_hash is not None:
            data["content_hash"] = self.content_hash
        return data


@dataclass(frozen=True)
class EvidenceBundle:
    """The sealed unit of audit evidence."""
    bundle_id: str
    version: str
    created_at: str
    items: list[EvidenceItem]
    immutability_proof: ImmutabilityProof
    signatures: list[Signature] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "bundle_id": self.bundle_id,
            "version": self.version,
            "created_at": self.created_at,
            "items": [item.to_dict() for item in self.items],
            "immutability_proof": self.immutability_proof.to_dict(),
        }
        if self.signatures:
            data["signatures"] = [sig.to_dict() for sig in self.signatures]
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data
