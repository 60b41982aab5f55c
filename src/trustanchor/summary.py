"""
Read-only inspection helpers for sealed bundles.

Summaries report what a bundle claims; they do not verify it. Any
field may be malformed, so every lookup tolerates the wrong type.
"""

from collections import Counter
from typing import Any, Mapping

SHORT_HASH_LENGTH = 20


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _mappings(value: Any) -> list[Mapping[str, Any]]:
    return [entry for entry in _as_list(value) if isinstance(entry, Mapping)]


def _label(value: Any) -> str:
    if value is None:
        return "unknown"
    return value if isinstance(value, str) else str(value)


def bundle_summary(bundle: Mapping[str, Any]) -> dict[str, Any]:
    """
    Extract key metadata from a sealed bundle without modifying it.

    Returns:
        Dict with bundle_id, version, created_at, item_count,
        content_types (sorted), content_type_counts, root_hash,
        chain_length, signature_count and signers
    """
    items = _as_list(bundle.get("items"))
    proof = bundle.get("immutability_proof")
    proof = proof if isinstance(proof, Mapping) else {}
    signatures = _mappings(bundle.get("signatures"))

    type_counts = Counter(_label(item.get("content_type")) for item in _mappings(items))

    return {
        "bundle_id": bundle.get("bundle_id", ""),
        "version": bundle.get("version", ""),
        "created_at": bundle.get("created_at", ""),
        "item_count": len(items),
        "content_types": sorted(type_counts),
        "content_type_counts": dict(sorted(type_counts.items())),
        "root_hash": proof.get("root_hash", ""),
        "chain_length": len(_as_list(proof.get("hash_chain"))),
        "signature_count": len(_as_list(bundle.get("signatures"))),
        "signers": sorted({_label(sig.get("signer_id")) for sig in signatures}),
    }


def format_bundle_summary(bundle: Mapping[str, Any]) -> str:
    """
    Format a sealed bundle as a single line, e.g.
    "bundle-001 (v0.2.0) | 3 items [audit/finding x2, audit/note] | sha256:77befb59e21b..."
    """
    s = bundle_summary(bundle)
    root = _label(s["root_hash"]) if s["root_hash"] else ""
    if len(root) > SHORT_HASH_LENGTH:
        root = root[:SHORT_HASH_LENGTH] + "..."

    types = ", ".join(
        name if count == 1 else f"{name} x{count}"
        for name, count in s["content_type_counts"].items()
    ) or "none"

    parts = [f"{s['bundle_id']} (v{s['version']})", f"{s['item_count']} items [{types}]", root]
    if s["signature_count"]:
        parts.append(f"{s['signature_count']} signatures by {', '.join(s['signers']) or 'unknown'}")
    return " | ".join(parts)
