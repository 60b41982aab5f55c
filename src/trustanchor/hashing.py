"""
Content hashing and chain-hash formulas.

Uses hashlib for SHA-256. Hash strings are "sha256:" + 64 lowercase hex.
The pipe-delimited chain-hash inputs below are part of the wire format.
"""

import hashlib
import hmac
import re
from typing import Any

from .canonical import canonical_bytes, utf8_bytes
from .config import HASH_PREFIX

HASH_STRING_RE = re.compile(r"^sha256:[0-9a-f]{64}\Z")


def is_hash_string(value: Any) -> bool:
    """True if value is a well-formed "sha256:<64 lowercase hex>" string."""
    return isinstance(value, str) and HASH_STRING_RE.match(value) is not None


def prefixed_digest(data: bytes) -> str:
    """SHA-256 of raw bytes as a "sha256:<hex>" string."""
    return HASH_PREFIX + hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """SHA-256 of a UTF-8 encoded string as a "sha256:<hex>" string."""
    return prefixed_digest(utf8_bytes(text))


def compute_content_hash(content: Any) -> str:
    """
    Compute SHA-256 of the canonical JSON representation of a value.

    Args:
        content: Any canonicalizable value

    Returns:
        "sha256:<hex>" formatted hash
    """
    return prefixed_digest(canonical_bytes(content))


def safe_equal(left: Any, right: Any) -> bool:
    """
    Constant-time comparison of two hash strings.

    Non-string operands never compare equal. Lengths are compared by
    hmac.compare_digest before any byte is inspected.
    """
    if not isinstance(left, str) or not isinstance(right, str):
        return False
    # surrogatepass keeps distinct strings distinct, lone surrogates included
    return hmac.compare_digest(
        left.encode("utf-8", "surrogatepass"),
        right.encode("utf-8", "surrogatepass"),
    )


def chain_hash_current(
    sequence: int,
    item_id: str,
    content_type: str,
    content_hash: str,
    previous_hash: str,
) -> str:
    """Chain hash for the current (v0.2.0) proof format. Binds item identity."""
    return sha256_text(f"{sequence}|{item_id}|{content_type}|{content_hash}|{previous_hash}")


def chain_hash_legacy(sequence: int, content_hash: str, previous_hash: str) -> str:
    """Chain hash for the deprecated legacy format. Verification only."""
    return sha256_text(f"{sequence}|{content_hash}|{previous_hash}")
