"""
Error codes and result types for trustanchor.

Error code values are wire strings shared with other implementations
of the bundle format and MUST NOT be renamed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Closed set of fault codes reported by sealing and verification."""
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    INPUT_VALIDATION_FAILED = "INPUT_VALIDATION_FAILED"
    INPUT_TOO_LARGE = "INPUT_TOO_LARGE"
    CONTENT_HASH_MISMATCH = "CONTENT_HASH_MISMATCH"
    HASH_CHAIN_BROKEN = "HASH_CHAIN_BROKEN"
    ROOT_HASH_MISMATCH = "ROOT_HASH_MISMATCH"
    SEQUENCE_GAP = "SEQUENCE_GAP"
    LENGTH_MISMATCH = "LENGTH_MISMATCH"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    SIGNATURE_REQUIRED = "SIGNATURE_REQUIRED"


@dataclass
class VerificationError:
    """
    A single verification finding with typed code and audit details
    (expected vs. actual values, offending index or field).
    """
    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class VerificationResult:
    """
    Result of a verification operation.

    ``valid`` is True exactly when ``errors`` is empty. ``warnings`` holds
    non-fatal notices such as acceptance of the legacy proof format.
    """
    valid: bool
    errors: list[VerificationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(
        cls,
        errors: list[VerificationError],
        warnings: list[str] | None = None,
    ) -> "VerificationResult":
        return cls(valid=not errors, errors=errors, warnings=list(warnings or []))

    @property
    def codes(self) -> list[str]:
        return [e.code.value for e in self.errors]

    def merge(self, other: "VerificationResult") -> None:
        """Accumulate another result's findings into this one."""
        self.errors.extend(other.errors)
        for warning in other.warnings:
            if warning not in self.warnings:
                self.warnings.append(warning)
        self.valid = not self.errors

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


class SealError(ValueError):
    """Sealing precondition violated. Raised immediately, never accumulated."""

    code = ErrorCode.INPUT_VALIDATION_FAILED

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InputValidationError(SealError):
    """Malformed sealing input: empty item list, missing identifiers."""
    code = ErrorCode.INPUT_VALIDATION_FAILED


class InputTooLargeError(SealError):
    """Item count exceeds the configured chain-length ceiling."""
    code = ErrorCode.INPUT_TOO_LARGE


class LegacyProofWarning(UserWarning):
    """
    Legacy chain hashes were accepted. The legacy format does not bind
    item_id or content_type, so items can be relabelled undetected.
    """
