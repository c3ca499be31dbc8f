"""Invariant verification for finished compounding runs."""

from .invariants import InvariantVerifier, InvariantViolation, VerificationResult, verify

__all__ = [
    "InvariantVerifier",
    "InvariantViolation",
    "VerificationResult",
    "verify"
]
