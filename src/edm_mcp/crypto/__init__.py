"""Signing and verification capabilities for DDNA envelopes."""

from edm_mcp.crypto.signing import (
    ED25519,
    Ed25519Signer,
    Ed25519Verifier,
    KeyFormatError,
    Signer,
    SigningError,
    VerificationResult,
    Verifier,
    canonical_bytes,
    hex_to_key,
)

__all__ = [
    "ED25519",
    "Ed25519Signer",
    "Ed25519Verifier",
    "KeyFormatError",
    "Signer",
    "SigningError",
    "VerificationResult",
    "Verifier",
    "canonical_bytes",
    "hex_to_key",
]
