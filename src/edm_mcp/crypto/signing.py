"""Envelope signing and verification.

Sealing and verification are capabilities behind the :class:`Signer` and
:class:`Verifier` protocols.  The bundled implementation signs the canonical
JSON encoding of the artifact (sorted keys, compact separators) with
Ed25519 via PyNaCl.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from edm_mcp.models.artifact import Artifact
from edm_mcp.models.envelope import Envelope, EnvelopeSignature

ED25519 = "Ed25519"

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


class KeyFormatError(ValueError):
    """Key material could not be decoded."""


class SigningError(Exception):
    """The signing capability could not produce an envelope."""


@dataclass
class VerificationResult:
    valid: bool
    signer: str | None = None
    error: str | None = None


class Signer(Protocol):
    def sign(self, artifact: Artifact, key: bytes, signer_id: str, algorithm: str) -> Envelope: ...


class Verifier(Protocol):
    def verify(self, envelope: Envelope) -> VerificationResult: ...


def hex_to_key(value: str) -> bytes:
    """Decode hexadecimal key material; an optional ``0x`` prefix is allowed."""
    clean = value[2:] if value.startswith(("0x", "0X")) else value
    if not clean:
        raise KeyFormatError("Key material is empty")
    if not _HEX_DIGITS.fullmatch(clean):
        raise KeyFormatError("Invalid hex string")
    if len(clean) % 2 != 0:
        raise KeyFormatError("Hex string must have even length")
    return bytes.fromhex(clean)


def canonical_bytes(artifact: Artifact) -> bytes:
    """The exact byte string a signature covers."""
    return json.dumps(
        artifact.to_document(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _is_ed25519(algorithm: str | None) -> bool:
    return (algorithm or "").lower() == ED25519.lower()


class Ed25519Signer:
    """Seal artifacts with an Ed25519 key given as its 32-byte seed."""

    def sign(
        self, artifact: Artifact, key: bytes, signer_id: str, algorithm: str = ED25519
    ) -> Envelope:
        if not _is_ed25519(algorithm):
            raise SigningError(f"Unsupported signature algorithm: {algorithm}")
        try:
            signing_key = SigningKey(key)
        except (TypeError, ValueError) as exc:
            raise SigningError("Ed25519 keys must be a 32-byte seed") from exc

        sealed = artifact.model_copy(deep=True)
        signed = signing_key.sign(canonical_bytes(sealed))
        return Envelope(
            artifact=sealed,
            signature=EnvelopeSignature(
                algorithm=ED25519,
                signer_did=signer_id,
                value=signed.signature.hex(),
                public_key=signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii"),
            ),
        )


class Ed25519Verifier:
    """Verify Ed25519 envelope signatures.

    Without *trusted_keys* the public key embedded in the envelope is used,
    which proves integrity but not who signed.  With *trusted_keys* (signer
    DID to hex public key) only pinned signers verify.
    """

    def __init__(self, trusted_keys: Mapping[str, str] | None = None) -> None:
        self._trusted = {k: v.lower() for k, v in trusted_keys.items()} if trusted_keys else None

    def verify(self, envelope: Envelope) -> VerificationResult:
        signature = envelope.signature
        if not signature.value:
            return VerificationResult(valid=False, error="Missing signature")
        if not signature.signer_did:
            return VerificationResult(valid=False, error="Missing signer DID")
        if not _is_ed25519(signature.algorithm):
            return VerificationResult(
                valid=False, error=f"Unsupported signature algorithm: {signature.algorithm}"
            )

        public_key = signature.public_key
        if self._trusted is not None:
            pinned = self._trusted.get(signature.signer_did)
            if pinned is None:
                return VerificationResult(valid=False, error="Untrusted signer")
            if public_key is not None and public_key.lower() != pinned:
                return VerificationResult(valid=False, error="Public key does not match signer")
            public_key = pinned
        if not public_key:
            return VerificationResult(valid=False, error="Missing public key")

        try:
            verify_key = VerifyKey(bytes.fromhex(public_key))
            verify_key.verify(canonical_bytes(envelope.artifact), bytes.fromhex(signature.value))
        except BadSignatureError:
            return VerificationResult(valid=False, error="Signature does not match artifact")
        except (TypeError, ValueError):
            return VerificationResult(valid=False, error="Malformed signature or public key")

        return VerificationResult(valid=True, signer=signature.signer_did)
