"""``seal_artifact``: sign an exportable artifact into a DDNA envelope."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from edm_mcp.crypto.signing import ED25519, Ed25519Signer, KeyFormatError, Signer, hex_to_key
from edm_mcp.models.artifact import Artifact
from edm_mcp.models.envelope import Envelope
from edm_mcp.security.governance import can_export, validate_governance
from edm_mcp.storage.repository import EnvelopeRepository, StorageError
from edm_mcp.tools.base import ToolFailure, logger

TOOL_NAME = "seal_artifact"
DEFAULT_SIGNER_PREFIX = "did:"


class SealErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    GOVERNANCE_VIOLATION = "GOVERNANCE_VIOLATION"
    INVALID_KEY = "INVALID_KEY"
    SIGNING_FAILED = "SIGNING_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"


class SealError(ToolFailure):
    code: SealErrorCode


@dataclass
class SealResult:
    envelope: Envelope
    saved_id: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "envelope": self.envelope.to_document(),
            "saved_id": self.saved_id,
            "warnings": list(self.warnings),
        }


class SealTool:
    """Gate, decode the key, sign, persist.

    Every check that can fail without touching key material runs first, and
    the key is decoded before the signer is called, so a malformed key never
    reaches the signing capability.
    """

    name = TOOL_NAME

    def __init__(
        self,
        storage: EnvelopeRepository | None = None,
        signer: Signer | None = None,
        signer_prefix: str = DEFAULT_SIGNER_PREFIX,
    ) -> None:
        self._storage = storage
        self._signer = signer or Ed25519Signer()
        self._signer_prefix = signer_prefix

    def execute(
        self,
        artifact: Artifact | Mapping[str, Any] | None,
        private_key: str,
        signer_id: str,
        *,
        algorithm: str = ED25519,
        save: bool = False,
    ) -> SealResult:
        if artifact is None:
            raise SealError("Artifact is required", SealErrorCode.INVALID_INPUT)
        document = artifact.to_document() if isinstance(artifact, Artifact) else artifact
        if not isinstance(document, Mapping):
            raise SealError("Artifact must be an object", SealErrorCode.INVALID_INPUT)
        if not document.get("artifact_id"):
            raise SealError("Artifact must have an artifact_id", SealErrorCode.INVALID_INPUT)

        governance = validate_governance(document)
        if not governance.valid:
            raise SealError(
                f"Governance validation failed: {', '.join(governance.errors)}",
                SealErrorCode.GOVERNANCE_VIOLATION,
            )

        try:
            parsed = (
                artifact if isinstance(artifact, Artifact) else Artifact.model_validate(document)
            )
        except ValidationError as exc:
            raise SealError(
                f"Invalid artifact: {exc.error_count()} validation error(s)",
                SealErrorCode.INVALID_INPUT,
                exc,
            ) from exc

        if not can_export(parsed):
            raise SealError(
                "Artifact is not exportable and cannot be sealed",
                SealErrorCode.GOVERNANCE_VIOLATION,
            )

        if not signer_id or not signer_id.startswith(self._signer_prefix):
            raise SealError(
                f"Invalid signer identifier (must start with {self._signer_prefix})",
                SealErrorCode.INVALID_INPUT,
            )

        try:
            key = hex_to_key(private_key or "")
        except KeyFormatError as exc:
            raise SealError(
                f"Invalid private key format: {exc}", SealErrorCode.INVALID_KEY, exc
            ) from exc

        try:
            envelope = self._signer.sign(parsed, key, signer_id, algorithm)
        except Exception as exc:
            raise SealError(f"Signing failed: {exc}", SealErrorCode.SIGNING_FAILED, exc) from exc

        saved_id: str | None = None
        if save:
            if self._storage is None:
                logger.warning("save requested but no envelope storage is configured")
            else:
                try:
                    saved_id = self._storage.save(envelope)
                except StorageError as exc:
                    raise SealError(
                        f"Failed to save envelope: {exc}", SealErrorCode.STORAGE_FAILED, exc
                    ) from exc
                logger.info("Sealed %s as envelope %s", parsed.artifact_id, saved_id)

        return SealResult(envelope=envelope, saved_id=saved_id, warnings=list(governance.warnings))
