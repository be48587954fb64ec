"""DDNA envelope models: a signed, immutable wrapper around one artifact."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from edm_mcp.models.artifact import Artifact, utcnow

ENVELOPE_VERSION = "1.0"


class EnvelopeSignature(BaseModel):
    algorithm: str
    signer_did: str
    value: str
    public_key: str | None = None


class Envelope(BaseModel):
    """A sealed artifact.  Envelopes are never updated once sealed."""

    version: str = ENVELOPE_VERSION
    artifact: Artifact
    signature: EnvelopeSignature
    sealed_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
