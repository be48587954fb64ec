"""EDM artifact models (schema 0.4.0)."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

SCHEMA_VERSION = "0.4.0"


def utcnow() -> datetime:
    return datetime.now(UTC)


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"
    SHARED = "shared"


class Exportability(StrEnum):
    ALLOWED = "allowed"
    RESTRICTED = "restricted"
    PROHIBITED = "prohibited"


class ArtifactMeta(BaseModel):
    """Descriptive metadata and ownership of an artifact."""

    created_at: datetime
    updated_at: datetime | None = None
    visibility: Visibility | None = None
    owner_user_id: str | None = None
    owner_org_id: str | None = None
    tags: list[str] | None = None
    title: str | None = None
    description: str | None = None

    @property
    def effective_visibility(self) -> Visibility:
        """Visibility with the ``private`` fallback applied."""
        return self.visibility or Visibility.PRIVATE


class ArtifactContent(BaseModel):
    type: str
    data: dict[str, Any]
    format: str | None = None


class ProvenanceLink(BaseModel):
    """One prior action in an artifact's provenance chain."""

    timestamp: datetime
    action: str
    actor: str | None = None
    details: dict[str, Any] | None = None


class ArtifactProvenance(BaseModel):
    source: str
    source_url: str | None = None
    extraction_method: str | None = None
    chain: list[ProvenanceLink] | None = None


class RetentionPolicy(BaseModel):
    """Retention rules.  ``expires_at`` wins over ``duration_days``."""

    duration_days: int | None = Field(None, ge=0)
    expires_at: datetime | None = None
    auto_delete: bool | None = None


class ArtifactGovernance(BaseModel):
    exportability: Exportability
    retention: RetentionPolicy | None = None
    classification: str | None = None
    compliance: list[str] | None = None


class ExtractionMetadata(BaseModel):
    model: str | None = None
    model_version: str | None = None
    prompt_hash: str | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    extracted_at: datetime | None = None

    model_config = {"protected_namespaces": ()}


class Artifact(BaseModel):
    """An EDM artifact: metadata, content, provenance and governance.

    ``artifact_id`` may be left empty before the first save; storage assigns
    one.  ``governance`` is optional on the model so that incomplete
    documents can be represented, but storage refuses to persist an artifact
    without it.
    """

    schema_version: str = SCHEMA_VERSION
    artifact_id: str | None = None
    meta: ArtifactMeta
    content: ArtifactContent
    provenance: ArtifactProvenance
    governance: ArtifactGovernance | None = None
    extraction: ExtractionMetadata | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-compatible wire document."""
        return self.model_dump(mode="json", exclude_none=True)
