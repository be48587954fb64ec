"""``extract_from_content``: turn free text into a governed artifact."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from edm_mcp import __version__
from edm_mcp.models.artifact import (
    SCHEMA_VERSION,
    Artifact,
    ArtifactContent,
    ArtifactMeta,
    ArtifactProvenance,
    ExtractionMetadata,
    utcnow,
)
from edm_mcp.models.identity import IdentityContext
from edm_mcp.security.governance import apply_default_governance
from edm_mcp.storage.repository import ArtifactRepository, StorageError, generate_artifact_id
from edm_mcp.tools.base import ToolFailure, logger

TOOL_NAME = "extract_from_content"

_HASHTAG = re.compile(r"(?<![\w#])#(\w+)")
_TITLE_LIMIT = 80
_DESCRIPTION_LIMIT = 50


class ExtractionErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"


class ExtractionError(ToolFailure):
    code: ExtractionErrorCode


@dataclass
class ExtractionRequest:
    text: str
    image: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    content_type: str | None = None


Extractor = Callable[[ExtractionRequest], Artifact | Mapping[str, Any]]


@dataclass
class ExtractionSummary:
    model: str | None
    confidence: float | None
    extracted_at: datetime


@dataclass
class ExtractionResult:
    artifact: Artifact
    saved_id: str | None
    extraction: ExtractionSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact": self.artifact.to_document(),
            "saved_id": self.saved_id,
            "extraction": {
                "model": self.extraction.model,
                "confidence": self.extraction.confidence,
                "extracted_at": self.extraction.extracted_at.isoformat(),
            },
        }


def _hashtags(text: str) -> list[str]:
    tags: list[str] = []
    for match in _HASHTAG.finditer(text):
        tag = match.group(1).lower()
        if tag not in tags:
            tags.append(tag)
    return tags


def _shorten(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def basic_extractor(request: ExtractionRequest) -> Artifact:
    """Deterministic, model-free extraction.

    The first non-empty line becomes the title and ``#hashtags`` become tags.
    The source text and any request metadata are kept under
    ``content.data``.  Governance is left unset so that defaults apply.
    """
    lines = [line.strip() for line in request.text.splitlines() if line.strip()]
    title = _shorten(lines[0].lstrip("# "), _TITLE_LIMIT) if lines else None
    now = utcnow()

    return Artifact(
        schema_version=SCHEMA_VERSION,
        artifact_id=generate_artifact_id(),
        meta=ArtifactMeta(
            created_at=now,
            title=title or None,
            description=f"Extracted from: {_shorten(request.text, _DESCRIPTION_LIMIT)}",
            tags=_hashtags(request.text) or None,
        ),
        content=ArtifactContent(
            type=request.content_type or "extracted",
            data={
                **request.metadata,
                "source_text": request.text,
                "has_image": request.image is not None,
            },
            format="text/plain",
        ),
        provenance=ArtifactProvenance(source="user-content", extraction_method="heuristic"),
        extraction=ExtractionMetadata(
            model="edm-basic-extractor", model_version=__version__, extracted_at=now
        ),
    )


class ExtractTool:
    """Run an extractor, apply governance defaults, stamp ownership, persist."""

    name = TOOL_NAME

    def __init__(
        self, storage: ArtifactRepository | None = None, extractor: Extractor | None = None
    ) -> None:
        self._storage = storage
        self._extractor = extractor or basic_extractor

    def execute(
        self,
        text: str,
        *,
        image: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        content_type: str | None = None,
        save: bool = False,
        identity: IdentityContext | None = None,
    ) -> ExtractionResult:
        if not text or not text.strip():
            raise ExtractionError("Text content is required", ExtractionErrorCode.INVALID_INPUT)

        request = ExtractionRequest(
            text=text, image=image, metadata=dict(metadata or {}), content_type=content_type
        )

        try:
            produced = self._extractor(request)
        except Exception as exc:
            raise ExtractionError(
                f"Extraction failed: {exc}", ExtractionErrorCode.EXTRACTION_FAILED, exc
            ) from exc

        artifact = self._governed(produced)

        if identity is not None:
            owner: dict[str, Any] = {"owner_user_id": identity.user_id}
            if identity.organization_id is not None:
                owner["owner_org_id"] = identity.organization_id
            artifact.meta = artifact.meta.model_copy(update=owner)

        saved_id: str | None = None
        if save:
            if self._storage is None:
                logger.warning("save requested but no artifact storage is configured")
            else:
                try:
                    saved_id = self._storage.save(artifact)
                except StorageError as exc:
                    raise ExtractionError(
                        f"Failed to save artifact: {exc}", ExtractionErrorCode.STORAGE_FAILED, exc
                    ) from exc
                if artifact.artifact_id != saved_id:
                    artifact = artifact.model_copy(update={"artifact_id": saved_id})
                logger.info("Saved extracted artifact %s", saved_id)

        extraction = artifact.extraction
        return ExtractionResult(
            artifact=artifact,
            saved_id=saved_id,
            extraction=ExtractionSummary(
                model=extraction.model if extraction else None,
                confidence=extraction.confidence if extraction else None,
                extracted_at=(extraction.extracted_at if extraction else None) or utcnow(),
            ),
        )

    @staticmethod
    def _governed(produced: object) -> Artifact:
        if isinstance(produced, Artifact):
            return apply_default_governance(produced)
        if not isinstance(produced, Mapping):
            raise ExtractionError(
                f"Extractor returned {type(produced).__name__}, expected an artifact",
                ExtractionErrorCode.EXTRACTION_FAILED,
            )
        try:
            return Artifact.model_validate(apply_default_governance(produced))
        except ValidationError as exc:
            raise ExtractionError(
                f"Extractor produced an invalid artifact: {exc.error_count()} validation error(s)",
                ExtractionErrorCode.EXTRACTION_FAILED,
                exc,
            ) from exc
