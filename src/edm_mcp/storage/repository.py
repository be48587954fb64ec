"""Abstract repository interfaces for artifact and envelope persistence."""

from __future__ import annotations

import re
import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from edm_mcp.models.artifact import Artifact, ArtifactMeta, Visibility
from edm_mcp.models.envelope import Envelope

E = TypeVar("E", bound=BaseModel)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StorageErrorCode(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_DATA = "INVALID_DATA"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNKNOWN = "UNKNOWN"


class StorageError(Exception):
    """A storage failure with a typed code and the underlying cause."""

    def __init__(
        self,
        message: str,
        code: StorageErrorCode = StorageErrorCode.UNKNOWN,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class FilterField(StrEnum):
    USER_ID = "user_id"
    ORGANIZATION_ID = "organization_id"
    TAGS = "tags"
    VISIBILITY = "visibility"
    PAGINATION = "pagination"


ALL_FILTERS = frozenset(FilterField)


@dataclass(frozen=True)
class StorageFilter:
    """Listing criteria.  Tags match if ANY listed tag is present.

    ``offset``/``limit`` are applied after every other criterion.
    """

    user_id: str | None = None
    organization_id: str | None = None
    tags: tuple[str, ...] | None = None
    visibility: Visibility | None = None
    limit: int | None = None
    offset: int = 0

    @property
    def fields(self) -> frozenset[FilterField]:
        """The criteria this filter actually sets."""
        used: set[FilterField] = set()
        if self.user_id is not None:
            used.add(FilterField.USER_ID)
        if self.organization_id is not None:
            used.add(FilterField.ORGANIZATION_ID)
        if self.tags:
            used.add(FilterField.TAGS)
        if self.visibility is not None:
            used.add(FilterField.VISIBILITY)
        if self.limit is not None or self.offset:
            used.add(FilterField.PAGINATION)
        return frozenset(used)

    def residual(self, supported: Iterable[FilterField]) -> StorageFilter:
        """Return only the criteria not covered by *supported*."""
        supported = frozenset(supported)
        return StorageFilter(
            user_id=None if FilterField.USER_ID in supported else self.user_id,
            organization_id=(
                None if FilterField.ORGANIZATION_ID in supported else self.organization_id
            ),
            tags=None if FilterField.TAGS in supported else self.tags,
            visibility=None if FilterField.VISIBILITY in supported else self.visibility,
            limit=None if FilterField.PAGINATION in supported else self.limit,
            offset=0 if FilterField.PAGINATION in supported else self.offset,
        )

    def without_pagination(self) -> StorageFilter:
        return replace(self, limit=None, offset=0)

    def matches(self, meta: ArtifactMeta) -> bool:
        """Evaluate every non-pagination criterion against *meta*."""
        if self.user_id is not None and meta.owner_user_id != self.user_id:
            return False
        if self.organization_id is not None and meta.owner_org_id != self.organization_id:
            return False
        if self.visibility is not None and meta.effective_visibility != self.visibility:
            return False
        if self.tags:
            present = set(meta.tags or [])
            if not any(tag in present for tag in self.tags):
                return False
        return True

    def paginate(self, ids: list[str]) -> list[str]:
        start = max(self.offset, 0)
        if self.limit is None:
            return ids[start:]
        return ids[start : start + max(self.limit, 0)]


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def _sortable_token() -> str:
    # 12 hex digits of epoch milliseconds, then 8 random hex digits.
    return f"{time.time_ns() // 1_000_000:012x}{secrets.token_hex(4)}"


def generate_artifact_id() -> str:
    return f"edm_{_sortable_token()}"


def generate_envelope_id(artifact_id: str) -> str:
    return f"ddna_{_UNSAFE_ID_CHARS.sub('_', artifact_id)}_{_sortable_token()}"


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class Repository(ABC, Generic[E]):
    """Create/read/list/delete contract shared by artifacts and envelopes.

    Every entity a repository returns is an independent copy.  A backend
    advertises the listing criteria it honors natively in
    ``supported_filters``; unsupported criteria passed to :meth:`list` are
    ignored and must be re-applied by the caller (see :func:`list_matching`).
    """

    entity_name: str = "entity"
    model: type[E]
    supported_filters: frozenset[FilterField] = frozenset()

    @abstractmethod
    def load(self, entity_id: str) -> E: ...

    @abstractmethod
    def save(self, entity: E | Mapping[str, Any]) -> str: ...

    @abstractmethod
    def list(self, filter: StorageFilter | None = None) -> list[str]: ...

    @abstractmethod
    def delete(self, entity_id: str) -> None: ...

    @abstractmethod
    def exists(self, entity_id: str) -> bool: ...

    @abstractmethod
    def meta_of(self, entity: E) -> ArtifactMeta:
        """The artifact metadata listing filters are evaluated against."""

    def _coerce(self, entity: E | Mapping[str, Any]) -> E:
        """Return a private, validated copy of *entity*."""
        if isinstance(entity, self.model):
            return entity.model_copy(deep=True)
        if isinstance(entity, Mapping):
            try:
                return self.model.model_validate(entity)
            except ValidationError as exc:
                raise StorageError(
                    f"Invalid {self.entity_name} data: {exc.error_count()} validation error(s)",
                    StorageErrorCode.INVALID_DATA,
                    exc,
                ) from exc
        raise StorageError(
            f"Cannot store {type(entity).__name__} as {self.entity_name}",
            StorageErrorCode.INVALID_DATA,
        )

    def _not_found(self, entity_id: str) -> StorageError:
        return StorageError(
            f"{self.entity_name.capitalize()} not found: {entity_id}",
            StorageErrorCode.NOT_FOUND,
        )


class ArtifactRepository(Repository[Artifact]):
    entity_name = "artifact"
    model = Artifact

    def meta_of(self, entity: Artifact) -> ArtifactMeta:
        return entity.meta

    def prepare(self, artifact: Artifact | Mapping[str, Any]) -> Artifact:
        """Copy, assign an id when absent, and validate before persisting."""
        prepared = self._coerce(artifact)
        if not prepared.artifact_id:
            prepared.artifact_id = generate_artifact_id()
        self.validate_artifact(prepared)
        return prepared

    @staticmethod
    def validate_artifact(artifact: Artifact) -> None:
        if not artifact.artifact_id:
            raise StorageError("Artifact must have an artifact_id", StorageErrorCode.INVALID_DATA)
        if not artifact.schema_version:
            raise StorageError("Artifact must have a schema_version", StorageErrorCode.INVALID_DATA)
        if artifact.governance is None:
            raise StorageError(
                "Artifact must have governance settings", StorageErrorCode.INVALID_DATA
            )


class EnvelopeRepository(Repository[Envelope]):
    entity_name = "envelope"
    model = Envelope

    def meta_of(self, entity: Envelope) -> ArtifactMeta:
        return entity.artifact.meta

    def prepare(self, envelope: Envelope | Mapping[str, Any]) -> tuple[str, Envelope]:
        """Copy and validate; returns the derived id alongside the copy."""
        prepared = self._coerce(envelope)
        self.validate_envelope(prepared)
        return generate_envelope_id(prepared.artifact.artifact_id or ""), prepared

    @staticmethod
    def validate_envelope(envelope: Envelope) -> None:
        if not envelope.artifact.artifact_id:
            raise StorageError(
                "Envelope must contain an identified artifact", StorageErrorCode.INVALID_DATA
            )
        if not envelope.signature.value:
            raise StorageError("Envelope must have a signature", StorageErrorCode.INVALID_DATA)
        if not envelope.signature.signer_did:
            raise StorageError(
                "Envelope signature must have a signer DID", StorageErrorCode.INVALID_DATA
            )


def list_matching(repo: Repository[Any], filter: StorageFilter | None = None) -> list[str]:
    """List ids matching *filter*, re-applying what *repo* does not honor.

    When the backend lacks a criterion natively, pagination is deferred too
    so that ``offset``/``limit`` still apply after every other criterion.
    Entries that vanish or fail to load while filtering are skipped.
    """
    if filter is None:
        return repo.list()

    residual = filter.residual(repo.supported_filters)
    if not (residual.fields - {FilterField.PAGINATION}):
        ids = repo.list(filter)
        return residual.paginate(ids) if FilterField.PAGINATION in residual.fields else ids

    ids = repo.list(filter.without_pagination())
    matched: list[str] = []
    for entity_id in ids:
        try:
            entity = repo.load(entity_id)
        except StorageError:
            continue
        if residual.matches(repo.meta_of(entity)):
            matched.append(entity_id)
    return filter.paginate(matched)
