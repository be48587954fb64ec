"""In-memory repositories for development, testing and ephemeral use."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

from edm_mcp.models.artifact import Artifact
from edm_mcp.models.envelope import Envelope
from edm_mcp.storage.repository import (
    ALL_FILTERS,
    ArtifactRepository,
    EnvelopeRepository,
    StorageError,
    StorageErrorCode,
    StorageFilter,
)


class MemoryArtifactRepository(ArtifactRepository):
    """In-memory artifact repository.  Thread-safe via ``threading.Lock``.

    Copies are stored on save and handed out on load, so callers never share
    state with the store.  Ids are listed in insertion order.
    """

    supported_filters = ALL_FILTERS

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, Artifact] = {}

    def load(self, entity_id: str) -> Artifact:
        with self._lock:
            artifact = self._store.get(entity_id)
            if artifact is None:
                raise self._not_found(entity_id)
            return artifact.model_copy(deep=True)

    def save(self, entity: Artifact | Mapping[str, Any]) -> str:
        artifact = self.prepare(entity)
        artifact_id = artifact.artifact_id or ""
        with self._lock:
            self._store[artifact_id] = artifact
        return artifact_id

    def list(self, filter: StorageFilter | None = None) -> list[str]:
        with self._lock:
            items = list(self._store.items())
        if filter is None:
            return [artifact_id for artifact_id, _ in items]
        ids = [artifact_id for artifact_id, a in items if filter.matches(a.meta)]
        return filter.paginate(ids)

    def delete(self, entity_id: str) -> None:
        with self._lock:
            if entity_id not in self._store:
                raise self._not_found(entity_id)
            del self._store[entity_id]

    def exists(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._store

    def clear(self) -> None:
        """Drop every stored artifact (test isolation)."""
        with self._lock:
            self._store.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._store)


class MemoryEnvelopeRepository(EnvelopeRepository):
    """In-memory envelope repository; filters apply to the wrapped artifact."""

    supported_filters = ALL_FILTERS

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, Envelope] = {}

    def load(self, entity_id: str) -> Envelope:
        with self._lock:
            envelope = self._store.get(entity_id)
            if envelope is None:
                raise self._not_found(entity_id)
            return envelope.model_copy(deep=True)

    def save(self, entity: Envelope | Mapping[str, Any]) -> str:
        envelope_id, envelope = self.prepare(entity)
        with self._lock:
            if envelope_id in self._store:
                raise StorageError(
                    f"Envelope already exists: {envelope_id}", StorageErrorCode.ALREADY_EXISTS
                )
            self._store[envelope_id] = envelope
        return envelope_id

    def list(self, filter: StorageFilter | None = None) -> list[str]:
        with self._lock:
            items = list(self._store.items())
        if filter is None:
            return [envelope_id for envelope_id, _ in items]
        ids = [envelope_id for envelope_id, e in items if filter.matches(e.artifact.meta)]
        return filter.paginate(ids)

    def delete(self, entity_id: str) -> None:
        with self._lock:
            if entity_id not in self._store:
                raise self._not_found(entity_id)
            del self._store[entity_id]

    def exists(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._store

    def clear(self) -> None:
        """Drop every stored envelope (test isolation)."""
        with self._lock:
            self._store.clear()

    def count(self) -> int:
        with self._lock:
            return len(self._store)
