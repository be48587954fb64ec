"""Pluggable artifact and envelope storage."""

from edm_mcp.storage.factory import (
    StorageBundle,
    create_filesystem_storage,
    create_memory_storage,
    create_storage,
)
from edm_mcp.storage.filesystem import FileSystemArtifactRepository, FileSystemEnvelopeRepository
from edm_mcp.storage.memory import MemoryArtifactRepository, MemoryEnvelopeRepository
from edm_mcp.storage.repository import (
    ArtifactRepository,
    EnvelopeRepository,
    FilterField,
    StorageError,
    StorageErrorCode,
    StorageFilter,
    generate_artifact_id,
    generate_envelope_id,
    list_matching,
)

__all__ = [
    "ArtifactRepository",
    "EnvelopeRepository",
    "FileSystemArtifactRepository",
    "FileSystemEnvelopeRepository",
    "FilterField",
    "MemoryArtifactRepository",
    "MemoryEnvelopeRepository",
    "StorageBundle",
    "StorageError",
    "StorageErrorCode",
    "StorageFilter",
    "create_filesystem_storage",
    "create_memory_storage",
    "create_storage",
    "generate_artifact_id",
    "generate_envelope_id",
    "list_matching",
]
