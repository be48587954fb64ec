"""Select storage backends from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from edm_mcp.settings import Settings
from edm_mcp.storage.filesystem import FileSystemArtifactRepository, FileSystemEnvelopeRepository
from edm_mcp.storage.memory import MemoryArtifactRepository, MemoryEnvelopeRepository
from edm_mcp.storage.repository import ArtifactRepository, EnvelopeRepository

logger = logging.getLogger("edm_mcp.storage")

DEFAULT_DATA_DIR = ".edm-data"


@dataclass
class StorageBundle:
    """The artifact and envelope repositories a server instance works with."""

    artifacts: ArtifactRepository
    envelopes: EnvelopeRepository


def create_memory_storage() -> StorageBundle:
    return StorageBundle(
        artifacts=MemoryArtifactRepository(),
        envelopes=MemoryEnvelopeRepository(),
    )


def create_filesystem_storage(base_path: str | Path) -> StorageBundle:
    return StorageBundle(
        artifacts=FileSystemArtifactRepository(base_path),
        envelopes=FileSystemEnvelopeRepository(base_path),
    )


def create_storage(settings: Settings) -> StorageBundle:
    """Build the configured backend (filesystem when a path is set)."""
    if settings.effective_storage_type == "filesystem":
        base_path = Path(settings.storage_path or Path.cwd() / DEFAULT_DATA_DIR)
        logger.info("Using filesystem storage at %s", base_path)
        return create_filesystem_storage(base_path)

    logger.warning("Using in-memory storage. Set EDM_STORAGE_PATH for persistence.")
    return create_memory_storage()
