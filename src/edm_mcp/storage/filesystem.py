"""File-per-record repositories for local, persistent storage.

Layout under the base directory::

    artifacts/<artifact_id>.json
    envelopes/<envelope_id>.ddna

Ids are restricted to ``[A-Za-z0-9_-]``; anything else is rejected before
it reaches the filesystem.  Writes go through a temporary file and
``os.replace`` so a record is either fully written or untouched.  Only
pagination is honored natively when listing.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from edm_mcp.models.artifact import Artifact
from edm_mcp.models.envelope import Envelope
from edm_mcp.storage.repository import (
    ArtifactRepository,
    EnvelopeRepository,
    FilterField,
    StorageError,
    StorageErrorCode,
    StorageFilter,
)

logger = logging.getLogger("edm_mcp.storage")

_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")
_NATIVE_FILTERS = frozenset({FilterField.PAGINATION})


def _os_error(exc: OSError, message: str) -> StorageError:
    if isinstance(exc, FileNotFoundError):
        code = StorageErrorCode.NOT_FOUND
    elif isinstance(exc, PermissionError):
        code = StorageErrorCode.PERMISSION_DENIED
    else:
        code = StorageErrorCode.UNKNOWN
    return StorageError(message, code, exc)


class _RecordFiles:
    """One directory of ``<id><suffix>`` JSON records."""

    def __init__(self, directory: Path, suffix: str, entity_name: str) -> None:
        self.directory = directory
        self.suffix = suffix
        self.entity_name = entity_name

    def path_for(self, record_id: str) -> Path:
        if not _SAFE_ID.fullmatch(record_id or ""):
            raise StorageError(
                f"Invalid {self.entity_name} id: {record_id!r}", StorageErrorCode.INVALID_DATA
            )
        return self.directory / f"{record_id}{self.suffix}"

    def read(self, record_id: str) -> str:
        path = self.path_for(record_id)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise StorageError(
                f"{self.entity_name.capitalize()} not found: {record_id}",
                StorageErrorCode.NOT_FOUND,
                exc,
            ) from exc
        except OSError as exc:
            raise _os_error(exc, f"Failed to load {self.entity_name}: {record_id}") from exc

    def write(self, record_id: str, text: str, *, overwrite: bool) -> None:
        path = self.path_for(record_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            if not overwrite and path.exists():
                raise StorageError(
                    f"{self.entity_name.capitalize()} already exists: {record_id}",
                    StorageErrorCode.ALREADY_EXISTS,
                )
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{record_id}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise _os_error(exc, f"Failed to save {self.entity_name}: {record_id}") from exc

    def remove(self, record_id: str) -> None:
        path = self.path_for(record_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise StorageError(
                f"{self.entity_name.capitalize()} not found: {record_id}",
                StorageErrorCode.NOT_FOUND,
                exc,
            ) from exc
        except OSError as exc:
            raise _os_error(exc, f"Failed to delete {self.entity_name}: {record_id}") from exc

    def contains(self, record_id: str) -> bool:
        try:
            return self.path_for(record_id).is_file()
        except (StorageError, OSError):
            return False

    def ids(self) -> list[str]:
        try:
            names = sorted(
                entry.name
                for entry in self.directory.iterdir()
                if entry.is_file() and entry.name.endswith(self.suffix)
            )
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise _os_error(exc, f"Failed to list {self.entity_name}s") from exc
        return [name[: -len(self.suffix)] for name in names if not name.startswith(".")]


def _log_ignored(filter: StorageFilter, entity_name: str) -> None:
    ignored = filter.fields - _NATIVE_FILTERS
    if ignored:
        logger.debug(
            "filesystem %s listing ignores %s; re-apply via list_matching()",
            entity_name,
            ", ".join(sorted(ignored)),
        )


class FileSystemArtifactRepository(ArtifactRepository):
    """Artifacts stored as ``artifacts/<id>.json``, listed in id order."""

    supported_filters = _NATIVE_FILTERS

    def __init__(self, base_path: str | Path) -> None:
        self._files = _RecordFiles(Path(base_path) / "artifacts", ".json", self.entity_name)

    def load(self, entity_id: str) -> Artifact:
        text = self._files.read(entity_id)
        try:
            return Artifact.model_validate_json(text)
        except ValidationError as exc:
            raise StorageError(
                f"Stored artifact is malformed: {entity_id}", StorageErrorCode.INVALID_DATA, exc
            ) from exc

    def save(self, entity: Artifact | Mapping[str, Any]) -> str:
        artifact = self.prepare(entity)
        artifact_id = artifact.artifact_id or ""
        payload = artifact.model_dump_json(indent=2, exclude_none=True)
        self._files.write(artifact_id, payload, overwrite=True)
        return artifact_id

    def list(self, filter: StorageFilter | None = None) -> list[str]:
        ids = self._files.ids()
        if filter is None:
            return ids
        _log_ignored(filter, self.entity_name)
        return filter.paginate(ids)

    def delete(self, entity_id: str) -> None:
        self._files.remove(entity_id)

    def exists(self, entity_id: str) -> bool:
        return self._files.contains(entity_id)


class FileSystemEnvelopeRepository(EnvelopeRepository):
    """Envelopes stored as ``envelopes/<id>.ddna``; existing files are never overwritten."""

    supported_filters = _NATIVE_FILTERS

    def __init__(self, base_path: str | Path) -> None:
        self._files = _RecordFiles(Path(base_path) / "envelopes", ".ddna", self.entity_name)

    def load(self, entity_id: str) -> Envelope:
        text = self._files.read(entity_id)
        try:
            return Envelope.model_validate_json(text)
        except ValidationError as exc:
            raise StorageError(
                f"Stored envelope is malformed: {entity_id}", StorageErrorCode.INVALID_DATA, exc
            ) from exc

    def save(self, entity: Envelope | Mapping[str, Any]) -> str:
        envelope_id, envelope = self.prepare(entity)
        payload = envelope.model_dump_json(indent=2, exclude_none=True)
        self._files.write(envelope_id, payload, overwrite=False)
        return envelope_id

    def list(self, filter: StorageFilter | None = None) -> list[str]:
        ids = self._files.ids()
        if filter is None:
            return ids
        _log_ignored(filter, self.entity_name)
        return filter.paginate(ids)

    def delete(self, entity_id: str) -> None:
        self._files.remove(entity_id)

    def exists(self, entity_id: str) -> bool:
        return self._files.contains(entity_id)
