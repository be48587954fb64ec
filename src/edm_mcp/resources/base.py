"""Shared pieces of the resource access protocol.

Addresses have the form ``scheme://kind/{id}`` where the id is limited to
``[A-Za-z0-9_-]``.  Providers resolve an
address to a stored entity, gate it behind policy, and either release its
serialized form or raise a typed :class:`ResourceAccessError`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from edm_mcp.models.access import AccessDecision, AccessPurpose
from edm_mcp.storage.repository import Repository, StorageError, StorageErrorCode

logger = logging.getLogger("edm_mcp.resources")

# Same alphabet the filesystem backend accepts and the id generators produce.
_ADDRESS_ID = re.compile(r"[A-Za-z0-9_-]+")


DecisionHook = Callable[[str, AccessPurpose, AccessDecision], None]
"""Called as ``hook(address, purpose, decision)`` at every access decision."""


class ResourceErrorCode(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    STORAGE_ERROR = "STORAGE_ERROR"


class ResourceAccessError(Exception):
    """A resource could not be released; ``code`` says why."""

    def __init__(
        self, message: str, code: ResourceErrorCode, cause: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


@dataclass
class ResourceContent:
    uri: str
    mime_type: str
    text: str


@dataclass
class ResourceListItem:
    uri: str
    name: str
    mime_type: str
    description: str | None = None
    signer: str | None = None
    sealed_at: str | None = None


@dataclass(frozen=True)
class ResourceTemplate:
    uri_template: str
    name: str
    description: str
    mime_type: str


@dataclass(frozen=True)
class AddressScheme:
    """Parses and builds ``scheme://kind/{id}`` addresses."""

    scheme: str
    kind: str

    @property
    def prefix(self) -> str:
        return f"{self.scheme}://{self.kind}/"

    @property
    def template(self) -> str:
        return f"{self.prefix}{{id}}"

    def matches(self, address: str) -> bool:
        return address.startswith(self.prefix)

    def build(self, entity_id: str) -> str:
        return f"{self.prefix}{entity_id}"

    def parse(self, address: str) -> str:
        """Return the id in *address* or raise ``INVALID_ADDRESS``."""
        if not self.matches(address):
            raise ResourceAccessError(
                f"Invalid {self.scheme} address: {address}", ResourceErrorCode.INVALID_ADDRESS
            )
        entity_id = address[len(self.prefix) :]
        if not _ADDRESS_ID.fullmatch(entity_id):
            raise ResourceAccessError(
                f"Invalid {self.scheme} address: {address}", ResourceErrorCode.INVALID_ADDRESS
            )
        return entity_id


def load_entity(repo: Repository[Any], entity_id: str) -> Any:
    """Load through *repo*, translating storage failures to resource errors."""
    try:
        return repo.load(entity_id)
    except StorageError as exc:
        name = repo.entity_name.capitalize()
        if exc.code == StorageErrorCode.NOT_FOUND:
            raise ResourceAccessError(
                f"{name} not found: {entity_id}", ResourceErrorCode.NOT_FOUND, exc
            ) from exc
        logger.warning("Failed to load %s %s: %s", repo.entity_name, entity_id, exc)
        raise ResourceAccessError(
            f"Failed to load {repo.entity_name}: {entity_id}", ResourceErrorCode.STORAGE_ERROR, exc
        ) from exc


def enumerate_ids(repo: Repository[Any]) -> list[str]:
    try:
        return repo.list()
    except StorageError as exc:
        raise ResourceAccessError(
            f"Failed to list {repo.entity_name}s", ResourceErrorCode.STORAGE_ERROR, exc
        ) from exc


def remove_entity(repo: Repository[Any], entity_id: str) -> None:
    try:
        repo.delete(entity_id)
    except StorageError as exc:
        if exc.code == StorageErrorCode.NOT_FOUND:
            raise ResourceAccessError(
                f"{repo.entity_name.capitalize()} not found: {entity_id}",
                ResourceErrorCode.NOT_FOUND,
                exc,
            ) from exc
        raise ResourceAccessError(
            f"Failed to delete {repo.entity_name}: {entity_id}",
            ResourceErrorCode.STORAGE_ERROR,
            exc,
        ) from exc


class DecisionPoint:
    """Records access decisions: logs denials and forwards to an optional hook."""

    def __init__(self, hook: DecisionHook | None = None) -> None:
        self._hook = hook

    def record(self, address: str, purpose: AccessPurpose, decision: AccessDecision) -> None:
        if not decision.allowed:
            logger.info(
                "access denied: %s (%s): %s", address, purpose, "; ".join(decision.reasons)
            )
        if self._hook is not None:
            self._hook(address, purpose, decision)

    def enforce(self, address: str, purpose: AccessPurpose, decision: AccessDecision) -> None:
        """Record *decision* and raise ``ACCESS_DENIED`` when it denies."""
        self.record(address, purpose, decision)
        if not decision.allowed:
            raise ResourceAccessError(
                f"Access denied: {', '.join(decision.reasons)}", ResourceErrorCode.ACCESS_DENIED
            )
