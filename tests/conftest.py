"""Shared test fixtures for the EDM MCP server."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from edm_mcp.crypto.signing import Ed25519Signer, Ed25519Verifier
from edm_mcp.models.artifact import Artifact
from edm_mcp.models.identity import IdentityContext
from edm_mcp.storage.memory import MemoryArtifactRepository, MemoryEnvelopeRepository

CREATED_AT = "2026-01-15T10:00:00+00:00"

# 32-byte Ed25519 seed, hex encoded
SIGNING_KEY_HEX = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
SIGNER_DID = "did:example:alice"


def make_document(
    artifact_id: str | None = "edm_test_0001",
    *,
    visibility: str | None = "private",
    exportability: str | None = "allowed",
    owner: str | None = "alice",
    org: str | None = None,
    tags: list[str] | None = None,
    title: str | None = None,
    retention: dict[str, Any] | None = None,
    created_at: str = CREATED_AT,
    governance: bool = True,
) -> dict[str, Any]:
    """Build a raw artifact document; ``None`` leaves a field out."""
    meta: dict[str, Any] = {"created_at": created_at}
    if visibility is not None:
        meta["visibility"] = visibility
    if owner is not None:
        meta["owner_user_id"] = owner
    if org is not None:
        meta["owner_org_id"] = org
    if tags is not None:
        meta["tags"] = tags
    if title is not None:
        meta["title"] = title

    doc: dict[str, Any] = {
        "schema_version": "0.4.0",
        "meta": meta,
        "content": {"type": "note", "data": {"text": "hello"}},
        "provenance": {"source": "unit-test"},
    }
    if artifact_id is not None:
        doc["artifact_id"] = artifact_id
    if governance:
        gov: dict[str, Any] = {}
        if exportability is not None:
            gov["exportability"] = exportability
        if retention is not None:
            gov["retention"] = retention
        doc["governance"] = gov
    return doc


def make_artifact(artifact_id: str | None = "edm_test_0001", **kwargs: Any) -> Artifact:
    return Artifact.model_validate(make_document(artifact_id, **kwargs))


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def alice() -> IdentityContext:
    return IdentityContext.from_roles("alice", roles=["user"], organization_id="acme")


@pytest.fixture
def bob() -> IdentityContext:
    return IdentityContext.from_roles("bob", roles=["user"], organization_id="acme")


@pytest.fixture
def mallory() -> IdentityContext:
    return IdentityContext.from_roles("mallory", roles=["user"], organization_id="evil")


@pytest.fixture
def admin() -> IdentityContext:
    return IdentityContext.from_roles("root", roles=["admin"])


@pytest.fixture
def artifact_repo() -> MemoryArtifactRepository:
    return MemoryArtifactRepository()


@pytest.fixture
def envelope_repo() -> MemoryEnvelopeRepository:
    return MemoryEnvelopeRepository()


@pytest.fixture
def signer() -> Ed25519Signer:
    return Ed25519Signer()


@pytest.fixture
def verifier() -> Ed25519Verifier:
    return Ed25519Verifier()
