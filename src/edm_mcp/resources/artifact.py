"""``edm://artifact/{id}`` resources."""

from __future__ import annotations

import json

from edm_mcp.models.access import AccessPurpose
from edm_mcp.models.artifact import Artifact
from edm_mcp.models.identity import IdentityContext
from edm_mcp.resources.base import (
    AddressScheme,
    DecisionHook,
    DecisionPoint,
    ResourceAccessError,
    ResourceContent,
    ResourceListItem,
    ResourceTemplate,
    enumerate_ids,
    load_entity,
    logger,
    remove_entity,
)
from edm_mcp.security.governance import can_access
from edm_mcp.storage.repository import ArtifactRepository

EDM_MIME_TYPE = "application/json"
ARTIFACT_ADDRESS = AddressScheme("edm", "artifact")

ARTIFACT_TEMPLATE = ResourceTemplate(
    uri_template=ARTIFACT_ADDRESS.template,
    name="EDM Artifact",
    description="An EDM artifact, released when visibility and export policy allow it",
    mime_type=EDM_MIME_TYPE,
)


def parse_artifact_address(address: str) -> str:
    return ARTIFACT_ADDRESS.parse(address)


def build_artifact_address(artifact_id: str) -> str:
    return ARTIFACT_ADDRESS.build(artifact_id)


def _describe(artifact: Artifact) -> str | None:
    if artifact.meta.description:
        return artifact.meta.description
    return f"{artifact.content.type} artifact ({artifact.meta.effective_visibility})"


class ArtifactResourceProvider:
    """Releases stored artifacts behind governance checks.

    Reading is treated as an export: the artifact leaves the server, so it
    must be visible to the caller *and* exportable.  Listing only requires
    read access, so restricted artifacts still show up by address.
    """

    mime_type = EDM_MIME_TYPE

    def __init__(self, storage: ArtifactRepository, on_decision: DecisionHook | None = None):
        self._storage = storage
        self._decisions = DecisionPoint(on_decision)

    @staticmethod
    def matches(address: str) -> bool:
        return ARTIFACT_ADDRESS.matches(address)

    def read(self, address: str, identity: IdentityContext | None) -> ResourceContent:
        artifact_id = parse_artifact_address(address)
        artifact: Artifact = load_entity(self._storage, artifact_id)

        decision = can_access(artifact, identity, AccessPurpose.EXPORT)
        self._decisions.enforce(address, AccessPurpose.EXPORT, decision)

        return ResourceContent(
            uri=address,
            mime_type=EDM_MIME_TYPE,
            text=json.dumps(artifact.to_document(), indent=2),
        )

    def list(self, identity: IdentityContext | None) -> list[ResourceListItem]:
        items: list[ResourceListItem] = []
        for artifact_id in enumerate_ids(self._storage):
            address = build_artifact_address(artifact_id)
            try:
                artifact: Artifact = load_entity(self._storage, artifact_id)
            except ResourceAccessError as exc:
                logger.warning("Skipping artifact %s in listing: %s", artifact_id, exc)
                continue

            decision = can_access(artifact, identity, AccessPurpose.READ)
            self._decisions.record(address, AccessPurpose.READ, decision)
            if not decision.allowed:
                continue

            items.append(
                ResourceListItem(
                    uri=address,
                    name=artifact.meta.title or artifact_id,
                    description=_describe(artifact),
                    mime_type=EDM_MIME_TYPE,
                )
            )
        return items

    def delete(self, address: str, identity: IdentityContext | None) -> None:
        artifact_id = parse_artifact_address(address)
        artifact: Artifact = load_entity(self._storage, artifact_id)

        decision = can_access(artifact, identity, AccessPurpose.DELETE)
        self._decisions.enforce(address, AccessPurpose.DELETE, decision)

        remove_entity(self._storage, artifact_id)
        logger.info("Deleted artifact %s", artifact_id)
