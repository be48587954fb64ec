"""``ddna://envelope/{id}`` resources."""

from __future__ import annotations

import json

from edm_mcp.crypto.signing import Verifier
from edm_mcp.models.access import AccessPurpose
from edm_mcp.models.envelope import Envelope
from edm_mcp.models.identity import IdentityContext
from edm_mcp.resources.base import (
    AddressScheme,
    DecisionHook,
    DecisionPoint,
    ResourceAccessError,
    ResourceContent,
    ResourceErrorCode,
    ResourceListItem,
    ResourceTemplate,
    enumerate_ids,
    load_entity,
    logger,
    remove_entity,
)
from edm_mcp.security.governance import can_access_envelope
from edm_mcp.storage.repository import EnvelopeRepository

DDNA_MIME_TYPE = "application/vnd.deepadata.ddna+json"
ENVELOPE_ADDRESS = AddressScheme("ddna", "envelope")

ENVELOPE_TEMPLATE = ResourceTemplate(
    uri_template=ENVELOPE_ADDRESS.template,
    name="DDNA Envelope",
    description="A signed DDNA envelope, released after signature verification",
    mime_type=DDNA_MIME_TYPE,
)


def parse_envelope_address(address: str) -> str:
    return ENVELOPE_ADDRESS.parse(address)


def build_envelope_address(envelope_id: str) -> str:
    return ENVELOPE_ADDRESS.build(envelope_id)


class EnvelopeResourceProvider:
    """Releases sealed envelopes.

    The signature is verified before any policy check: a tampered envelope
    is reported as ``INVALID_SIGNATURE`` even to callers who could not have
    read it anyway.  Policy is then evaluated against the wrapped artifact.
    """

    mime_type = DDNA_MIME_TYPE

    def __init__(
        self,
        storage: EnvelopeRepository,
        verifier: Verifier,
        on_decision: DecisionHook | None = None,
    ):
        self._storage = storage
        self._verifier = verifier
        self._decisions = DecisionPoint(on_decision)

    @staticmethod
    def matches(address: str) -> bool:
        return ENVELOPE_ADDRESS.matches(address)

    def read(self, address: str, identity: IdentityContext | None) -> ResourceContent:
        envelope_id = parse_envelope_address(address)
        envelope: Envelope = load_entity(self._storage, envelope_id)

        result = self._verifier.verify(envelope)
        if not result.valid:
            logger.warning("Envelope %s failed verification: %s", envelope_id, result.error)
            raise ResourceAccessError(
                f"Invalid envelope signature: {result.error or 'verification failed'}",
                ResourceErrorCode.INVALID_SIGNATURE,
            )

        decision = can_access_envelope(envelope, identity, AccessPurpose.EXPORT)
        self._decisions.enforce(address, AccessPurpose.EXPORT, decision)

        return ResourceContent(
            uri=address,
            mime_type=DDNA_MIME_TYPE,
            text=json.dumps(envelope.to_document(), indent=2),
        )

    def list(self, identity: IdentityContext | None) -> list[ResourceListItem]:
        items: list[ResourceListItem] = []
        for envelope_id in enumerate_ids(self._storage):
            address = build_envelope_address(envelope_id)
            try:
                envelope: Envelope = load_entity(self._storage, envelope_id)
            except ResourceAccessError as exc:
                logger.warning("Skipping envelope %s in listing: %s", envelope_id, exc)
                continue

            if not self._verifier.verify(envelope).valid:
                logger.warning("Skipping envelope %s in listing: invalid signature", envelope_id)
                continue

            decision = can_access_envelope(envelope, identity, AccessPurpose.READ)
            self._decisions.record(address, AccessPurpose.READ, decision)
            if not decision.allowed:
                continue

            artifact = envelope.artifact
            items.append(
                ResourceListItem(
                    uri=address,
                    name=artifact.meta.title or envelope_id,
                    description=f"Sealed envelope for {artifact.artifact_id}",
                    mime_type=DDNA_MIME_TYPE,
                    signer=envelope.signature.signer_did,
                    sealed_at=envelope.sealed_at.isoformat(),
                )
            )
        return items

    def delete(self, address: str, identity: IdentityContext | None) -> None:
        envelope_id = parse_envelope_address(address)
        envelope: Envelope = load_entity(self._storage, envelope_id)

        decision = can_access_envelope(envelope, identity, AccessPurpose.DELETE)
        self._decisions.enforce(address, AccessPurpose.DELETE, decision)

        remove_entity(self._storage, envelope_id)
        logger.info("Deleted envelope %s", envelope_id)
