"""Resource access protocol: policy-gated reads of artifacts and envelopes."""

from edm_mcp.resources.artifact import (
    ARTIFACT_ADDRESS,
    ARTIFACT_TEMPLATE,
    EDM_MIME_TYPE,
    ArtifactResourceProvider,
    build_artifact_address,
    parse_artifact_address,
)
from edm_mcp.resources.base import (
    DecisionHook,
    ResourceAccessError,
    ResourceContent,
    ResourceErrorCode,
    ResourceListItem,
    ResourceTemplate,
)
from edm_mcp.resources.envelope import (
    DDNA_MIME_TYPE,
    ENVELOPE_ADDRESS,
    ENVELOPE_TEMPLATE,
    EnvelopeResourceProvider,
    build_envelope_address,
    parse_envelope_address,
)


def resource_templates() -> list[ResourceTemplate]:
    return [ARTIFACT_TEMPLATE, ENVELOPE_TEMPLATE]


__all__ = [
    "ARTIFACT_ADDRESS",
    "ARTIFACT_TEMPLATE",
    "DDNA_MIME_TYPE",
    "EDM_MIME_TYPE",
    "ENVELOPE_ADDRESS",
    "ENVELOPE_TEMPLATE",
    "ArtifactResourceProvider",
    "DecisionHook",
    "EnvelopeResourceProvider",
    "ResourceAccessError",
    "ResourceContent",
    "ResourceErrorCode",
    "ResourceListItem",
    "ResourceTemplate",
    "build_artifact_address",
    "build_envelope_address",
    "parse_artifact_address",
    "parse_envelope_address",
    "resource_templates",
]
