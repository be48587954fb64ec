"""Pydantic domain models for the EDM MCP server."""

from edm_mcp.models.access import AccessDecision, AccessPurpose
from edm_mcp.models.artifact import (
    SCHEMA_VERSION,
    Artifact,
    ArtifactContent,
    ArtifactGovernance,
    ArtifactMeta,
    ArtifactProvenance,
    Exportability,
    ExtractionMetadata,
    ProvenanceLink,
    RetentionPolicy,
    Visibility,
)
from edm_mcp.models.envelope import ENVELOPE_VERSION, Envelope, EnvelopeSignature
from edm_mcp.models.errors import ValidationIssue, ValidationReport
from edm_mcp.models.identity import Capability, IdentityContext

__all__ = [
    "ENVELOPE_VERSION",
    "SCHEMA_VERSION",
    "AccessDecision",
    "AccessPurpose",
    "Artifact",
    "ArtifactContent",
    "ArtifactGovernance",
    "ArtifactMeta",
    "ArtifactProvenance",
    "Capability",
    "Envelope",
    "EnvelopeSignature",
    "Exportability",
    "ExtractionMetadata",
    "IdentityContext",
    "ProvenanceLink",
    "RetentionPolicy",
    "ValidationIssue",
    "ValidationReport",
    "Visibility",
]
