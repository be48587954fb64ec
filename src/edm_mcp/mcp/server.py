"""FastMCP server exposing EDM artifacts and DDNA envelopes.

Run via::

    edm-mcp                           # reads .env (default: stdio)
    EDM_MCP_TRANSPORT=http edm-mcp    # streamable HTTP on port 9000
    EDM_MCP_TRANSPORT=sse  edm-mcp    # legacy SSE on port 9000

Every request resolves its own identity from the inbound HTTP headers and
passes it explicitly to the resource providers and tools.  Settings are read
from ``EDM_``-prefixed environment variables and the ``.env`` file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError, ToolError
from fastmcp.server.dependencies import get_http_headers

from edm_mcp import __version__
from edm_mcp.crypto.signing import Ed25519Signer, Ed25519Verifier
from edm_mcp.models.identity import IdentityContext
from edm_mcp.resources import (
    ARTIFACT_ADDRESS,
    ARTIFACT_TEMPLATE,
    ENVELOPE_ADDRESS,
    ENVELOPE_TEMPLATE,
    ArtifactResourceProvider,
    EnvelopeResourceProvider,
    ResourceAccessError,
    build_artifact_address,
    build_envelope_address,
)
from edm_mcp.security.identity import (
    IdentityResolver,
    compose_resolvers,
    no_auth_resolver,
    settings_token_resolver,
    with_organization_header,
)
from edm_mcp.settings import Settings
from edm_mcp.storage.factory import StorageBundle, create_storage
from edm_mcp.tools import ExtractTool, SealTool, ToolFailure, ValidateTool

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("edm_mcp.mcp")

mcp = FastMCP("EDM MCP Server")


@dataclass
class Services:
    """Everything a request handler needs, built once at startup."""

    settings: Settings
    resolver: IdentityResolver
    artifacts: ArtifactResourceProvider
    envelopes: EnvelopeResourceProvider
    extract: ExtractTool
    seal: SealTool
    validate: ValidateTool


_services: Services | None = None


def build_resolver(settings: Settings) -> IdentityResolver:
    """Shared-token authentication plus the organization header.

    Over stdio there are no request headers; the process owner is trusted
    and falls back to the configured user.
    """
    resolvers = [settings_token_resolver(settings)]
    if settings.mcp_transport == "stdio":
        resolvers.append(
            no_auth_resolver(settings.user_id, settings.role_list, settings.org_id)
        )
    return with_organization_header(compose_resolvers(resolvers), settings.organization_header)


def build_services(
    settings: Settings,
    storage: StorageBundle | None = None,
    resolver: IdentityResolver | None = None,
) -> Services:
    storage = storage or create_storage(settings)
    return Services(
        settings=settings,
        resolver=resolver or build_resolver(settings),
        artifacts=ArtifactResourceProvider(storage.artifacts),
        envelopes=EnvelopeResourceProvider(
            storage.envelopes, Ed25519Verifier(settings.trusted_signers or None)
        ),
        extract=ExtractTool(storage.artifacts),
        seal=SealTool(storage.envelopes, Ed25519Signer(), signer_prefix=settings.signer_prefix),
        validate=ValidateTool(),
    )


def _require_services() -> Services:
    if _services is None:
        raise ToolError("Server not initialised")
    return _services


def _resolve_identity(services: Services) -> IdentityContext | None:
    headers = get_http_headers(include_all=True)
    identity = services.resolver({"headers": headers})
    if identity is None:
        logger.debug("request did not resolve to an identity")
    return identity


def _tool_error(exc: ToolFailure | ResourceAccessError) -> ToolError:
    if isinstance(exc, ResourceAccessError):
        return ToolError(f"[{exc.code}] {exc}")
    return ToolError(str(exc))


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@mcp.resource(
    ARTIFACT_ADDRESS.prefix + "{artifact_id}",
    name=ARTIFACT_TEMPLATE.name,
    description=ARTIFACT_TEMPLATE.description,
    mime_type=ARTIFACT_TEMPLATE.mime_type,
)
def read_artifact(artifact_id: str) -> str:
    """Read an EDM artifact; requires visibility and exportability."""
    if _services is None:
        raise ResourceError("Server not initialised")
    identity = _resolve_identity(_services)
    try:
        return _services.artifacts.read(build_artifact_address(artifact_id), identity).text
    except ResourceAccessError as exc:
        raise ResourceError(f"[{exc.code}] {exc}") from exc


@mcp.resource(
    ENVELOPE_ADDRESS.prefix + "{envelope_id}",
    name=ENVELOPE_TEMPLATE.name,
    description=ENVELOPE_TEMPLATE.description,
    mime_type=ENVELOPE_TEMPLATE.mime_type,
)
def read_envelope(envelope_id: str) -> str:
    """Read a DDNA envelope after verifying its signature."""
    if _services is None:
        raise ResourceError("Server not initialised")
    identity = _resolve_identity(_services)
    try:
        return _services.envelopes.read(build_envelope_address(envelope_id), identity).text
    except ResourceAccessError as exc:
        raise ResourceError(f"[{exc.code}] {exc}") from exc


# ---------------------------------------------------------------------------
# Tools: pipeline
# ---------------------------------------------------------------------------


@mcp.tool()
def extract_from_content(
    text: str,
    image: str | None = None,
    metadata: dict[str, Any] | None = None,
    content_type: str | None = None,
    save: bool = False,
) -> str:
    """Extract an EDM artifact (schema 0.4.0) from text content.

    Governance defaults are applied (exportability ``restricted``, visibility
    ``private``) and the caller becomes the owner.  With ``save=true`` the
    artifact is stored and its id returned as ``saved_id``.

    Args:
        text: The text to extract from.  Must not be blank.
        image: Optional base64-encoded image.
        metadata: Extra fields merged into the artifact content.
        content_type: Type hint recorded as ``content.type``.
        save: Persist the artifact.
    """
    services = _require_services()
    identity = _resolve_identity(services)
    try:
        result = services.extract.execute(
            text,
            image=image,
            metadata=metadata,
            content_type=content_type,
            save=save,
            identity=identity,
        )
    except ToolFailure as exc:
        raise _tool_error(exc) from exc
    return _dump(result.to_dict())


@mcp.tool()
def seal_artifact(
    artifact: dict[str, Any],
    private_key: str,
    did: str,
    algorithm: str | None = None,
    save: bool = False,
) -> str:
    """Seal an exportable EDM artifact into a signed DDNA envelope.

    Only artifacts whose governance passes validation and whose
    exportability is ``allowed`` can be sealed.

    Args:
        artifact: The EDM artifact document.
        private_key: Hex-encoded 32-byte Ed25519 seed (``0x`` prefix allowed).
        did: Signer identifier, e.g. ``did:example:alice``.
        algorithm: Signature algorithm (default from settings, ``Ed25519``).
        save: Persist the envelope.
    """
    services = _require_services()
    try:
        result = services.seal.execute(
            artifact,
            private_key,
            did,
            algorithm=algorithm or services.settings.signature_algorithm,
            save=save,
        )
    except ToolFailure as exc:
        raise _tool_error(exc) from exc
    return _dump(result.to_dict())


@mcp.tool()
def validate_edm(artifact: dict[str, Any], strict: bool = False) -> str:
    """Validate an EDM artifact against schema and governance rules.

    Returns ``{"valid", "errors", "warnings"}``.  In strict mode warnings are
    reported as errors and make the artifact invalid.
    """
    services = _require_services()
    report = services.validate.execute(artifact, strict=strict)
    return report.model_dump_json(indent=2)


# ---------------------------------------------------------------------------
# Tools: listings and lifecycle
# ---------------------------------------------------------------------------


@mcp.tool()
def list_artifacts() -> str:
    """List the artifacts the caller may read."""
    services = _require_services()
    identity = _resolve_identity(services)
    try:
        items = services.artifacts.list(identity)
    except ResourceAccessError as exc:
        raise _tool_error(exc) from exc
    return _dump([asdict(item) for item in items])


@mcp.tool()
def list_envelopes() -> str:
    """List verified envelopes the caller may read."""
    services = _require_services()
    identity = _resolve_identity(services)
    try:
        items = services.envelopes.list(identity)
    except ResourceAccessError as exc:
        raise _tool_error(exc) from exc
    return _dump([asdict(item) for item in items])


@mcp.tool()
def delete_artifact(artifact_id: str) -> str:
    """Delete an artifact.  Only its owner or an admin may do so."""
    services = _require_services()
    identity = _resolve_identity(services)
    address = build_artifact_address(artifact_id)
    try:
        services.artifacts.delete(address, identity)
    except ResourceAccessError as exc:
        raise _tool_error(exc) from exc
    return f"Deleted {address}"


@mcp.tool()
def delete_envelope(envelope_id: str) -> str:
    """Delete an envelope.  Governed by the artifact it wraps."""
    services = _require_services()
    identity = _resolve_identity(services)
    address = build_envelope_address(envelope_id)
    try:
        services.envelopes.delete(address, identity)
    except ResourceAccessError as exc:
        raise _tool_error(exc) from exc
    return f"Deleted {address}"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "EDM MCP Server v%s starting (transport=%s)",
        __version__,
        settings.mcp_transport,
    )

    global _services  # noqa: PLW0603
    _services = build_services(settings)

    if settings.mcp_transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport=settings.mcp_transport,
            host=settings.mcp_server_host,
            port=settings.mcp_server_port,
            log_level=settings.log_level.lower(),
        )


if __name__ == "__main__":
    main()
