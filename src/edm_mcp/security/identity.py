"""Identity resolvers and their composition.

A resolver maps an inbound request to an :class:`IdentityContext` or
``None``.  Requests are plain mappings: either carrying a ``headers`` map or
MCP-style ``params._meta.headers``.  Deployments bring their own resolvers;
the ones here cover local development and shared-token setups.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from edm_mcp.models.identity import IdentityContext
from edm_mcp.settings import Settings

logger = logging.getLogger("edm_mcp.identity")

IdentityResolver = Callable[[Mapping[str, Any]], IdentityContext | None]


class AuthProvider(Protocol):
    """A pluggable authentication backend."""

    name: str

    def authenticate(self, request: Mapping[str, Any]) -> IdentityContext | None: ...


def extract_headers(request: Mapping[str, Any] | None) -> dict[str, str]:
    """Return the request headers with lower-cased names."""
    if not isinstance(request, Mapping):
        return {}

    headers = request.get("headers")
    if not isinstance(headers, Mapping):
        params = request.get("params")
        meta = params.get("_meta") if isinstance(params, Mapping) else None
        headers = meta.get("headers") if isinstance(meta, Mapping) else None
    if not isinstance(headers, Mapping):
        return {}

    result: dict[str, str] = {}
    for key, value in headers.items():
        if isinstance(value, str):
            result[str(key).lower()] = value
        elif isinstance(value, list | tuple) and value:
            result[str(key).lower()] = str(value[0])
    return result


def _bearer_token(headers: Mapping[str, str]) -> str | None:
    raw = headers.get("authorization") or headers.get("x-auth-token")
    if not raw:
        return None
    return raw[len("Bearer ") :] if raw.startswith("Bearer ") else raw


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def no_auth_resolver(
    user_id: str = "local-user",
    roles: Iterable[str] = ("user",),
    organization_id: str | None = None,
) -> IdentityResolver:
    """Resolve every request to a fixed local user.

    Only for local development or single-user deployments.
    """
    context = IdentityContext.from_roles(user_id, roles=roles, organization_id=organization_id)

    def resolve(request: Mapping[str, Any]) -> IdentityContext | None:
        return context

    return resolve


def token_resolver(tokens: Mapping[str, IdentityContext]) -> IdentityResolver:
    """Look up the request's bearer token in *tokens*."""
    table = dict(tokens)

    def resolve(request: Mapping[str, Any]) -> IdentityContext | None:
        token = _bearer_token(extract_headers(request))
        if token is None:
            return None
        return table.get(token)

    return resolve


def settings_token_resolver(settings: Settings) -> IdentityResolver:
    """Authenticate against the single token configured in *settings*.

    Without a configured token the resolver runs in open mode and resolves
    every request to an anonymous user.
    """
    if not settings.auth_token:
        logger.warning("EDM_AUTH_TOKEN not set, running in open mode")
        anonymous = IdentityContext.from_roles("anonymous", roles=["user"])

        def resolve_open(request: Mapping[str, Any]) -> IdentityContext | None:
            return anonymous

        return resolve_open

    expected = settings.auth_token
    context = IdentityContext.from_roles(
        settings.user_id,
        roles=settings.role_list,
        organization_id=settings.org_id,
    )

    def resolve(request: Mapping[str, Any]) -> IdentityContext | None:
        token = _bearer_token(extract_headers(request))
        return context if token == expected else None

    return resolve


def provider_resolver(provider: AuthProvider) -> IdentityResolver:
    return provider.authenticate


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def compose_resolvers(resolvers: Iterable[IdentityResolver]) -> IdentityResolver:
    """Try *resolvers* in order; the first non-``None`` result wins."""
    chain = list(resolvers)

    def resolve(request: Mapping[str, Any]) -> IdentityContext | None:
        for resolver in chain:
            context = resolver(request)
            if context is not None:
                return context
        return None

    return resolve


def with_organization_header(
    base: IdentityResolver, header: str = "x-organization-id"
) -> IdentityResolver:
    """Fill a missing organization id from a request header.

    Only adds: a context that already names an organization is returned
    unchanged, and ``None`` passes through without reading the headers.
    """
    header_name = header.lower()

    def resolve(request: Mapping[str, Any]) -> IdentityContext | None:
        context = base(request)
        if context is None or context.organization_id is not None:
            return context
        org_id = extract_headers(request).get(header_name)
        return context.with_organization(org_id) if org_id else context

    return resolve
