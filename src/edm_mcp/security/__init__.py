"""Governance policy and identity resolution."""

from edm_mcp.security.governance import (
    GovernanceValidation,
    apply_default_governance,
    can_access,
    can_access_envelope,
    can_export,
    check_visibility,
    is_expired,
    is_prohibited,
    is_restricted,
    validate_governance,
)
from edm_mcp.security.identity import (
    IdentityResolver,
    compose_resolvers,
    extract_headers,
    no_auth_resolver,
    provider_resolver,
    settings_token_resolver,
    token_resolver,
    with_organization_header,
)

__all__ = [
    "GovernanceValidation",
    "IdentityResolver",
    "apply_default_governance",
    "can_access",
    "can_access_envelope",
    "can_export",
    "check_visibility",
    "compose_resolvers",
    "extract_headers",
    "is_expired",
    "is_prohibited",
    "is_restricted",
    "no_auth_resolver",
    "provider_resolver",
    "settings_token_resolver",
    "token_resolver",
    "validate_governance",
    "with_organization_header",
]
