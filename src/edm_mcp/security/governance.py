"""Governance enforcement for EDM artifacts.

Pure policy functions over an artifact's governance fields and a caller's
identity.  Nothing here performs I/O; the clock is an optional ``now``
argument so decisions are reproducible.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, overload

from edm_mcp.models.access import AccessDecision, AccessPurpose
from edm_mcp.models.artifact import Artifact, Exportability, Visibility
from edm_mcp.models.envelope import Envelope
from edm_mcp.models.identity import Capability, IdentityContext

EXPORTABILITY_VALUES = frozenset(e.value for e in Exportability)
VISIBILITY_VALUES = frozenset(v.value for v in Visibility)

DEFAULT_EXPORTABILITY = Exportability.RESTRICTED
DEFAULT_VISIBILITY = Visibility.PRIVATE


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _now(now: datetime | None) -> datetime:
    return _as_utc(now) if now is not None else datetime.now(UTC)


# ---------------------------------------------------------------------------
# Exportability
# ---------------------------------------------------------------------------


def can_export(artifact: Artifact) -> bool:
    """True iff the artifact may leave the trust boundary."""
    gov = artifact.governance
    return gov is not None and gov.exportability == Exportability.ALLOWED


def is_restricted(artifact: Artifact) -> bool:
    gov = artifact.governance
    return gov is not None and gov.exportability == Exportability.RESTRICTED


def is_prohibited(artifact: Artifact) -> bool:
    gov = artifact.governance
    return gov is not None and gov.exportability == Exportability.PROHIBITED


# ---------------------------------------------------------------------------
# Retention and visibility
# ---------------------------------------------------------------------------


def is_expired(artifact: Artifact, now: datetime | None = None) -> bool:
    """Check the retention policy against *now*.

    ``expires_at`` takes precedence; otherwise ``duration_days`` counts from
    ``meta.created_at``.  Without a retention policy nothing expires.
    """
    retention = artifact.governance.retention if artifact.governance else None
    if retention is None:
        return False

    current = _now(now)
    if retention.expires_at is not None:
        return _as_utc(retention.expires_at) < current

    if retention.duration_days is not None:
        expires_at = _as_utc(artifact.meta.created_at) + timedelta(days=retention.duration_days)
        return expires_at < current

    return False


def is_owner(artifact: Artifact, identity: IdentityContext | None) -> bool:
    owner = artifact.meta.owner_user_id
    return identity is not None and owner is not None and owner == identity.user_id


def check_visibility(artifact: Artifact, identity: IdentityContext | None) -> bool:
    """Apply the visibility tier of *artifact* to *identity*."""
    visibility = artifact.meta.effective_visibility

    if visibility == Visibility.PUBLIC:
        return True

    if identity is None:
        return False

    if visibility == Visibility.PRIVATE:
        return is_owner(artifact, identity)

    if visibility == Visibility.SHARED:
        if is_owner(artifact, identity):
            return True
        org = artifact.meta.owner_org_id
        if org is not None and identity.organization_id == org:
            return True
        return identity.has_permission(f"artifact:read:{artifact.artifact_id}")

    return False


# ---------------------------------------------------------------------------
# Access decisions
# ---------------------------------------------------------------------------


def can_access(
    artifact: Artifact,
    identity: IdentityContext | None,
    purpose: AccessPurpose | str = AccessPurpose.READ,
    now: datetime | None = None,
) -> AccessDecision:
    """Decide whether *identity* may use *artifact* for *purpose*.

    Checks run in a fixed order and stop at the first denial:

    1. expiration denies every purpose and every identity (no admin bypass);
    2. modify/delete require an identity that owns the artifact or holds the
       admin capability;
    3. read/export require visibility, which admins bypass;
    4. export additionally requires ``exportability == allowed``.
    """
    purpose = AccessPurpose(purpose)

    if is_expired(artifact, now):
        return AccessDecision.deny("Artifact has expired")

    is_admin = identity is not None and identity.has(Capability.ADMIN)

    if purpose in (AccessPurpose.MODIFY, AccessPurpose.DELETE):
        if identity is None:
            return AccessDecision.deny("Authentication required for modification")
        if not is_owner(artifact, identity) and not is_admin:
            return AccessDecision.deny("Only owner or admin can modify or delete")
        return AccessDecision.allow()

    if not is_admin and not check_visibility(artifact, identity):
        return AccessDecision.deny("Visibility check failed")

    if purpose == AccessPurpose.EXPORT and not can_export(artifact):
        if is_prohibited(artifact):
            return AccessDecision.deny("Artifact export is prohibited")
        return AccessDecision.deny("Artifact export is restricted")

    return AccessDecision.allow()


def can_access_envelope(
    envelope: Envelope,
    identity: IdentityContext | None,
    purpose: AccessPurpose | str = AccessPurpose.READ,
    now: datetime | None = None,
) -> AccessDecision:
    """Envelopes are governed by the artifact they wrap."""
    return can_access(envelope.artifact, identity, purpose, now)


# ---------------------------------------------------------------------------
# Structural validation and defaults
# ---------------------------------------------------------------------------


@dataclass
class GovernanceValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _document(artifact: Artifact | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(artifact, Artifact):
        return artifact.to_document()
    return artifact


def validate_governance(artifact: Artifact | Mapping[str, Any]) -> GovernanceValidation:
    """Structural governance check over an artifact document.

    Works on raw documents so that values a typed model would refuse (an
    unknown exportability, a missing aggregate) are reported instead of
    raised.
    """
    doc = _document(artifact)
    errors: list[str] = []
    warnings: list[str] = []

    governance = doc.get("governance")
    if not isinstance(governance, Mapping):
        errors.append("Missing governance field")
        return GovernanceValidation(valid=False, errors=errors, warnings=warnings)

    exportability = governance.get("exportability")
    if not exportability:
        errors.append("Missing exportability setting")
    elif not isinstance(exportability, str) or exportability not in EXPORTABILITY_VALUES:
        errors.append(f"Invalid exportability value: {exportability!r}")

    meta = doc.get("meta")
    if not isinstance(meta, Mapping) or not meta.get("visibility"):
        warnings.append("Missing visibility setting, will default to private")

    retention = governance.get("retention")
    if isinstance(retention, Mapping):
        if retention.get("duration_days") is not None and retention.get("expires_at") is not None:
            warnings.append("Both duration_days and expires_at set; expires_at takes precedence")

    return GovernanceValidation(valid=not errors, errors=errors, warnings=warnings)


def _with_defaults(doc: Mapping[str, Any], now: datetime | None) -> dict[str, Any]:
    result = copy.deepcopy(dict(doc))

    # Sections of the wrong type are left for validation to report.
    governance = result.get("governance") or {}
    if isinstance(governance, Mapping):
        governance = dict(governance)
        if governance.get("exportability") is None:
            governance["exportability"] = DEFAULT_EXPORTABILITY.value
        result["governance"] = governance

    meta = result.get("meta") or {}
    if isinstance(meta, Mapping):
        meta = dict(meta)
        if meta.get("visibility") is None:
            meta["visibility"] = DEFAULT_VISIBILITY.value
        if meta.get("created_at") is None:
            meta["created_at"] = _now(now).isoformat()
        result["meta"] = meta

    return result


@overload
def apply_default_governance(artifact: Artifact, now: datetime | None = None) -> Artifact: ...


@overload
def apply_default_governance(
    artifact: Mapping[str, Any], now: datetime | None = None
) -> dict[str, Any]: ...


def apply_default_governance(
    artifact: Artifact | Mapping[str, Any], now: datetime | None = None
) -> Artifact | dict[str, Any]:
    """Fill governance gaps without overwriting explicit values.

    Defaults: ``exportability=restricted``, ``visibility=private`` and
    ``created_at=now``.  Idempotent.  The input is never mutated; a mapping
    yields a new dict and an :class:`Artifact` yields a new ``Artifact``.
    """
    if isinstance(artifact, Artifact):
        return Artifact.model_validate(_with_defaults(artifact.to_document(), now))
    return _with_defaults(artifact, now)
