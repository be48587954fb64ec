"""``validate_edm``: structural and governance validation of artifact documents."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from edm_mcp.models.errors import ValidationIssue, ValidationReport
from edm_mcp.security.governance import VISIBILITY_VALUES, validate_governance

TOOL_NAME = "validate_edm"

MISSING_FIELD = "MISSING_FIELD"
INVALID_FORMAT = "INVALID_FORMAT"
INVALID_VALUE = "INVALID_VALUE"
MISSING_OPTIONAL = "MISSING_OPTIONAL"
GOVERNANCE_ERROR = "GOVERNANCE_ERROR"
GOVERNANCE_WARNING = "GOVERNANCE_WARNING"

STRICT_PREFIX = "[Strict]"

_SEMVER = re.compile(r"\d+\.\d+\.\d+")

Validator = Callable[[Mapping[str, Any]], ValidationReport]


def _is_iso_datetime(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


class _Collector:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, path: str, message: str, code: str) -> None:
        self.errors.append(ValidationIssue(code=code, message=message, path=path))

    def warning(self, path: str, message: str, code: str) -> None:
        self.warnings.append(ValidationIssue(code=code, message=message, path=path))

    def missing(self, path: str) -> None:
        self.error(path, f"Missing required field: {path}", MISSING_FIELD)

    def report(self) -> ValidationReport:
        return ValidationReport(valid=not self.errors, errors=self.errors, warnings=self.warnings)


def _section(doc: Mapping[str, Any], name: str, out: _Collector) -> Mapping[str, Any] | None:
    value = doc.get(name)
    if not value:
        out.missing(name)
        return None
    if not isinstance(value, Mapping):
        out.error(name, f"{name} must be an object", INVALID_FORMAT)
        return None
    return value


def validate_artifact(document: Mapping[str, Any] | None) -> ValidationReport:
    """Validate a raw artifact document.

    Never raises for bad input; every problem becomes an issue in the
    returned report.  The document is not modified.
    """
    out = _Collector()
    if not isinstance(document, Mapping):
        out.error("", "Artifact must be an object", MISSING_FIELD)
        return out.report()

    schema_version = document.get("schema_version")
    if not schema_version:
        out.missing("schema_version")
    elif not isinstance(schema_version, str) or not _SEMVER.fullmatch(schema_version):
        out.error(
            "schema_version", "Invalid schema_version format (expected semver)", INVALID_FORMAT
        )

    if not document.get("artifact_id"):
        out.missing("artifact_id")

    meta = _section(document, "meta", out)
    if meta is not None:
        created_at = meta.get("created_at")
        if not created_at:
            out.missing("meta.created_at")
        elif not _is_iso_datetime(created_at):
            out.error("meta.created_at", "Invalid ISO8601 date format", INVALID_FORMAT)

        updated_at = meta.get("updated_at")
        if updated_at is not None and not _is_iso_datetime(updated_at):
            out.error("meta.updated_at", "Invalid ISO8601 date format", INVALID_FORMAT)

        visibility = meta.get("visibility")
        if not visibility:
            out.warning(
                "meta.visibility", "Missing visibility, will default to private", MISSING_OPTIONAL
            )
        elif not isinstance(visibility, str) or visibility not in VISIBILITY_VALUES:
            out.error("meta.visibility", f"Invalid visibility value: {visibility!r}", INVALID_VALUE)

    content = _section(document, "content", out)
    if content is not None:
        if not content.get("type"):
            out.missing("content.type")
        data = content.get("data")
        if data is None:
            out.missing("content.data")
        elif not isinstance(data, Mapping):
            out.error("content.data", "content.data must be an object", INVALID_FORMAT)

    provenance = _section(document, "provenance", out)
    if provenance is not None and not provenance.get("source"):
        out.missing("provenance.source")

    governance = _section(document, "governance", out)
    if governance is not None:
        result = validate_governance(document)
        for message in result.errors:
            out.error("governance", message, GOVERNANCE_ERROR)
        for message in result.warnings:
            out.warning("governance", message, GOVERNANCE_WARNING)
        _check_retention(governance.get("retention"), out)

    extraction = document.get("extraction")
    if isinstance(extraction, Mapping):
        extracted_at = extraction.get("extracted_at")
        if not extracted_at:
            out.warning("extraction.extracted_at", "Missing extraction timestamp", MISSING_OPTIONAL)
        elif not _is_iso_datetime(extracted_at):
            out.error("extraction.extracted_at", "Invalid ISO8601 date format", INVALID_FORMAT)
        confidence = extraction.get("confidence")
        if confidence is not None and (
            isinstance(confidence, bool)
            or not isinstance(confidence, int | float)
            or not 0 <= confidence <= 1
        ):
            out.error(
                "extraction.confidence",
                "Confidence must be a number between 0 and 1",
                INVALID_VALUE,
            )

    return out.report()


def _check_retention(retention: object, out: _Collector) -> None:
    if retention is None:
        return
    if not isinstance(retention, Mapping):
        out.error("governance.retention", "retention must be an object", INVALID_FORMAT)
        return
    duration = retention.get("duration_days")
    if duration is not None and (
        isinstance(duration, bool) or not isinstance(duration, int) or duration < 0
    ):
        out.error(
            "governance.retention.duration_days",
            "duration_days must be a non-negative integer",
            INVALID_VALUE,
        )
    expires_at = retention.get("expires_at")
    if expires_at is not None and not _is_iso_datetime(expires_at):
        out.error("governance.retention.expires_at", "Invalid ISO8601 date format", INVALID_FORMAT)


def apply_strict(report: ValidationReport) -> ValidationReport:
    """Promote every warning to an error; invalid if any warning existed."""
    if not report.warnings:
        return report
    promoted = [
        ValidationIssue(
            code=f"STRICT_{w.code}", message=f"{STRICT_PREFIX} {w.message}", path=w.path
        )
        for w in report.warnings
    ]
    return ValidationReport(valid=False, errors=[*report.errors, *promoted], warnings=[])


class ValidateTool:
    name = TOOL_NAME

    def __init__(self, validator: Validator | None = None) -> None:
        self._validator = validator or validate_artifact

    def execute(
        self, artifact: Mapping[str, Any] | None, *, strict: bool = False
    ) -> ValidationReport:
        report = self._validator(artifact)
        return apply_strict(report) if strict else report
