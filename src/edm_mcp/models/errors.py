"""Structured validation issues and reports."""

from __future__ import annotations

from pydantic import BaseModel


class ValidationIssue(BaseModel):
    """A single validation error or warning, located by dotted *path*."""

    code: str
    message: str
    path: str = ""


class ValidationReport(BaseModel):
    """Result of validating an artifact document."""

    valid: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
