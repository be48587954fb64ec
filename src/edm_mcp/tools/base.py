"""Common error type for tool handlers."""

from __future__ import annotations

import logging
from enum import StrEnum

logger = logging.getLogger("edm_mcp.tools")


class ToolFailure(Exception):
    """Base for typed tool errors.  ``cause`` keeps the underlying exception."""

    def __init__(self, message: str, code: StrEnum, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"
