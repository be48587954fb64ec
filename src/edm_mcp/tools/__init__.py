"""Tool pipeline: extract, seal and validate."""

from edm_mcp.tools.base import ToolFailure
from edm_mcp.tools.extract import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionRequest,
    ExtractionResult,
    ExtractionSummary,
    ExtractTool,
    Extractor,
    basic_extractor,
)
from edm_mcp.tools.seal import SealError, SealErrorCode, SealResult, SealTool
from edm_mcp.tools.validate import ValidateTool, apply_strict, validate_artifact

__all__ = [
    "ExtractTool",
    "ExtractionError",
    "ExtractionErrorCode",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionSummary",
    "Extractor",
    "SealError",
    "SealErrorCode",
    "SealResult",
    "SealTool",
    "ToolFailure",
    "ValidateTool",
    "apply_strict",
    "basic_extractor",
    "validate_artifact",
]
