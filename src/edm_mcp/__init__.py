"""EDM MCP Server: governed access to EDM artifacts and sealed DDNA envelopes."""

__version__ = "0.1.0"
