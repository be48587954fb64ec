"""MCP protocol adapter."""
