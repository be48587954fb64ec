"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the EDM MCP server.

    Values are read from ``EDM_``-prefixed environment variables and from a
    ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="EDM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Storage
    storage_type: Literal["memory", "filesystem"] | None = None
    storage_path: str | None = None

    # Identity (single shared token; unset means open mode)
    auth_token: str | None = None
    user_id: str = "authenticated-user"
    user_roles: str = "user"  # comma separated
    org_id: str | None = None
    organization_header: str = "x-organization-id"

    # Sealing
    signer_prefix: str = "did:"
    signature_algorithm: str = "Ed25519"
    # signer DID -> hex Ed25519 public key; empty trusts the embedded key
    trusted_signers: dict[str, str] = {}

    # MCP server
    mcp_transport: Literal["stdio", "http", "sse"] = "stdio"
    mcp_server_host: str = "localhost"
    mcp_server_port: int = 9000

    @property
    def effective_storage_type(self) -> str:
        """Explicit storage type, else filesystem when a path is configured."""
        if self.storage_type is not None:
            return self.storage_type
        return "filesystem" if self.storage_path else "memory"

    @property
    def role_list(self) -> list[str]:
        return [r.strip() for r in self.user_roles.split(",") if r.strip()]
