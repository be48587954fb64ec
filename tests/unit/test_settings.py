"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from edm_mcp.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("EDM_STORAGE_PATH", "EDM_STORAGE_TYPE", "EDM_AUTH_TOKEN"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.effective_storage_type == "memory"
        assert settings.auth_token is None
        assert settings.signer_prefix == "did:"
        assert settings.mcp_transport == "stdio"

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EDM_STORAGE_PATH", "/tmp/edm")
        monkeypatch.setenv("EDM_USER_ROLES", "user,admin")
        monkeypatch.setenv("EDM_ORG_ID", "acme")
        settings = Settings(_env_file=None)
        assert settings.effective_storage_type == "filesystem"
        assert settings.role_list == ["user", "admin"]
        assert settings.org_id == "acme"

    def test_dotenv(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EDM_AUTH_TOKEN", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("EDM_AUTH_TOKEN=from-file\n", encoding="utf-8")
        assert Settings(_env_file=env_file).auth_token == "from-file"

    def test_invalid_transport(self) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, mcp_transport="carrier-pigeon")

    def test_trusted_signers_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EDM_TRUSTED_SIGNERS", '{"did:example:alice": "ab12"}')
        settings = Settings(_env_file=None)
        assert settings.trusted_signers == {"did:example:alice": "ab12"}

    def test_trusted_signers_default_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EDM_TRUSTED_SIGNERS", raising=False)
        assert Settings(_env_file=None).trusted_signers == {}
