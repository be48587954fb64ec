"""Tests for the artifact and envelope models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from edm_mcp.models import Artifact, Envelope, EnvelopeSignature, Exportability, Visibility
from edm_mcp.models.access import AccessDecision
from tests.conftest import make_artifact, make_document


class TestArtifact:
    def test_defaults(self) -> None:
        artifact = make_artifact()
        assert artifact.schema_version == "0.4.0"
        assert artifact.governance.exportability == Exportability.ALLOWED

    def test_document_round_trip(self) -> None:
        doc = make_document(tags=["a"], title="T")
        assert Artifact.model_validate(doc).to_document()["meta"]["tags"] == ["a"]

    def test_document_omits_unset(self) -> None:
        doc = make_artifact(visibility=None).to_document()
        assert "visibility" not in doc["meta"]
        assert "extraction" not in doc

    @pytest.mark.parametrize("field", ["exportability", "visibility"])
    def test_unknown_enum_values_rejected(self, field: str) -> None:
        kwargs = {field: "sometimes"}
        with pytest.raises(ValidationError):
            make_artifact(**kwargs)

    def test_enum_values_round_trip(self) -> None:
        for visibility in Visibility:
            for exportability in Exportability:
                doc = make_artifact(
                    visibility=visibility.value, exportability=exportability.value
                ).to_document()
                assert doc["meta"]["visibility"] == visibility.value
                assert doc["governance"]["exportability"] == exportability.value

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_artifact(retention={"duration_days": -1})

    def test_confidence_range(self) -> None:
        doc = make_document()
        doc["extraction"] = {"confidence": 2}
        with pytest.raises(ValidationError):
            Artifact.model_validate(doc)


class TestEnvelope:
    def test_defaults(self) -> None:
        envelope = Envelope(
            artifact=make_artifact(),
            signature=EnvelopeSignature(algorithm="Ed25519", signer_did="did:x", value="ab"),
        )
        assert envelope.version == "1.0"
        assert envelope.sealed_at.tzinfo is not None
        assert envelope.to_document()["signature"] == {
            "algorithm": "Ed25519",
            "signer_did": "did:x",
            "value": "ab",
        }


class TestAccessDecision:
    def test_allow_has_no_reasons(self) -> None:
        assert AccessDecision.allow().reasons == []

    def test_deny(self) -> None:
        decision = AccessDecision.deny("a", "b")
        assert not decision.allowed
        assert decision.reasons == ["a", "b"]
