"""Tests for the storage abstraction: memory and filesystem backends."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from edm_mcp.models.artifact import Visibility
from edm_mcp.models.envelope import Envelope, EnvelopeSignature
from edm_mcp.settings import Settings
from edm_mcp.storage import (
    FileSystemArtifactRepository,
    FileSystemEnvelopeRepository,
    FilterField,
    MemoryArtifactRepository,
    MemoryEnvelopeRepository,
    StorageError,
    StorageErrorCode,
    StorageFilter,
    create_storage,
    generate_artifact_id,
    generate_envelope_id,
    list_matching,
)
from tests.conftest import make_artifact, make_document


def _envelope(artifact_id: str = "edm_env_src", **kwargs) -> Envelope:
    return Envelope(
        artifact=make_artifact(artifact_id, **kwargs),
        signature=EnvelopeSignature(algorithm="Ed25519", signer_did="did:example:a", value="ab"),
    )


@pytest.fixture(params=["memory", "filesystem"])
def artifacts(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return MemoryArtifactRepository()
    return FileSystemArtifactRepository(tmp_path)


@pytest.fixture(params=["memory", "filesystem"])
def envelopes(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return MemoryEnvelopeRepository()
    return FileSystemEnvelopeRepository(tmp_path)


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestIdentifiers:
    def test_artifact_id_shape(self) -> None:
        assert re.fullmatch(r"edm_[0-9a-f]{20}", generate_artifact_id())

    def test_artifact_ids_unique(self) -> None:
        assert len({generate_artifact_id() for _ in range(200)}) == 200

    def test_envelope_id_derived_from_artifact(self) -> None:
        envelope_id = generate_envelope_id("edm_abc")
        assert envelope_id.startswith("ddna_edm_abc_")

    def test_envelope_id_sanitized(self) -> None:
        assert "/" not in generate_envelope_id("../etc/passwd")


# ---------------------------------------------------------------------------
# Artifact repositories (both backends)
# ---------------------------------------------------------------------------


class TestArtifactRepository:
    def test_round_trip(self, artifacts) -> None:
        artifact = make_artifact("edm_rt", tags=["a", "b"], title="T")
        saved_id = artifacts.save(artifact)
        assert saved_id == "edm_rt"
        assert artifacts.load(saved_id) == artifact

    def test_save_mapping(self, artifacts) -> None:
        saved_id = artifacts.save(make_document("edm_doc"))
        assert artifacts.load(saved_id).provenance.source == "unit-test"

    def test_assigns_id_when_absent(self, artifacts) -> None:
        saved_id = artifacts.save(make_artifact(None))
        assert saved_id.startswith("edm_")
        assert artifacts.load(saved_id).artifact_id == saved_id

    def test_missing_governance_rejected(self, artifacts) -> None:
        with pytest.raises(StorageError) as exc_info:
            artifacts.save(make_artifact("edm_nogov", governance=False))
        assert exc_info.value.code == StorageErrorCode.INVALID_DATA
        assert not artifacts.exists("edm_nogov")

    def test_invalid_document_rejected(self, artifacts) -> None:
        with pytest.raises(StorageError) as exc_info:
            artifacts.save({"artifact_id": "x"})
        assert exc_info.value.code == StorageErrorCode.INVALID_DATA
        assert exc_info.value.cause is not None

    def test_load_missing(self, artifacts) -> None:
        with pytest.raises(StorageError) as exc_info:
            artifacts.load("edm_missing")
        assert exc_info.value.code == StorageErrorCode.NOT_FOUND

    def test_loaded_copy_is_isolated(self, artifacts) -> None:
        artifacts.save(make_artifact("edm_iso", tags=["a"]))
        loaded = artifacts.load("edm_iso")
        loaded.meta.tags.append("mutated")
        assert artifacts.load("edm_iso").meta.tags == ["a"]

    def test_saved_input_is_isolated(self, artifacts) -> None:
        artifact = make_artifact("edm_iso2", tags=["a"])
        artifacts.save(artifact)
        artifact.meta.tags.append("mutated")
        assert artifacts.load("edm_iso2").meta.tags == ["a"]

    def test_save_overwrites(self, artifacts) -> None:
        artifacts.save(make_artifact("edm_ow", title="first"))
        artifacts.save(make_artifact("edm_ow", title="second"))
        assert artifacts.load("edm_ow").meta.title == "second"
        assert artifacts.list() == ["edm_ow"]

    def test_delete(self, artifacts) -> None:
        artifacts.save(make_artifact("edm_del"))
        assert artifacts.exists("edm_del")
        artifacts.delete("edm_del")
        assert not artifacts.exists("edm_del")

    def test_delete_missing(self, artifacts) -> None:
        with pytest.raises(StorageError) as exc_info:
            artifacts.delete("edm_nothing")
        assert exc_info.value.code == StorageErrorCode.NOT_FOUND

    def test_pagination_is_deterministic(self, artifacts) -> None:
        for i in range(5):
            artifacts.save(make_artifact(f"edm_p{i}", visibility="public"))
        flt = StorageFilter(limit=2, offset=1)
        first = artifacts.list(flt)
        assert first == artifacts.list(flt)
        assert first == ["edm_p1", "edm_p2"]

    def test_offset_without_limit(self, artifacts) -> None:
        for i in range(3):
            artifacts.save(make_artifact(f"edm_o{i}"))
        assert artifacts.list(StorageFilter(offset=2)) == ["edm_o2"]


# ---------------------------------------------------------------------------
# Memory-specific filtering
# ---------------------------------------------------------------------------


class TestMemoryFilters:
    def test_public_pagination_in_insertion_order(self) -> None:
        repo = MemoryArtifactRepository()
        ids = ["edm_e", "edm_d", "edm_c", "edm_b", "edm_a"]
        for artifact_id in ids:
            repo.save(make_artifact(artifact_id, visibility="public"))
        repo.save(make_artifact("edm_private", visibility="private"))

        result = repo.list(StorageFilter(visibility=Visibility.PUBLIC, limit=2, offset=1))
        assert result == ["edm_d", "edm_c"]

    def test_tags_match_any(self) -> None:
        repo = MemoryArtifactRepository()
        repo.save(make_artifact("edm_1", tags=["x"]))
        repo.save(make_artifact("edm_2", tags=["y", "z"]))
        repo.save(make_artifact("edm_3"))
        assert repo.list(StorageFilter(tags=("x", "z"))) == ["edm_1", "edm_2"]

    def test_owner_and_org(self) -> None:
        repo = MemoryArtifactRepository()
        repo.save(make_artifact("edm_1", owner="alice", org="acme"))
        repo.save(make_artifact("edm_2", owner="bob", org="acme"))
        assert repo.list(StorageFilter(user_id="alice")) == ["edm_1"]
        assert repo.list(StorageFilter(organization_id="acme")) == ["edm_1", "edm_2"]

    def test_missing_visibility_filters_as_private(self) -> None:
        repo = MemoryArtifactRepository()
        repo.save(make_artifact("edm_1", visibility=None))
        assert repo.list(StorageFilter(visibility=Visibility.PRIVATE)) == ["edm_1"]

    def test_clear_and_count(self) -> None:
        repo = MemoryArtifactRepository()
        repo.save(make_artifact("edm_1"))
        assert repo.count() == 1
        repo.clear()
        assert repo.count() == 0


# ---------------------------------------------------------------------------
# Filter capability tiers
# ---------------------------------------------------------------------------


class TestFilterCapabilities:
    def test_memory_supports_everything(self) -> None:
        assert MemoryArtifactRepository.supported_filters == frozenset(FilterField)

    def test_filesystem_supports_only_pagination(self, tmp_path: Path) -> None:
        repo = FileSystemArtifactRepository(tmp_path)
        assert repo.supported_filters == frozenset({FilterField.PAGINATION})

    def test_residual(self) -> None:
        flt = StorageFilter(user_id="alice", visibility=Visibility.PUBLIC, limit=1)
        residual = flt.residual({FilterField.PAGINATION})
        assert residual.fields == {FilterField.USER_ID, FilterField.VISIBILITY}

    def test_filesystem_ignores_unsupported_natively(self, tmp_path: Path) -> None:
        repo = FileSystemArtifactRepository(tmp_path)
        repo.save(make_artifact("edm_a", owner="alice"))
        repo.save(make_artifact("edm_b", owner="bob"))
        assert repo.list(StorageFilter(user_id="alice")) == ["edm_a", "edm_b"]

    def test_list_matching_reapplies(self, tmp_path: Path) -> None:
        repo = FileSystemArtifactRepository(tmp_path)
        for i in range(5):
            repo.save(make_artifact(f"edm_{i}", visibility="public"))
        repo.save(make_artifact("edm_0a", visibility="private"))

        flt = StorageFilter(visibility=Visibility.PUBLIC, limit=2, offset=1)
        assert list_matching(repo, flt) == ["edm_1", "edm_2"]

    def test_list_matching_on_memory_is_native(self) -> None:
        repo = MemoryArtifactRepository()
        repo.save(make_artifact("edm_1", owner="alice"))
        repo.save(make_artifact("edm_2", owner="bob"))
        assert list_matching(repo, StorageFilter(user_id="bob")) == ["edm_2"]


# ---------------------------------------------------------------------------
# Envelope repositories
# ---------------------------------------------------------------------------


class TestEnvelopeRepository:
    def test_round_trip(self, envelopes) -> None:
        envelope = _envelope()
        envelope_id = envelopes.save(envelope)
        assert envelope_id.startswith("ddna_edm_env_src_")
        assert envelopes.load(envelope_id) == envelope

    def test_same_artifact_gets_distinct_ids(self, envelopes) -> None:
        first = envelopes.save(_envelope())
        second = envelopes.save(_envelope())
        assert first != second
        assert len(envelopes.list()) == 2

    def test_requires_signature_value(self, envelopes) -> None:
        envelope = _envelope()
        envelope.signature.value = ""
        with pytest.raises(StorageError) as exc_info:
            envelopes.save(envelope)
        assert exc_info.value.code == StorageErrorCode.INVALID_DATA

    def test_requires_signer(self, envelopes) -> None:
        envelope = _envelope()
        envelope.signature.signer_did = ""
        with pytest.raises(StorageError):
            envelopes.save(envelope)

    def test_requires_identified_artifact(self, envelopes) -> None:
        with pytest.raises(StorageError):
            envelopes.save(_envelope(None))

    def test_filters_on_wrapped_artifact(self) -> None:
        repo = MemoryEnvelopeRepository()
        public_id = repo.save(_envelope("edm_pub", visibility="public"))
        repo.save(_envelope("edm_priv", visibility="private"))
        assert repo.list(StorageFilter(visibility=Visibility.PUBLIC)) == [public_id]

    def test_delete(self, envelopes) -> None:
        envelope_id = envelopes.save(_envelope())
        envelopes.delete(envelope_id)
        assert envelopes.list() == []


# ---------------------------------------------------------------------------
# Filesystem specifics
# ---------------------------------------------------------------------------


class TestFileSystem:
    def test_layout(self, tmp_path: Path) -> None:
        FileSystemArtifactRepository(tmp_path).save(make_artifact("edm_f"))
        envelope_id = FileSystemEnvelopeRepository(tmp_path).save(_envelope())
        assert (tmp_path / "artifacts" / "edm_f.json").is_file()
        assert (tmp_path / "envelopes" / f"{envelope_id}.ddna").is_file()

    def test_empty_directory_lists_nothing(self, tmp_path: Path) -> None:
        assert FileSystemArtifactRepository(tmp_path / "missing").list() == []

    @pytest.mark.parametrize("bad_id", ["../escape", "a/b", "", "with space", "dot.dot"])
    def test_unsafe_ids_rejected(self, tmp_path: Path, bad_id: str) -> None:
        repo = FileSystemArtifactRepository(tmp_path)
        with pytest.raises(StorageError) as exc_info:
            repo.load(bad_id)
        assert exc_info.value.code == StorageErrorCode.INVALID_DATA

    def test_malformed_file(self, tmp_path: Path) -> None:
        (tmp_path / "artifacts").mkdir()
        (tmp_path / "artifacts" / "edm_bad.json").write_text("{not json", encoding="utf-8")
        repo = FileSystemArtifactRepository(tmp_path)
        assert repo.list() == ["edm_bad"]
        with pytest.raises(StorageError) as exc_info:
            repo.load("edm_bad")
        assert exc_info.value.code == StorageErrorCode.INVALID_DATA

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        FileSystemArtifactRepository(tmp_path).save(make_artifact("edm_keep"))
        assert FileSystemArtifactRepository(tmp_path).exists("edm_keep")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestCreateStorage:
    def test_memory_default(self) -> None:
        bundle = create_storage(Settings(_env_file=None))
        assert isinstance(bundle.artifacts, MemoryArtifactRepository)
        assert isinstance(bundle.envelopes, MemoryEnvelopeRepository)

    def test_path_selects_filesystem(self, tmp_path: Path) -> None:
        bundle = create_storage(Settings(_env_file=None, storage_path=str(tmp_path)))
        assert isinstance(bundle.artifacts, FileSystemArtifactRepository)

    def test_explicit_memory_overrides_path(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None, storage_type="memory", storage_path=str(tmp_path))
        assert isinstance(create_storage(settings).artifacts, MemoryArtifactRepository)
