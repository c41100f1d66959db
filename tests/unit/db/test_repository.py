"""Tests for the Repository pattern."""

from __future__ import annotations

import sqlite3

import pytest

from knowledge_engine.db.models import (
    EmbeddingRecord,
    KnowledgeSource,
    SourceKind,
    SourceStatus,
)
from knowledge_engine.db.repository import Repository


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


def _source(id="src-1", tenant="acme", uri="https://acme.test/", kind=SourceKind.URL):
    return KnowledgeSource(id=id, tenant_id=tenant, label=f"label {id}", kind=kind, uri=uri)


def _record(id="e-1", source_id="src-1", vector_id=None, content="chunk text"):
    return EmbeddingRecord(
        id=id,
        knowledge_source_id=source_id,
        vector_id=vector_id or f"v-{id}",
        content=content,
        token_count=3,
    )


# ------------------------------------------------------------------
# Sources
# ------------------------------------------------------------------

def test_add_and_get_source(repo):
    repo.add_source(_source())
    result = repo.get_source("src-1")
    assert result is not None
    assert result.tenant_id == "acme"
    assert result.kind == SourceKind.URL
    assert result.status == SourceStatus.PENDING
    assert result.metadata_dict == {}
    assert result.created_at is not None


def test_get_source_not_found(repo):
    assert repo.get_source("nonexistent") is None


def test_get_source_scoped_to_tenant(repo):
    repo.add_source(_source())
    assert repo.get_source("src-1", "acme") is not None
    assert repo.get_source("src-1", "other") is None


def test_get_source_by_uri(repo):
    repo.add_source(_source(uri="https://acme.test/pricing"))
    assert repo.get_source_by_uri("acme", "https://acme.test/pricing").id == "src-1"
    assert repo.get_source_by_uri("other", "https://acme.test/pricing") is None


def test_duplicate_uri_same_tenant_rejected(repo):
    repo.add_source(_source(id="s1"))
    with pytest.raises(sqlite3.IntegrityError):
        repo.add_source(_source(id="s2"))


def test_list_sources_scoped_and_counted(repo):
    repo.add_source(_source(id="s1", uri="https://a"))
    repo.add_source(_source(id="s2", uri="https://b"))
    repo.add_source(_source(id="s3", tenant="other", uri="https://a"))
    repo.add_embedding_records([_record("e1", "s1"), _record("e2", "s1")])

    sources = repo.list_sources("acme")
    assert [s.id for s in sources] == ["s2", "s1"]  # newest first
    counts = {s.id: s.embedding_count for s in sources}
    assert counts == {"s1": 2, "s2": 0}


def test_list_sources_empty(repo):
    assert repo.list_sources("acme") == []


def test_update_source_status_and_metadata(repo):
    repo.add_source(_source())
    repo.update_source("src-1", status=SourceStatus.FAILED, metadata={"error": "boom"})
    result = repo.get_source("src-1")
    assert result.status == SourceStatus.FAILED
    assert result.metadata_dict == {"error": "boom"}


def test_update_source_noop_without_fields(repo):
    repo.add_source(_source())
    repo.update_source("src-1")
    assert repo.get_source("src-1").status == SourceStatus.PENDING


def test_delete_source(repo):
    repo.add_source(_source())
    repo.delete_source("src-1")
    assert repo.get_source("src-1") is None


def test_delete_sources_by_tenant(repo):
    repo.add_source(_source(id="s1", uri="https://a"))
    repo.add_source(_source(id="s2", uri="https://b"))
    repo.add_source(_source(id="s3", tenant="other"))
    repo.add_embedding_record(_record("e1", "s1"))

    assert repo.delete_sources_by_tenant("acme") == 2
    assert repo.list_sources("acme") == []
    assert repo.count_embeddings_by_source("s1") == 0
    assert repo.get_source("s3") is not None


# ------------------------------------------------------------------
# Embedding records
# ------------------------------------------------------------------

def test_add_embedding_records_and_list(repo):
    repo.add_source(_source())
    assert repo.add_embedding_records([_record("e1"), _record("e2")]) == 2
    records = repo.list_embeddings_by_source("src-1")
    assert [r.id for r in records] == ["e1", "e2"]
    assert repo.list_vector_ids_by_source("src-1") == ["v-e1", "v-e2"]


def test_add_embedding_records_empty(repo):
    assert repo.add_embedding_records([]) == 0


def test_embedding_requires_existing_source(repo):
    with pytest.raises(sqlite3.IntegrityError):
        repo.add_embedding_record(_record(source_id="missing"))


def test_delete_embeddings_by_source(repo):
    repo.add_source(_source())
    repo.add_embedding_records([_record("e1"), _record("e2")])
    assert repo.delete_embeddings_by_source("src-1") == 2
    assert repo.count_embeddings_by_source("src-1") == 0


# ------------------------------------------------------------------
# Transactions
# ------------------------------------------------------------------

def test_transaction_commits(repo):
    repo.add_source(_source())
    with repo.transaction():
        repo.add_embedding_record(_record("e1"))
        repo.update_source("src-1", status=SourceStatus.READY)
    assert repo.count_embeddings_by_source("src-1") == 1
    assert repo.get_source("src-1").status == SourceStatus.READY


def test_transaction_rolls_back_on_error(repo):
    repo.add_source(_source())
    repo.add_embedding_record(_record("e1"))
    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.delete_embeddings_by_source("src-1")
            repo.update_source("src-1", status=SourceStatus.FAILED)
            raise RuntimeError("boom")
    assert repo.count_embeddings_by_source("src-1") == 1
    assert repo.get_source("src-1").status == SourceStatus.PENDING


def test_nested_transaction_joins_outer(repo):
    repo.add_source(_source())
    with pytest.raises(RuntimeError):
        with repo.transaction():
            with repo.transaction():
                repo.add_embedding_record(_record("e1"))
            raise RuntimeError("boom")
    assert repo.count_embeddings_by_source("src-1") == 0


# ------------------------------------------------------------------
# Pending vector deletes
# ------------------------------------------------------------------

def test_pending_deletes_are_tenant_scoped(repo):
    assert repo.add_pending_deletes("acme", ["v1", "v2"]) == 2
    repo.add_pending_deletes("globex", ["v9"])
    assert repo.list_pending_deletes("acme") == ["v1", "v2"]
    assert repo.list_pending_deletes("globex") == ["v9"]


def test_pending_deletes_ignore_duplicates(repo):
    repo.add_pending_deletes("acme", ["v1"])
    assert repo.add_pending_deletes("acme", ["v1"]) == 0
    assert repo.list_pending_deletes("acme") == ["v1"]


def test_clear_pending_deletes(repo):
    repo.add_pending_deletes("acme", ["v1", "v2", "v3"])
    assert repo.clear_pending_deletes("acme", ["v2"]) == 1
    assert repo.list_pending_deletes("acme") == ["v1", "v3"]
    assert repo.clear_pending_deletes("acme") == 2
    assert repo.list_pending_deletes("acme") == []
