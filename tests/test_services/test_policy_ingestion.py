"""Tests for clause ingestion into the vector index."""

from __future__ import annotations

from CRB.core.exceptions import BackendError, BackendErrorKind
from CRB.core.models import PolicyType
from CRB.services.ingestion.policy_ingestor import PolicyIngestionService, clause_payload


class SelectiveEmbedder:
    """Fails for texts containing the given marker."""

    def __init__(self, marker):
        self.marker = marker
        self.calls = 0

    def embed(self, text):
        self.calls += 1
        if self.marker in text:
            raise BackendError("ValidationException", kind=BackendErrorKind.INVALID_INPUT)
        return (0.1, 0.2, 0.3)


class TestIngest:
    def test_ingests_whole_corpus(self, corpus, fake_embedder, fake_index):
        summary = PolicyIngestionService(fake_embedder, fake_index, corpus).ingest()

        assert summary.total == 18
        assert summary.indexed == 18
        assert summary.failed == []
        assert summary.collection == "test-clauses"
        assert fake_index.ensured == 1
        assert [u[0] for u in fake_index.upserts] == list(corpus.clause_ids)

    def test_failed_clause_does_not_stop_run(self, corpus, fake_index):
        service = PolicyIngestionService(SelectiveEmbedder("Towing"), fake_index, corpus)

        summary = service.ingest()

        assert summary.indexed == 17
        assert summary.failed == [
            {"clause_id": "MOT-004", "error": "ValidationException", "kind": "InvalidInput"}
        ]

    def test_dry_run_touches_nothing(self, corpus, fake_embedder, fake_index):
        summary = PolicyIngestionService(fake_embedder, fake_index, corpus).ingest(dry_run=True)

        assert summary.dry_run is True
        assert summary.total == 18
        assert summary.indexed == 0
        assert fake_embedder.calls == []
        assert fake_index.ensured == 0

    def test_explicit_clause_subset(self, corpus, fake_embedder, fake_index):
        health = corpus.by_category(PolicyType.HEALTH)
        summary = PolicyIngestionService(fake_embedder, fake_index, corpus).ingest(clauses=health)
        assert summary.indexed == 8
        assert all(u[0].startswith("HLT-") for u in fake_index.upserts)


def test_clause_payload(corpus):
    payload = clause_payload(corpus.get("HLT-003"))
    assert payload == {
        "clause_id": "HLT-003",
        "text": "Pre-existing conditions excluded for first 12 months of coverage.",
        "category": "Health",
        "coverage_type": "Exclusions",
    }
