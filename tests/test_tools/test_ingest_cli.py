"""Tests for the crb-ingest command."""

from __future__ import annotations

import json

import pytest

from CRB.tools import ingest_policies
from fakes import FakeEmbeddingClient, FakeVectorIndex


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, settings):
    monkeypatch.setattr(ingest_policies, "get_settings", lambda: settings)


@pytest.fixture
def summary_path(tmp_path):
    return tmp_path / "summary.json"


def _summary(path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_dry_run_writes_summary(summary_path):
    exit_code = ingest_policies.main(["--dry-run", "--output", str(summary_path)])

    assert exit_code == 0
    summary = _summary(summary_path)
    assert summary["dry_run"] is True
    assert summary["total"] == 18


def test_custom_corpus(tmp_path, summary_path):
    path = tmp_path / "clauses.json"
    path.write_text(json.dumps([{"id": "LIF-1", "category": "Life", "text": "Term life benefit"}]))

    assert ingest_policies.main(["--corpus", str(path), "--dry-run", "--output", str(summary_path)]) == 0
    assert _summary(summary_path)["total"] == 1


def test_missing_corpus_exits_non_zero(tmp_path, capsys):
    assert ingest_policies.main(["--corpus", str(tmp_path / "missing.json"), "--dry-run"]) == 1
    assert "Clause corpus not found" in capsys.readouterr().err


def test_indexes_through_adapters(monkeypatch, summary_path):
    index = FakeVectorIndex()
    monkeypatch.setattr(ingest_policies, "BedrockEmbeddingClient", lambda settings: FakeEmbeddingClient())
    monkeypatch.setattr(ingest_policies, "QdrantVectorIndex", lambda settings: index)

    assert ingest_policies.main(["--output", str(summary_path)]) == 0
    assert _summary(summary_path)["indexed"] == 18
    assert len(index.upserts) == 18
