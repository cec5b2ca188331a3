"""Pytest configuration and shared fixtures."""

from unittest.mock import MagicMock

import pytest

from CRB.core.exceptions import BackendError, BackendErrorKind
from CRB.core.models import Clause, ClaimRequest, PolicyType
from CRB.core.settings import Settings
from CRB.services.corpus.loader import ClauseCorpus, load_clause_corpus
from CRB.services.retry import RetryPolicy
from fakes import FakeEmbeddingClient, FakeVectorIndex


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        embedding_dimension=3,
        audit_backend="memory",
        retry_max_attempts=3,
        retry_base_delay_sec=0.5,
        retry_max_delay_sec=4.0,
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    """Retry policy with a fake sleep that records delays."""
    return RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=4.0, sleep=sleeps.append)


@pytest.fixture
def corpus() -> ClauseCorpus:
    """The bundled Motor/Health clause corpus."""
    return load_clause_corpus()


@pytest.fixture
def bumper_corpus() -> ClauseCorpus:
    """Small corpus for the Motor bumper-collision scenario."""
    return ClauseCorpus([
        Clause(id="M-1", text="collision and bumper damage coverage", category=PolicyType.MOTOR,
               metadata={"coverage_type": "Collision"}),
        Clause(id="M-2", text="windshield glass replacement", category=PolicyType.MOTOR,
               metadata={"coverage_type": "Glass"}),
        Clause(id="M-3", text="theft of vehicle coverage", category=PolicyType.MOTOR,
               metadata={"coverage_type": "Theft"}),
        Clause(id="H-1", text="hospital damage collision bumper coverage", category=PolicyType.HEALTH,
               metadata={"coverage_type": "Hospital"}),
    ])


@pytest.fixture
def claim_request() -> ClaimRequest:
    return ClaimRequest(
        policy_number="POL-2024-001",
        claim_description="Rear bumper collision damage with another vehicle",
        claim_amount=1500.0,
        policy_type="Motor"
    )


@pytest.fixture
def fake_embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def fake_index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def mock_bedrock_runtime() -> MagicMock:
    return MagicMock()


@pytest.fixture
def throttled() -> BackendError:
    return BackendError("Embedding failed: ThrottlingException", kind=BackendErrorKind.THROTTLED)


@pytest.fixture
def unavailable() -> BackendError:
    return BackendError("Vector query failed: ConnectTimeout", kind=BackendErrorKind.UNAVAILABLE)
