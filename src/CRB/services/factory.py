"""
Composition root for the claim validation stack.

Builds every component from a Settings instance. Used by the FastAPI app,
the Lambda handler and the Streamlit UI so that they wire the same objects
the same way.

Construction fails fast on an unusable corpus (CorpusError) or invalid
configuration (ConfigError). Backend reachability is not checked here:
an unreachable Bedrock or Qdrant only pushes retrieval onto the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from CRB.core.logging_config import get_logger
from CRB.core.settings import Settings, get_settings
from CRB.services.audit.dispatcher import BackgroundAuditDispatcher
from CRB.services.audit.dynamodb_sink import DynamoDBAuditSink
from CRB.services.audit.memory_sink import InMemoryAuditSink
from CRB.services.corpus.loader import ClauseCorpus, load_clause_corpus
from CRB.services.decision.bedrock_llm import BedrockDecisionMaker
from CRB.services.embedding.bedrock_client import BedrockEmbeddingClient
from CRB.services.ingestion.policy_ingestor import PolicyIngestionService
from CRB.services.retrieval.engine import RetrievalEngine
from CRB.services.validation.claim_validation import ClaimValidationService
from CRB.services.vector.qdrant_index import QdrantVectorIndex

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Wired components shared by one process."""

    settings: Settings
    corpus: ClauseCorpus
    vector_index: QdrantVectorIndex
    audit_sink: object
    audit_dispatcher: BackgroundAuditDispatcher
    validation_service: ClaimValidationService
    ingestion_service: PolicyIngestionService

    def close(self, timeout: Optional[float] = 5.0) -> bool:
        """Drain pending audit records and stop the dispatcher."""
        return self.audit_dispatcher.close(timeout)


def build_audit_sink(settings: Settings):
    """DynamoDB or in-memory sink depending on AUDIT_BACKEND."""
    if settings.get_audit_backend() == "memory":
        logger.warning("Using in-memory audit sink; audit trail is not persisted")
        return InMemoryAuditSink()
    return DynamoDBAuditSink(settings)


def build_services(settings: Optional[Settings] = None) -> ServiceContainer:
    """
    Build the full service graph.

    Raises:
        CorpusError: If the clause corpus cannot be loaded
        ConfigError: If configuration or AWS session setup is invalid
    """
    settings = settings or get_settings()

    corpus = load_clause_corpus(settings.clause_corpus_path)
    logger.info(f"Clause corpus loaded: {len(corpus)} clause(s) {corpus.category_counts()}")

    embedding_client = BedrockEmbeddingClient(settings)
    vector_index = QdrantVectorIndex(settings)
    engine = RetrievalEngine(
        embedding_client,
        vector_index,
        corpus,
        default_top_k=settings.retrieval_top_k
    )

    audit_sink = build_audit_sink(settings)
    dispatcher = BackgroundAuditDispatcher(audit_sink, max_queue_size=settings.audit_queue_size)

    validation_service = ClaimValidationService(
        retrieval_engine=engine,
        decision_maker=BedrockDecisionMaker(settings),
        audit_dispatcher=dispatcher,
        audit_sink=audit_sink,
        top_k=settings.retrieval_top_k
    )
    ingestion_service = PolicyIngestionService(embedding_client, vector_index, corpus)

    logger.info("Claim validation services initialized")
    return ServiceContainer(
        settings=settings,
        corpus=corpus,
        vector_index=vector_index,
        audit_sink=audit_sink,
        audit_dispatcher=dispatcher,
        validation_service=validation_service,
        ingestion_service=ingestion_service
    )
