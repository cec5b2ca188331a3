"""
Policy clause ingestion into the vector index.

Embeds every clause of the corpus with Titan and upserts it into the Qdrant
collection together with its metadata. Re-running is safe: point ids are
derived from clause ids, so an existing point is replaced.

Module Input:
    - ClauseCorpus (bundled dataset or a file passed on the command line)

Module Output:
    - Qdrant points {clause_id, text, category, coverage_type, ...}
    - IngestionSummary with per-clause failures
"""

from __future__ import annotations

from typing import Iterable, Optional

from CRB.core.exceptions import BackendError
from CRB.core.logging_config import get_logger
from CRB.core.models import Clause, IngestionSummary
from CRB.services.corpus.loader import ClauseCorpus

logger = get_logger(__name__)


def clause_payload(clause: Clause) -> dict[str, str]:
    """Metadata stored next to a clause vector."""
    payload = dict(clause.metadata)
    payload.update({
        "clause_id": clause.id,
        "text": clause.text,
        "category": clause.category.value,
        "coverage_type": clause.coverage_type,
    })
    return payload


class PolicyIngestionService:
    """
    Indexes policy clauses into the vector backend.

    Attributes:
        embedding_client: BedrockEmbeddingClient (or compatible)
        vector_index: QdrantVectorIndex (or compatible)
        corpus (ClauseCorpus): Default clause set to ingest
    """

    def __init__(self, embedding_client, vector_index, corpus: ClauseCorpus):
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.corpus = corpus

    def ingest(self, clauses: Optional[Iterable[Clause]] = None, dry_run: bool = False) -> IngestionSummary:
        """
        Embed and upsert clauses.

        A failing clause is recorded in the summary and the run continues.

        Args:
            clauses: Clauses to ingest (default: the whole corpus)
            dry_run: Only count clauses, touch neither Bedrock nor Qdrant

        Returns:
            IngestionSummary: Totals and failures

        Raises:
            BackendError: If the collection cannot be created
        """
        selected = list(self.corpus if clauses is None else clauses)
        collection = getattr(self.vector_index, "collection", "")

        if dry_run:
            logger.info(f"Dry run: {len(selected)} clause(s) would be indexed into '{collection}'")
            return IngestionSummary(total=len(selected), indexed=0, collection=collection, dry_run=True)

        self.vector_index.ensure_collection()

        indexed = 0
        failed = []
        for clause in selected:
            try:
                vector = self.embedding_client.embed(clause.text)
                self.vector_index.upsert(clause.id, vector, clause_payload(clause))
                indexed += 1
            except BackendError as e:
                logger.error(f"Failed to index clause {clause.id}: {e.message} ({e.kind.value})")
                failed.append({"clause_id": clause.id, "error": e.message, "kind": e.kind.value})

        logger.info(f"Ingestion complete: {indexed}/{len(selected)} clause(s) indexed into '{collection}'")
        return IngestionSummary(total=len(selected), indexed=indexed, failed=failed, collection=collection)
