"""
Retrieval engine: claim description -> ranked policy clauses.

Pipeline:
    1. Embed the claim description (BedrockEmbeddingClient)
    2. Query the vector index filtered by the claim's policy type
    3. Resolve returned clause ids against the ClauseCorpus
    4. On any backend failure, an empty result, or nothing resolvable,
       rank the corpus clauses of the category lexically instead

retrieve() never raises because of a backend problem; the only exception
it lets through is InputError for an invalid top_k. The engine keeps no
state besides the read-only corpus, so one instance serves concurrent
requests.
"""

from __future__ import annotations

from typing import Optional, Sequence

from CRB.core.exceptions import BackendError, InputError
from CRB.core.logging_config import get_logger
from CRB.core.models import ClaimQuery, RetrievalResult, RetrievalSource, ScoredClause
from CRB.services.corpus.loader import ClauseCorpus
from CRB.services.retrieval.lexical import rank_by_overlap

logger = get_logger(__name__)


class RetrievalEngine:
    """
    Orchestrates embedding + vector search with a deterministic fallback.

    Attributes:
        corpus (ClauseCorpus): Authoritative clause set
        default_top_k (int): Result count when retrieve() gets none

    Either adapter may be None (not configured), in which case every
    request is served from the fallback.
    """

    def __init__(
        self,
        embedding_client,
        vector_index,
        corpus: ClauseCorpus,
        default_top_k: int = 5
    ):
        self.embedding_client = embedding_client
        self.vector_index = vector_index
        self.corpus = corpus
        self.default_top_k = default_top_k

    @property
    def vector_enabled(self) -> bool:
        return self.embedding_client is not None and self.vector_index is not None

    def retrieve(self, query: ClaimQuery, top_k: Optional[int] = None) -> RetrievalResult:
        """
        Produce ranked clauses for a claim.

        Args:
            query: Claim query (description + category)
            top_k: Maximum number of clauses (default: default_top_k)

        Returns:
            RetrievalResult: Clauses with source VectorBackend or Fallback

        Raises:
            InputError: If top_k < 1
        """
        top_k = self.default_top_k if top_k is None else top_k
        if top_k < 1:
            raise InputError("top_k must be >= 1", details={"top_k": top_k})

        if not self.vector_enabled:
            return self.fallback(query, top_k, reason="vector backend not configured")

        try:
            vector = self.embedding_client.embed(query.description)
        except BackendError as e:
            return self.fallback(query, top_k, reason=f"embedding {e.kind.value}: {e.message}")

        try:
            hits = self.vector_index.query(vector, top_k, category=query.category)
        except BackendError as e:
            return self.fallback(query, top_k, reason=f"vector query {e.kind.value}: {e.message}")

        if not hits:
            return self.fallback(query, top_k, reason="vector query returned no matches")

        resolved = self._resolve(query, hits)
        if not resolved:
            return self.fallback(query, top_k, reason="no vector hit resolved to a known clause")

        selected = tuple(resolved[:top_k])
        logger.info(
            f"Claim {query.claim_id}: {len(selected)} clause(s) from vector backend "
            f"[{', '.join(s.clause.id for s in selected)}]"
        )
        return RetrievalResult(clauses=selected, source=RetrievalSource.VECTOR_BACKEND)

    def _resolve(self, query: ClaimQuery, hits: Sequence[tuple[str, float]]) -> list[ScoredClause]:
        best: dict[str, ScoredClause] = {}
        for clause_id, score in hits:
            clause = self.corpus.get(clause_id)
            if clause is None:
                logger.warning(f"Claim {query.claim_id}: dropping unknown clause id '{clause_id}' from vector hits")
                continue
            current = best.get(clause_id)
            if current is None or score > current.score:
                best[clause_id] = ScoredClause(clause=clause, score=float(score))

        return sorted(best.values(), key=lambda s: (-s.score, s.clause.id))

    def fallback(self, query: ClaimQuery, top_k: int, reason: str = "") -> RetrievalResult:
        """
        Rank the corpus clauses of the query's category lexically.

        Deterministic: the same query against the same corpus always yields
        the same ordering.
        """
        ranked = rank_by_overlap(query.description, self.corpus.by_category(query.category))
        selected = tuple(ranked[:top_k])
        logger.warning(
            f"Claim {query.claim_id}: using fallback retrieval ({reason}); "
            f"{len(selected)} clause(s) for {query.category.value}"
        )
        return RetrievalResult(clauses=selected, source=RetrievalSource.FALLBACK)
