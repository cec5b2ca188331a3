"""
Qdrant-backed vector index for policy clauses.

Stores one point per clause (vector + payload) and answers filtered
nearest-neighbour queries.

Point layout:
    id:      UUIDv5 derived from the clause id (stable across re-ingestion)
    vector:  clause embedding, cosine distance
    payload: {"clause_id", "category", "text", "coverage_type", ...metadata}

Module Input:
    - Query vectors from BedrockEmbeddingClient
    - Clause vectors and metadata from PolicyIngestionService

Module Output:
    - Ordered (clause_id, score) pairs, best match first
"""

from __future__ import annotations

import math
import uuid
from typing import Any, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from CRB.core.exceptions import BackendError, BackendErrorKind, InputError
from CRB.core.logging_config import get_logger
from CRB.core.models import PolicyType
from CRB.core.settings import Settings

logger = get_logger(__name__)

CLAUSE_ID_FIELD = "clause_id"
CATEGORY_FIELD = "category"


def point_id_for(clause_id: str) -> str:
    """Deterministic Qdrant point id for a clause id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"clause:{clause_id}"))


class QdrantVectorIndex:
    """
    Vector index adapter over a single Qdrant collection.

    Attributes:
        collection (str): Qdrant collection name
        dimension (int): Vector size used when creating the collection
        top_k_max (int): Upper clamp for query sizes
    """

    def __init__(self, settings: Settings, client: Optional[QdrantClient] = None):
        self.collection = settings.qdrant_collection
        self.dimension = settings.embedding_dimension
        self.top_k_max = settings.vector_top_k_max
        self._client = client or QdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout=max(1, math.ceil(settings.request_timeout_seconds))
        )
        logger.info(
            f"Initialized QdrantVectorIndex: url={settings.qdrant_url}, collection={self.collection}"
        )

    def _to_backend_error(self, exc: Exception, operation: str) -> BackendError:
        if isinstance(exc, UnexpectedResponse) and exc.status_code == 404:
            return BackendError(
                f"Collection '{self.collection}' not found",
                kind=BackendErrorKind.INDEX_NOT_FOUND,
                details={"collection": self.collection, "operation": operation}
            )
        return BackendError(
            f"Vector {operation} failed: {type(exc).__name__}",
            kind=BackendErrorKind.UNAVAILABLE,
            details={"collection": self.collection, "operation": operation, "error": str(exc)}
        )

    def clamp_top_k(self, top_k: int) -> int:
        """
        Validate and clamp a requested result count.

        Raises:
            InputError: If top_k is below 1
        """
        if top_k < 1:
            raise InputError("top_k must be >= 1", details={"top_k": top_k})
        return min(top_k, self.top_k_max)

    # ----------------------------- Query ---------------------------------

    def query(
        self,
        vector: Sequence[float],
        top_k: int,
        category: Optional[PolicyType] = None
    ) -> list[tuple[str, float]]:
        """
        Nearest-neighbour search, optionally restricted to a category.

        Args:
            vector: Query embedding
            top_k: Requested number of results (clamped to top_k_max)
            category: Optional policy type filter

        Returns:
            list[tuple[str, float]]: (clause_id, cosine score), best first

        Raises:
            InputError: If top_k < 1
            BackendError: IndexNotFound or Unavailable
        """
        limit = self.clamp_top_k(top_k)
        query_filter = None
        if category is not None:
            query_filter = Filter(
                must=[FieldCondition(key=CATEGORY_FIELD, match=MatchValue(value=category.value))]
            )

        try:
            response = self._client.query_points(
                collection_name=self.collection,
                query=list(vector),
                limit=limit,
                query_filter=query_filter,
                with_payload=True
            )
        except Exception as e:
            raise self._to_backend_error(e, "query")

        hits: list[tuple[str, float]] = []
        for point in response.points:
            payload = point.payload or {}
            clause_id = payload.get(CLAUSE_ID_FIELD)
            if not clause_id:
                logger.warning(f"Point {point.id} has no clause_id in payload, skipping")
                continue
            hits.append((str(clause_id), float(point.score)))

        logger.info(
            f"Vector query returned {len(hits)} hit(s) "
            f"(limit={limit}, category={category.value if category else 'any'})"
        )
        return hits

    # ----------------------------- Ingestion -----------------------------

    def ensure_collection(self) -> bool:
        """
        Create the collection and category index if missing.

        Returns:
            bool: True if the collection was created

        Raises:
            BackendError: Unavailable
        """
        try:
            if self._client.collection_exists(self.collection):
                logger.info(f"Collection '{self.collection}' already exists")
                return False

            self._client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE)
            )
            self._client.create_payload_index(
                collection_name=self.collection,
                field_name=CATEGORY_FIELD,
                field_schema=PayloadSchemaType.KEYWORD
            )
            logger.info(f"Created Qdrant collection '{self.collection}' (dim={self.dimension})")
            return True

        except Exception as e:
            raise self._to_backend_error(e, "ensure_collection")

    def upsert(self, clause_id: str, vector: Sequence[float], metadata: dict[str, Any]) -> str:
        """
        Insert or replace the point for a clause.

        Returns:
            str: Qdrant point id

        Raises:
            BackendError: IndexNotFound or Unavailable
        """
        if len(vector) != self.dimension:
            raise BackendError(
                "Vector dimension does not match collection",
                kind=BackendErrorKind.INVALID_INPUT,
                details={"clause_id": clause_id, "expected": self.dimension, "actual": len(vector)}
            )

        point_id = point_id_for(clause_id)
        payload = {**metadata, CLAUSE_ID_FIELD: clause_id}
        try:
            self._client.upsert(
                collection_name=self.collection,
                points=[PointStruct(id=point_id, vector=list(vector), payload=payload)],
                wait=True
            )
        except Exception as e:
            raise self._to_backend_error(e, "upsert")

        logger.debug(f"Upserted clause {clause_id} as point {point_id}")
        return point_id

    def ping(self) -> bool:
        """True if the Qdrant endpoint answers."""
        try:
            self._client.get_collections()
            return True
        except Exception as e:
            logger.warning(f"Qdrant ping failed: {e}")
            return False
