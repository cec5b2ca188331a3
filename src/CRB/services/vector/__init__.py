"""Vector search over policy clauses (Qdrant)."""
from .qdrant_index import QdrantVectorIndex, point_id_for

__all__ = ['QdrantVectorIndex', 'point_id_for']
