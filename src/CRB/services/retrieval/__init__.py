"""Clause retrieval with vector search and lexical fallback."""
from .engine import RetrievalEngine
from .lexical import rank_by_overlap, tokenize

__all__ = ['RetrievalEngine', 'rank_by_overlap', 'tokenize']
