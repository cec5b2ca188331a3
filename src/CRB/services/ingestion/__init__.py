"""Policy clause ingestion into the vector index."""
from .policy_ingestor import PolicyIngestionService, clause_payload

__all__ = ['PolicyIngestionService', 'clause_payload']
