"""
Core building blocks for the claims RAG system.

Modules:
    settings: Pydantic settings loaded from environment / .env
    exceptions: Exception hierarchy and backend error classification
    logging_config: Console + rotating file logging
    models: Frozen domain models (Clause, ClaimQuery, AuditRecord, ...)
"""
