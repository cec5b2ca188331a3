"""
Services for the claims RAG system.

This package contains the adapters (Bedrock, Qdrant, DynamoDB) and the
orchestration built on top of them.

Modules:
    aws_session: boto3 session/client creation with timeouts
    retry: Exponential backoff for throttled backend calls
    bedrock_errors: botocore error classification
    embedding: Titan embeddings
    vector: Qdrant clause index
    corpus: Static clause corpus loading
    retrieval: Vector retrieval with lexical fallback
    decision: Claude decision, business rules, citation and contradiction checks
    audit: Append-only audit trail and background dispatch
    validation: Claim validation orchestration
    ingestion: Clause indexing into Qdrant
    security: Prompt-injection screening and PII masking
    factory: Composition root
"""
