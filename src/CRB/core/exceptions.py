"""
Custom exceptions for the claims RAG system.

This module defines a hierarchy of domain-specific exceptions so that every
component reports failures through the same interface and the claim
validation pipeline can decide, by type alone, whether a failure is fatal
to a request or must be absorbed into a degraded path.

Module Input:
    - Error conditions from adapters (Bedrock, Qdrant, DynamoDB)
    - Optional error details as dictionaries

Module Output:
    - Structured exception objects with message and details
    - BackendErrorKind classification for backend failures

Propagation Policy:
    - InputError is the only error that may fail a claim request
    - BackendError is absorbed by the retrieval fallback
    - StorageError is logged by the audit dispatcher and never surfaced
    - ConfigError / CorpusError stop the process at startup
"""
from enum import Enum
from typing import Optional, Any


class ClaimsRagError(Exception):
    """
    Base exception for all claims RAG errors.

    Attributes:
        message (str): Human-readable error description
        details (dict[str, Any]): Optional structured error details
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message (str): Human-readable error description
            details (Optional[dict[str, Any]]): Additional structured error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(ClaimsRagError):
    """
    Raised when configuration is invalid or missing.

    Common scenarios:
        - Unknown audit backend name
        - Missing Qdrant URL or DynamoDB table name
        - boto3 session cannot be created
    """
    pass


class InputError(ClaimsRagError):
    """
    Raised when a claim request is malformed.

    Rejected immediately and never retried. This is the only failure kind
    that produces a failed claim response.

    Common scenarios:
        - Empty claim description
        - Non-positive claim amount
        - Unknown policy type
        - top_k below 1
    """
    pass


class BackendErrorKind(str, Enum):
    """Classification of embedding / vector-search failures."""

    UNAVAILABLE = "Unavailable"
    THROTTLED = "Throttled"
    INVALID_INPUT = "InvalidInput"
    INDEX_NOT_FOUND = "IndexNotFound"


class BackendError(ClaimsRagError):
    """
    Raised when an embedding or vector-search call fails.

    The retrieval engine treats every BackendError as "no data" and falls
    back to lexical ranking, so this never reaches the caller of a claim
    validation.

    Attributes:
        kind (BackendErrorKind): Failure classification driving retry decisions
    """

    def __init__(
        self,
        message: str,
        kind: BackendErrorKind = BackendErrorKind.UNAVAILABLE,
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        """Only throttling is worth another attempt."""
        return self.kind == BackendErrorKind.THROTTLED


class StorageError(ClaimsRagError):
    """
    Raised when an audit write or read fails.

    Common scenarios:
        - DynamoDB table missing or access denied
        - Conditional check failed (record already exists)
        - Network timeouts
    """
    pass


class CorpusError(ClaimsRagError):
    """
    Raised when the bundled clause corpus cannot be loaded.

    The corpus is the last line of defense for retrieval, so this error
    stops the process instead of starting in a degraded mode.

    Common scenarios:
        - Dataset file missing
        - Invalid JSON
        - Duplicate clause ids
        - Unknown clause category
    """
    pass
