"""
Centralized configuration management using Pydantic.

This module defines the Settings class which loads and validates application
configuration from environment variables or .env file.

Module Input:
    - Environment variables from OS
    - .env file in project root (optional)
    - Default values defined in class

Module Output:
    - Validated configuration object
    - Helper methods for AWS session arguments and retry tuning

Adapters never read configuration on their own: a Settings instance is
passed to their constructors. get_settings() is meant for composition roots
(API startup, Lambda handler, CLI entry points).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and .env file.

    Attributes:
        AWS Configuration:
            aws_access_key_id (Optional[str]): AWS access key for API calls
            aws_secret_access_key (Optional[str]): AWS secret key
            aws_default_region (str): Default AWS region (default: "us-east-1")
            aws_profile (Optional[str]): Named AWS profile to use

        AWS Bedrock Configuration:
            bedrock_embedding_model_id (str): Titan embedding model ID
            bedrock_llm_model_id (str): Claude model ID used for claim decisions
            embedding_dimension (int): Expected embedding vector length
            embedding_max_chars (int): Input is truncated beyond this length
            llm_max_tokens (int): Max tokens for a decision reply

        Qdrant Configuration:
            qdrant_url (str): Qdrant endpoint URL
            qdrant_api_key (Optional[str]): Qdrant API key
            qdrant_collection (str): Collection holding clause vectors

        Audit Configuration:
            audit_backend (str): "dynamodb" or "memory"
            dynamodb_audit_table (str): Audit table name
            audit_queue_size (int): Max pending audit records before drops

        Retrieval Configuration:
            retrieval_top_k (int): Default number of clauses per claim
            vector_top_k_max (int): Upper clamp for vector queries
            request_timeout_seconds (float): Timeout for each outbound call
            retry_max_attempts (int): Attempts for throttled calls
            retry_base_delay_sec (float): First backoff delay
            retry_max_delay_sec (float): Backoff ceiling

        Corpus Configuration:
            clause_corpus_path (Optional[Path]): Override for bundled dataset

        Logging Configuration:
            log_level (str): Minimum log level (default: "INFO")
            log_dir (Path): Directory for log files (default: "logs")
            log_file (str): Log file name (default: "app.log")
    """

    # ---------------- AWS Configuration ----------------
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_default_region: str = "us-east-1"
    aws_profile: Optional[str] = None

    # ---------------- AWS Bedrock Configuration ----------------
    bedrock_embedding_model_id: str = "amazon.titan-embed-text-v2:0"
    bedrock_llm_model_id: str = "anthropic.claude-3-5-sonnet-20241022-v2:0"
    # Titan Embeddings v2 produces 1024 dimensions by default
    embedding_dimension: int = 1024
    embedding_max_chars: int = 8000
    llm_max_tokens: int = 1024

    # ---------------- Qdrant Configuration ----------------
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: Optional[str] = None
    qdrant_collection: str = "policy-clauses"

    # ---------------- Audit Configuration ----------------
    audit_backend: str = "dynamodb"
    dynamodb_audit_table: str = "ClaimsAuditTrail"
    audit_queue_size: int = 1000

    # ---------------- Retrieval Configuration ----------------
    retrieval_top_k: int = 5
    vector_top_k_max: int = 50
    request_timeout_seconds: float = 8.0
    retry_max_attempts: int = 3
    retry_base_delay_sec: float = 0.5
    retry_max_delay_sec: float = 4.0

    # ---------------- Clause Corpus ----------------
    clause_corpus_path: Optional[Path] = None

    # ---------------- Logging ----------------
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_file: str = "app.log"

    # ---------------- Pydantic Settings ----------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---------------- Helper Methods ----------------
    def get_audit_backend(self) -> str:
        """
        Normalized audit backend name.

        Returns:
            str: "dynamodb" or "memory"

        Raises:
            ConfigError: If backend is not recognized
        """
        backend = self.audit_backend.strip().lower()
        if backend in ("dynamodb", "memory"):
            return backend
        raise ConfigError(
            f"Invalid audit backend: {self.audit_backend}",
            details={"valid_backends": ["dynamodb", "memory"], "provided_backend": self.audit_backend}
        )

    def get_llm_model_id(self) -> str:
        """
        Resolve the Bedrock model ID for claim decisions.

        Claude models need the cross-region inference profile prefix for
        on-demand throughput.

        Example:
            >>> Settings(bedrock_llm_model_id="anthropic.claude-3-haiku").get_llm_model_id()
            'us.anthropic.claude-3-haiku'
        """
        model_id = self.bedrock_llm_model_id
        if model_id.startswith("anthropic.claude"):
            return f"us.{model_id}"
        return model_id

    def get_session_kwargs(self) -> dict[str, str]:
        """
        Build boto3.Session keyword arguments for local runs.

        A named profile wins over explicit keys; with neither, boto3 falls
        back to its default credential chain.
        """
        session_kwargs = {"region_name": self.aws_default_region}
        if self.aws_profile:
            session_kwargs["profile_name"] = self.aws_profile
        elif self.aws_access_key_id and self.aws_secret_access_key:
            session_kwargs["aws_access_key_id"] = self.aws_access_key_id
            session_kwargs["aws_secret_access_key"] = self.aws_secret_access_key
        return session_kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings instance shared by composition roots."""
    return Settings()
