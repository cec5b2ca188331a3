"""
Bedrock Titan embedding client.

Turns claim descriptions and clause texts into fixed-length vectors via
`bedrock-runtime.invoke_model`.

Input policy:
    - Empty or whitespace-only text is rejected (InvalidInput) without a call
    - Text longer than `embedding_max_chars` is truncated with a warning

Failure policy:
    - Throttled calls are retried by RetryPolicy with exponential backoff
    - Unavailable / InvalidInput errors propagate on the first occurrence
"""

from __future__ import annotations

import json
import math
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from CRB.core.exceptions import BackendError, BackendErrorKind
from CRB.core.logging_config import get_logger
from CRB.core.settings import Settings
from CRB.services.aws_session import create_client
from CRB.services.bedrock_errors import to_backend_error
from CRB.services.retry import RetryPolicy

logger = get_logger(__name__)


class BedrockEmbeddingClient:
    """
    Embedding adapter for Amazon Titan text embeddings.

    Attributes:
        model_id (str): Bedrock embedding model ID
        dimension (int): Expected vector length
        max_chars (int): Truncation limit for input text

    Thread Safety:
        boto3 clients are thread-safe; one instance may serve concurrent
        requests.
    """

    def __init__(
        self,
        settings: Settings,
        bedrock_runtime=None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        """
        Initialize the embedding client.

        Args:
            settings: Application settings (model ID, dimension, timeouts)
            bedrock_runtime: Optional pre-built bedrock-runtime client
            retry_policy: Optional retry policy for throttled calls
        """
        self.model_id = settings.bedrock_embedding_model_id
        self.dimension = settings.embedding_dimension
        self.max_chars = settings.embedding_max_chars
        self._client = bedrock_runtime or create_client("bedrock-runtime", settings)
        self._retry = retry_policy or RetryPolicy.from_settings(settings)

        logger.info(
            f"Initialized BedrockEmbeddingClient: model={self.model_id}, dimension={self.dimension}"
        )

    def _build_payload(self, text: str) -> dict:
        payload = {"inputText": text}
        # Titan v2 accepts an explicit output size; v1 does not
        if "titan-embed-text-v2" in self.model_id:
            payload["dimensions"] = self.dimension
            payload["normalize"] = True
        return payload

    def _prepare_text(self, text: str) -> str:
        if text is None or not text.strip():
            raise BackendError(
                "Cannot embed empty text",
                kind=BackendErrorKind.INVALID_INPUT,
                details={"model_id": self.model_id}
            )
        text = text.strip()
        if len(text) > self.max_chars:
            logger.warning(
                f"Text truncated from {len(text)} to {self.max_chars} chars before embedding"
            )
            text = text[:self.max_chars]
        return text

    def _invoke(self, text: str) -> tuple[float, ...]:
        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(self._build_payload(text)),
                contentType="application/json",
                accept="application/json"
            )
            result = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as e:
            raise to_backend_error(e, "Embedding", self.model_id)
        except (KeyError, ValueError) as e:
            raise BackendError(
                "Malformed embedding response",
                kind=BackendErrorKind.UNAVAILABLE,
                details={"model_id": self.model_id, "error": str(e)}
            )

        embedding = result.get("embedding") if isinstance(result, dict) else None
        if not isinstance(embedding, list) or len(embedding) != self.dimension:
            raise BackendError(
                "Embedding has unexpected dimension",
                kind=BackendErrorKind.UNAVAILABLE,
                details={
                    "model_id": self.model_id,
                    "expected": self.dimension,
                    "actual": len(embedding) if isinstance(embedding, list) else 0
                }
            )

        try:
            vector = tuple(float(v) for v in embedding)
        except (TypeError, ValueError) as e:
            raise BackendError(
                "Embedding contains non-numeric values",
                kind=BackendErrorKind.UNAVAILABLE,
                details={"model_id": self.model_id, "error": str(e)}
            )
        if not all(math.isfinite(v) for v in vector):
            raise BackendError(
                "Embedding contains non-finite values",
                kind=BackendErrorKind.UNAVAILABLE,
                details={"model_id": self.model_id}
            )
        return vector

    def embed(self, text: str) -> tuple[float, ...]:
        """
        Generate an embedding for text.

        Args:
            text: Non-empty text to embed

        Returns:
            tuple[float, ...]: Vector of length `dimension`

        Raises:
            BackendError: Unavailable, Throttled (after retries) or InvalidInput
        """
        prepared = self._prepare_text(text)
        vector = self._retry.call(lambda: self._invoke(prepared), operation="Embedding")
        logger.debug(f"Generated embedding for {len(prepared)} chars")
        return vector
