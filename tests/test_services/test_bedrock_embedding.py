"""Tests for the Bedrock Titan embedding client."""

from __future__ import annotations

import io
import json

import pytest
from botocore.exceptions import EndpointConnectionError

from CRB.core.exceptions import BackendError, BackendErrorKind
from CRB.services.embedding.bedrock_client import BedrockEmbeddingClient
from fakes import bedrock_response, client_error


@pytest.fixture
def embedder(settings, mock_bedrock_runtime, retry_policy) -> BedrockEmbeddingClient:
    return BedrockEmbeddingClient(settings, bedrock_runtime=mock_bedrock_runtime, retry_policy=retry_policy)


def _sent_body(mock_client, call_index=0) -> dict:
    return json.loads(mock_client.invoke_model.call_args_list[call_index].kwargs["body"])


class TestEmbed:
    def test_returns_vector_of_configured_dimension(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": [0.1, 0.2, 0.3]})

        vector = embedder.embed("Rear bumper collision damage")

        assert vector == (0.1, 0.2, 0.3)
        kwargs = mock_bedrock_runtime.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == "amazon.titan-embed-text-v2:0"
        assert _sent_body(mock_bedrock_runtime) == {
            "inputText": "Rear bumper collision damage",
            "dimensions": 3,
            "normalize": True,
        }

    def test_throttled_call_is_retried(self, embedder, mock_bedrock_runtime, sleeps):
        mock_bedrock_runtime.invoke_model.side_effect = [
            client_error("ThrottlingException"),
            bedrock_response({"embedding": [1, 2, 3]}),
        ]

        assert embedder.embed("hail damage") == (1.0, 2.0, 3.0)
        assert mock_bedrock_runtime.invoke_model.call_count == 2
        assert sleeps == [0.5]

    def test_throttling_exhausts_retries(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.side_effect = client_error("ThrottlingException")

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.THROTTLED
        assert mock_bedrock_runtime.invoke_model.call_count == 3

    def test_validation_error_is_not_retried(self, embedder, mock_bedrock_runtime, sleeps):
        mock_bedrock_runtime.invoke_model.side_effect = client_error("ValidationException")

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.INVALID_INPUT
        assert mock_bedrock_runtime.invoke_model.call_count == 1
        assert sleeps == []

    def test_connection_failure_is_unavailable(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.side_effect = EndpointConnectionError(endpoint_url="https://bedrock")

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.UNAVAILABLE

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_rejected_without_call(self, embedder, mock_bedrock_runtime, text):
        with pytest.raises(BackendError) as exc_info:
            embedder.embed(text)

        assert exc_info.value.kind == BackendErrorKind.INVALID_INPUT
        mock_bedrock_runtime.invoke_model.assert_not_called()

    def test_long_text_is_truncated(self, settings, mock_bedrock_runtime, retry_policy):
        settings.embedding_max_chars = 10
        client = BedrockEmbeddingClient(settings, bedrock_runtime=mock_bedrock_runtime, retry_policy=retry_policy)
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": [0, 0, 1]})

        client.embed("x" * 50)

        assert _sent_body(mock_bedrock_runtime)["inputText"] == "x" * 10

    def test_wrong_dimension_is_unavailable(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": [0.1, 0.2]})

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.UNAVAILABLE
        assert exc_info.value.details["actual"] == 2

    def test_v1_model_payload_has_no_dimensions(self, settings, mock_bedrock_runtime, retry_policy):
        settings.bedrock_embedding_model_id = "amazon.titan-embed-text-v1"
        client = BedrockEmbeddingClient(settings, bedrock_runtime=mock_bedrock_runtime, retry_policy=retry_policy)
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": [0, 0, 1]})

        client.embed("hail damage")

        assert _sent_body(mock_bedrock_runtime) == {"inputText": "hail damage"}

    @pytest.mark.parametrize("embedding", [
        [0.1, "abc", 0.3],
        [0.1, None, 0.3],
        [0.1, [0.2], 0.3],
    ])
    def test_non_numeric_values_are_unavailable(self, embedder, mock_bedrock_runtime, embedding):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": embedding})

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.UNAVAILABLE

    def test_non_finite_values_are_unavailable(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.return_value = {
            "body": io.BytesIO(b'{"embedding": [0.1, NaN, 0.3]}')
        }

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.UNAVAILABLE

    def test_embedding_not_a_list_is_unavailable(self, embedder, mock_bedrock_runtime):
        mock_bedrock_runtime.invoke_model.return_value = bedrock_response({"embedding": "0.1,0.2,0.3"})

        with pytest.raises(BackendError) as exc_info:
            embedder.embed("hail damage")

        assert exc_info.value.kind == BackendErrorKind.UNAVAILABLE
