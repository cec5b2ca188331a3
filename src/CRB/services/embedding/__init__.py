"""Embedding generation via Amazon Bedrock."""
from .bedrock_client import BedrockEmbeddingClient

__all__ = ['BedrockEmbeddingClient']
