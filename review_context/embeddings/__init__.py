"""Embedding and vector storage clients."""

from review_context.embeddings.client import EmbeddingClient, MockEmbeddingClient
from review_context.embeddings.vector_store import VectorStore

__all__ = [
    "EmbeddingClient",
    "MockEmbeddingClient",
    "VectorStore",
]
