"""Nearest-neighbor lookup of indexed code."""

from review_context.config import DEFAULT_NAMESPACE
from review_context.embeddings.client import EmbeddingClient
from review_context.embeddings.vector_store import VectorStore
from review_context.models import MatchResult, StoreMatch

DEFAULT_TOP_K = 20


class QueryEngine:
    """Embeds query text and searches the fixed code namespace."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.namespace = namespace

    async def query(self, text: str, k: int = DEFAULT_TOP_K) -> list[MatchResult]:
        """Find the k indexed chunks most similar to a text.

        Results keep the store's ranking order; nothing is re-sorted or
        de-duplicated here.

        Args:
            text: Query text, usually a file's contents.
            k: Number of matches to request.

        Returns:
            Matches, highest score first.

        Raises:
            EmbeddingError: If the query text could not be embedded.
            StoreQueryError: If the store lookup failed.
        """
        vector = await self.embedder.embed_text(text)
        hits = await self.store.query(self.namespace, vector, top_k=k, include_metadata=True)
        return [self._to_match(hit) for hit in hits]

    @staticmethod
    def _to_match(hit: StoreMatch) -> MatchResult:
        metadata = hit.metadata
        return MatchResult(
            content=metadata.get("content", ""),
            filepath=metadata.get("filepath", ""),
            repo=metadata.get("repo", ""),
            score=hit.score,
            line_range=metadata.get("line_range"),
        )
