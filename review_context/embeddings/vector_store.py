"""Qdrant-backed namespaced vector store for code chunk embeddings.

Namespaces partition a single collection: every point carries its namespace as
a keyword payload field and every query is filtered on it. Requires QDRANT_URL
and QDRANT_API_KEY environment variables unless a client is injected.
"""

import asyncio
import hashlib
import logging
import os
import uuid

from dotenv import load_dotenv
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from review_context.errors import StoreQueryError, StoreWriteError
from review_context.models import IndexRecord, StoreMatch

logger = logging.getLogger(__name__)

# Payload keys reserved by the store, never returned as chunk metadata
NAMESPACE_KEY = "namespace"
RECORD_ID_KEY = "record_id"


def _string_to_uuid(s: str) -> str:
    """Convert any string to a valid UUID by hashing it.

    Qdrant point IDs must be unsigned integers or UUIDs.
    """
    hash_bytes = hashlib.md5(s.encode()).digest()
    return str(uuid.UUID(bytes=hash_bytes))


def point_id(namespace: str, record_id: str) -> str:
    """Deterministic Qdrant point ID for a record within a namespace."""
    return _string_to_uuid(f"{namespace}\x00{record_id}")


class VectorStore:
    """Namespaced nearest-neighbor store backed by a Qdrant collection."""

    def __init__(
        self,
        dimension: int,
        collection_name: str = "code-embeddings",
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the vector store.

        Args:
            dimension: Dimension of embedding vectors.
            collection_name: Name of the Qdrant collection.
            client: Optional pre-built client, e.g. ``AsyncQdrantClient(":memory:")``.

        Raises:
            ValueError: If no client is given and QDRANT_URL or QDRANT_API_KEY is not set.
        """
        if client is None:
            load_dotenv()
            url = os.environ.get("QDRANT_URL")
            api_key = os.environ.get("QDRANT_API_KEY")

            if not url or not api_key:
                raise ValueError("QDRANT_URL and QDRANT_API_KEY must be set in environment")

            client = AsyncQdrantClient(url=url, api_key=api_key)

        self.client = client
        self.collection = collection_name
        self.dimension = dimension
        self._ready = False
        self._ready_lock = asyncio.Lock()

    async def _ensure_collection(self) -> None:
        """Create the collection and its namespace index if they don't exist."""
        if self._ready:
            return

        async with self._ready_lock:
            if self._ready:
                return
            if not await self.client.collection_exists(self.collection):
                await self.client.create_collection(
                    collection_name=self.collection,
                    vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
                )
                await self.client.create_payload_index(
                    collection_name=self.collection,
                    field_name=NAMESPACE_KEY,
                    field_schema=PayloadSchemaType.KEYWORD,
                )
                logger.info(f"Created collection '{self.collection}' ({self.dimension} dimensions)")
            self._ready = True

    async def upsert(self, namespace: str, records: list[IndexRecord]) -> None:
        """Upsert records into a namespace in a single batch.

        Args:
            namespace: Namespace to write to.
            records: Records to write. Existing records with the same ID are overwritten.

        Raises:
            StoreWriteError: If the batch could not be written.
        """
        if not records:
            return

        points = [
            PointStruct(
                id=point_id(namespace, record.id),
                vector=record.vector,
                payload={
                    **record.metadata.to_payload(),
                    NAMESPACE_KEY: namespace,
                    RECORD_ID_KEY: record.id,
                },
            )
            for record in records
        ]

        try:
            await self._ensure_collection()
            await self.client.upsert(collection_name=self.collection, points=points, wait=True)
        except Exception as e:
            raise StoreWriteError(
                f"Failed to upsert {len(points)} points into namespace '{namespace}': {e}"
            ) from e

        logger.debug(f"Upserted {len(points)} points under namespace '{namespace}'")

    async def query(
        self,
        namespace: str,
        vector: list[float],
        top_k: int,
        include_metadata: bool = True,
    ) -> list[StoreMatch]:
        """Find the records most similar to a vector within one namespace.

        Args:
            namespace: Namespace to search.
            vector: Query vector.
            top_k: Maximum number of matches.
            include_metadata: Return stored metadata with each match.

        Returns:
            Matches in the store's ranking order, most similar first.

        Raises:
            StoreQueryError: If the lookup fails.
        """
        try:
            await self._ensure_collection()
            response = await self.client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=top_k,
                query_filter=self._namespace_filter(namespace),
                with_payload=True,
            )
        except Exception as e:
            raise StoreQueryError(f"Query against namespace '{namespace}' failed: {e}") from e

        matches: list[StoreMatch] = []
        for hit in response.points:
            payload = dict(hit.payload or {})
            record_id = str(payload.pop(RECORD_ID_KEY, hit.id))
            payload.pop(NAMESPACE_KEY, None)
            matches.append(
                StoreMatch(
                    id=record_id,
                    score=hit.score,
                    metadata=payload if include_metadata else {},
                )
            )
        return matches

    async def count(self, namespace: str) -> int:
        """Return the number of records stored in a namespace."""
        try:
            await self._ensure_collection()
            result = await self.client.count(
                collection_name=self.collection,
                count_filter=self._namespace_filter(namespace),
                exact=True,
            )
        except Exception as e:
            raise StoreQueryError(f"Count for namespace '{namespace}' failed: {e}") from e
        return result.count

    async def clear(self) -> None:
        """Drop and recreate the collection."""
        if await self.client.collection_exists(self.collection):
            await self.client.delete_collection(self.collection)
        self._ready = False
        await self._ensure_collection()

    async def close(self) -> None:
        """Close the underlying client."""
        await self.client.close()

    @staticmethod
    def _namespace_filter(namespace: str) -> Filter:
        return Filter(must=[FieldCondition(key=NAMESPACE_KEY, match=MatchValue(value=namespace))])
