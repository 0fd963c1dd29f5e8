"""Chunk, embed and upsert source files into the namespaced vector store."""

import asyncio
import contextlib
import logging
import time
from typing import Callable

from review_context.chunker import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_source_file
from review_context.config import DEFAULT_NAMESPACE, EngineConfig
from review_context.embeddings.client import EmbeddingClient
from review_context.embeddings.vector_store import VectorStore
from review_context.errors import ContextEngineError, EmbeddingError, FetchError, StoreWriteError
from review_context.metadata import build_chunk_metadata
from review_context.models import Chunk, IndexingReport, IndexRecord, SourceFile
from review_context.walker import RepositoryWalker

logger = logging.getLogger(__name__)

EmbeddingHook = Callable[[Chunk, int], None]


def log_embedding(chunk: Chunk, chunk_index: int) -> None:
    """Default observability hook: note each created embedding."""
    path = chunk.source_file.path if chunk.source_file else "<unknown>"
    logger.debug(f"Embedding created for {path} (chunk {chunk_index})")


class Indexer:
    """Turns source files into index records and writes them to the store."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        namespace: str = DEFAULT_NAMESPACE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_concurrency: int | None = None,
        on_embedding: EmbeddingHook | None = log_embedding,
    ) -> None:
        """Initialize the indexer.

        Args:
            embedder: Client used to embed each chunk.
            store: Vector store receiving the records.
            namespace: Namespace all records are written to.
            chunk_size: Maximum chunk length in characters.
            chunk_overlap: Characters shared by consecutive chunks.
            max_concurrency: Optional cap on files indexed at once.
            on_embedding: Called after each chunk is embedded.
        """
        self.embedder = embedder
        self.store = store
        self.namespace = namespace
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_concurrency = max_concurrency
        self.on_embedding = on_embedding

    @classmethod
    def from_config(cls, config: EngineConfig, embedder: EmbeddingClient, store: VectorStore) -> "Indexer":
        return cls(
            embedder,
            store,
            namespace=config.namespace,
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            max_concurrency=config.max_concurrency,
        )

    async def index_file(self, source_file: SourceFile) -> int:
        """Index one file, overwriting any records from a previous run.

        Args:
            source_file: File to index.

        Returns:
            Number of records written.

        Raises:
            EmbeddingError: If any chunk could not be embedded. Nothing is written.
            StoreWriteError: If the batch upsert failed.
        """
        chunks = chunk_source_file(source_file, max_size=self.chunk_size, overlap=self.chunk_overlap)
        if not chunks:
            return 0

        # gather keeps positional order, so chunk_index stays stable
        vectors = await asyncio.gather(
            *(self._embed_chunk(chunk, index) for index, chunk in enumerate(chunks))
        )

        records = [
            IndexRecord(
                id=IndexRecord.make_id(source_file.path, index),
                vector=vector,
                metadata=build_chunk_metadata(chunk, index),
            )
            for index, (chunk, vector) in enumerate(zip(chunks, vectors, strict=True))
        ]

        logger.info(f"Upserting {len(records)} vectors for {source_file.path} under namespace '{self.namespace}'")
        try:
            await self.store.upsert(self.namespace, records)
        except StoreWriteError as e:
            raise StoreWriteError(f"Failed to index {source_file.path}: {e}", path=source_file.path) from e

        return len(records)

    async def _embed_chunk(self, chunk: Chunk, chunk_index: int) -> list[float]:
        path = chunk.source_file.path if chunk.source_file else None
        try:
            vector = await self.embedder.embed_text(chunk.text)
        except EmbeddingError as e:
            raise EmbeddingError(f"Failed to embed chunk {chunk_index} of {path}: {e}", path=path) from e

        if self.on_embedding is not None:
            try:
                self.on_embedding(chunk, chunk_index)
            except Exception as e:
                logger.warning(f"Embedding hook failed for {path}: {e}")

        return vector

    async def index_repository(self, walker: RepositoryWalker, ref: str | None = None) -> IndexingReport:
        """Index every supported file reachable through a walker.

        Files are indexed concurrently. A file that cannot be fetched or has no
        content is skipped; a file whose indexing fails is logged and reported
        without stopping the others.

        Args:
            walker: Walker over the repository's file provider.
            ref: Branch or commit to read files at.

        Returns:
            IndexingReport with processed, skipped and failed counts.

        Raises:
            FetchError: If the repository tree could not be listed.
        """
        start_time = time.time()
        report = IndexingReport()

        paths = await walker.list_files()
        supported = walker.filter_supported(paths)
        report.files_skipped = len(paths) - len(supported)
        logger.info(f"Found {len(paths)} files in {walker.repo_key}, {len(supported)} to index")

        limiter = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else contextlib.nullcontext()

        async def index_path(path: str) -> None:
            async with limiter:
                try:
                    source_file = await walker.load_file(path, ref)
                except FetchError as e:
                    logger.warning(f"Skipping {path}: {e}")
                    report.files_skipped += 1
                    return

                if source_file is None or not source_file.content:
                    logger.info(f"Skipping {path}: no content")
                    report.files_skipped += 1
                    return

                try:
                    written = await self.index_file(source_file)
                except ContextEngineError as e:
                    logger.error(f"Failed to index {path}: {e}")
                    report.failed_files[path] = str(e)
                    return

                report.files_processed += 1
                report.records_written += written

        await asyncio.gather(*(index_path(path) for path in supported))

        report.elapsed_seconds = time.time() - start_time
        logger.info(
            f"Indexed {report.files_processed} files ({report.records_written} records), "
            f"skipped {report.files_skipped}, failed {report.files_failed}"
        )
        return report
