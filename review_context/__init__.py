"""Code context retrieval for automated pull request review."""

from review_context.chunker import chunk_source_file, split_text
from review_context.config import EngineConfig
from review_context.errors import (
    ContextEngineError,
    EmbeddingError,
    FetchError,
    StoreQueryError,
    StoreWriteError,
)
from review_context.indexer import Indexer
from review_context.metadata import build_chunk_metadata, extract_function_metadata
from review_context.models import (
    Chunk,
    ChunkMetadata,
    ContextSelection,
    IndexingReport,
    IndexRecord,
    MatchResult,
    SourceFile,
)
from review_context.query import QueryEngine
from review_context.selector import ContextSelector, filter_matches
from review_context.walker import RepositoryWalker

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ContextEngineError",
    "ContextSelection",
    "ContextSelector",
    "EmbeddingError",
    "EngineConfig",
    "FetchError",
    "IndexRecord",
    "Indexer",
    "IndexingReport",
    "MatchResult",
    "QueryEngine",
    "RepositoryWalker",
    "SourceFile",
    "StoreQueryError",
    "StoreWriteError",
    "build_chunk_metadata",
    "chunk_source_file",
    "extract_function_metadata",
    "filter_matches",
    "split_text",
]
