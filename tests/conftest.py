"""Pytest configuration and shared fixtures for context engine tests."""

import base64
import hashlib
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from qdrant_client import AsyncQdrantClient

from review_context.embeddings.client import MockEmbeddingClient
from review_context.embeddings.vector_store import VectorStore
from review_context.errors import FetchError
from review_context.models import SourceFile
from review_context.providers.base import FileProvider, RemoteFile, TreeEntry

DIMENSION = 512
REPO_KEY = "acme/widgets"


class InMemoryFileProvider(FileProvider):
    """File provider serving a dict of path -> content."""

    def __init__(
        self,
        files: dict[str, str],
        repo_key: str = REPO_KEY,
        unlistable: set[str] | None = None,
        unreachable: set[str] | None = None,
    ) -> None:
        self.files = files
        self.repo_key = repo_key
        self.unlistable = unlistable or set()
        self.unreachable = unreachable or set()
        self.fetched: list[tuple[str, str | None]] = []

    async def get_tree(self, path: str = "") -> list[TreeEntry]:
        if path in self.unlistable:
            raise FetchError(f"Could not list {path}", path=path)

        prefix = f"{path}/" if path else ""
        entries: dict[str, TreeEntry] = {}
        for file_path in self.files:
            if not file_path.startswith(prefix):
                continue
            head, sep, _ = file_path[len(prefix) :].partition("/")
            child = prefix + head
            entries[child] = TreeEntry(type="dir" if sep else "file", path=child)
        return list(entries.values())

    async def get_file(self, path: str, ref: str | None = None) -> RemoteFile | None:
        self.fetched.append((path, ref))
        if path in self.unreachable:
            raise FetchError(f"Provider unavailable for {path}", path=path)
        if path not in self.files:
            return None
        data = self.files[path].encode()
        return RemoteFile(content=base64.b64encode(data).decode(), sha=hashlib.sha1(data).hexdigest())


def make_source_file(path: str, content: str, repo_key: str = REPO_KEY) -> SourceFile:
    """Build a SourceFile for tests."""
    return SourceFile(path=path, content=content, repo_key=repo_key)


def numbered_lines(count: int, width: int = 40) -> str:
    """Text of ``count`` distinct lines without a trailing newline."""
    return "\n".join(f"line {i}: " + "x" * width for i in range(1, count + 1))


@pytest.fixture
def embedder() -> MockEmbeddingClient:
    """Offline embedding client."""
    return MockEmbeddingClient(dimension=DIMENSION)


@pytest_asyncio.fixture
async def store() -> AsyncIterator[VectorStore]:
    """Vector store backed by an in-process Qdrant instance."""
    vector_store = VectorStore(
        dimension=DIMENSION,
        collection_name="test_code_chunks",
        client=AsyncQdrantClient(location=":memory:"),
    )
    yield vector_store
    await vector_store.close()
