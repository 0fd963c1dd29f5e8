"""Repository enumeration and code-file filtering."""

import asyncio
import logging
from pathlib import PurePosixPath

from review_context.errors import FetchError
from review_context.models import SourceFile
from review_context.providers.base import FileProvider

logger = logging.getLogger(__name__)

# Extensions (without the dot) treated as source code
CODE_EXTENSIONS = frozenset(
    {
        "ts",
        "tsx",
        "js",
        "jsx",
        "py",
        "java",
        "cpp",
        "c",
        "cs",
        "go",
        "rs",
        "php",
        "rb",
        "swift",
        "kt",
    }
)


def is_code_file(path: str) -> bool:
    """Check whether a path has a supported source extension, logging exclusions."""
    suffix = PurePosixPath(path).suffix.lower()
    if not suffix:
        logger.info(f"Filtering out file with no extension: {path}")
        return False

    extension = suffix[1:]
    if extension not in CODE_EXTENSIONS:
        logger.info(f"Filtering out non-code file: {path} (.{extension})")
        return False
    return True


class RepositoryWalker:
    """Enumerates a repository's files through a file provider."""

    def __init__(self, provider: FileProvider) -> None:
        self.provider = provider

    @property
    def repo_key(self) -> str:
        return self.provider.repo_key

    async def list_files(self, root: str = "") -> list[str]:
        """Recursively list every file path under a directory.

        Sibling directories are listed concurrently; the result order is not
        significant.

        Raises:
            FetchError: If any directory in the tree cannot be listed.
        """
        entries = await self.provider.get_tree(root)

        files = [entry.path for entry in entries if entry.type == "file"]
        subtrees = await asyncio.gather(
            *(self.list_files(entry.path) for entry in entries if entry.type == "dir")
        )
        for subtree in subtrees:
            files.extend(subtree)
        return files

    @staticmethod
    def filter_supported(paths: list[str]) -> list[str]:
        """Keep only paths with a supported source extension."""
        return [path for path in paths if is_code_file(path)]

    async def load_file(self, path: str, ref: str | None = None) -> SourceFile | None:
        """Fetch and decode a file.

        Returns:
            The decoded SourceFile, or None if the provider has no such file.

        Raises:
            FetchError: If the provider is unavailable.
        """
        remote = await self.provider.get_file(path, ref)
        if remote is None:
            return None
        try:
            content = remote.decode()
        except ValueError as e:
            raise FetchError(f"Invalid base64 content for {path}: {e}", path=path) from e
        return SourceFile(path=path, content=content, repo_key=self.repo_key)
