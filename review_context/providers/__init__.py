"""Repository file providers."""

from review_context.providers.base import FileProvider, RemoteFile, TreeEntry
from review_context.providers.github import GitHubFileProvider
from review_context.providers.local import LocalFileProvider

__all__ = [
    "FileProvider",
    "GitHubFileProvider",
    "LocalFileProvider",
    "RemoteFile",
    "TreeEntry",
]
