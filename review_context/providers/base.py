"""Base class for repository file providers."""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class TreeEntry:
    """A file or directory listed by a provider."""

    type: Literal["file", "dir"]
    path: str
    content: str | None = None


@dataclass(frozen=True)
class RemoteFile:
    """A fetched file.

    Attributes:
        content: Base64-encoded file content.
        sha: Blob SHA of the file at the requested ref.
    """

    content: str
    sha: str

    def decode(self) -> str:
        """Decode base64 content to text, replacing invalid UTF-8."""
        return base64.b64decode(self.content).decode("utf-8", errors="replace")


class FileProvider(ABC):
    """Abstract source of repository trees and file contents.

    Attributes:
        repo_key: Repository identifier in ``owner/repo`` form.
    """

    repo_key: str

    @abstractmethod
    async def get_tree(self, path: str = "") -> list[TreeEntry]:
        """List the entries directly under a directory.

        Raises:
            FetchError: If the directory cannot be listed.
        """
        pass

    @abstractmethod
    async def get_file(self, path: str, ref: str | None = None) -> RemoteFile | None:
        """Fetch a file at a ref.

        Returns:
            The file, or None if it does not exist or is not a regular file.

        Raises:
            FetchError: If the provider is unavailable.
        """
        pass

    async def close(self) -> None:
        """Release provider resources."""
        return None
