"""Filesystem-backed file provider for local checkouts."""

import base64
import hashlib
from pathlib import Path

from review_context.errors import FetchError
from review_context.providers.base import FileProvider, RemoteFile, TreeEntry

# Directories never worth walking in a checkout
IGNORED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "target"}


class LocalFileProvider(FileProvider):
    """Serves a local directory with the same contract as a hosted provider.

    The ``ref`` argument is ignored: the working tree is always read as-is.
    """

    def __init__(self, root: Path, repo_key: str | None = None) -> None:
        self.root = Path(root).resolve()
        self.repo_key = repo_key or f"local/{self.root.name}"

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise FetchError(f"Path escapes repository root: {path}", path=path)
        return target

    async def get_tree(self, path: str = "") -> list[TreeEntry]:
        directory = self._resolve(path)
        try:
            children = sorted(directory.iterdir())
        except OSError as e:
            raise FetchError(f"Could not list '{path or '/'}': {e}", path=path) from e

        entries: list[TreeEntry] = []
        for child in children:
            rel_path = child.relative_to(self.root).as_posix()
            if child.is_dir():
                if child.name not in IGNORED_DIRS:
                    entries.append(TreeEntry(type="dir", path=rel_path))
            elif child.is_file():
                entries.append(TreeEntry(type="file", path=rel_path))
        return entries

    async def get_file(self, path: str, ref: str | None = None) -> RemoteFile | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        try:
            data = target.read_bytes()
        except OSError as e:
            raise FetchError(f"Could not read '{path}': {e}", path=path) from e

        # Same blob SHA git would report for this content
        sha = hashlib.sha1(b"blob %d\x00" % len(data) + data).hexdigest()
        return RemoteFile(content=base64.b64encode(data).decode("ascii"), sha=sha)
