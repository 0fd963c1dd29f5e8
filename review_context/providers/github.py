"""GitHub REST API file provider."""

import logging
import os
from urllib.parse import quote

import httpx

from review_context.errors import FetchError
from review_context.providers.base import FileProvider, RemoteFile, TreeEntry

logger = logging.getLogger(__name__)


class GitHubFileProvider(FileProvider):
    """Reads repository trees and files through the GitHub contents API."""

    GITHUB_API_URL = "https://api.github.com"
    API_VERSION = "2022-11-28"

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            owner: Repository owner.
            repo: Repository name.
            token: GitHub token. Falls back to GITHUB_TOKEN env var.
            http_client: Optional shared HTTP client.
            base_url: API base URL, for GitHub Enterprise.
        """
        self.owner = owner
        self.repo = repo
        self.repo_key = f"{owner}/{repo}"
        self.token = token or os.environ.get("GITHUB_TOKEN", "")
        self.base_url = (base_url or self.GITHUB_API_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=30.0)

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _contents_url(self, path: str) -> str:
        quoted = quote(path.strip("/"))
        return f"{self.base_url}/repos/{self.owner}/{self.repo}/contents/{quoted}"

    async def _get(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            return await self._client.get(url, headers=self.headers, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"GitHub request failed for {url}: {e}") from e

    async def get_tree(self, path: str = "") -> list[TreeEntry]:
        """List a directory through the contents API."""
        response = await self._get(self._contents_url(path))
        if response.status_code != 200:
            raise FetchError(
                f"Could not list '{path or '/'}' in {self.repo_key}: "
                f"HTTP {response.status_code} {response.text}",
                path=path,
            )

        data = response.json()
        items = data if isinstance(data, list) else [data]
        entries: list[TreeEntry] = []
        for item in items:
            if item.get("type") in ("file", "dir"):
                entries.append(TreeEntry(type=item["type"], path=item["path"], content=item.get("content")))
        return entries

    async def get_file(self, path: str, ref: str | None = None) -> RemoteFile | None:
        """Fetch a file's base64 content, or None when it is missing or not a file."""
        params = {"ref": ref} if ref else None
        response = await self._get(self._contents_url(path), params=params)

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise FetchError(
                f"Could not fetch '{path}' from {self.repo_key}: HTTP {response.status_code}",
                path=path,
            )

        data = response.json()
        # Directories come back as lists, submodules and symlinks without content
        if isinstance(data, list) or "content" not in data:
            return None
        return RemoteFile(content=data["content"].replace("\n", ""), sha=data.get("sha", ""))

    async def default_branch(self) -> str:
        """Return the repository's default branch name."""
        response = await self._get(f"{self.base_url}/repos/{self.owner}/{self.repo}")
        if response.status_code != 200:
            raise FetchError(f"Could not read repository {self.repo_key}: HTTP {response.status_code}")
        return response.json()["default_branch"]

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
