"""Tests for local and GitHub file providers."""

import base64
from pathlib import Path

import httpx
import pytest

from review_context.errors import FetchError
from review_context.providers.github import GitHubFileProvider
from review_context.providers.local import LocalFileProvider


class TestLocalFileProvider:
    """Tests for the filesystem provider."""

    @pytest.mark.asyncio
    async def test_get_tree(self, tmp_path: Path) -> None:
        """Directories and files are listed with repo-relative paths."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.py").write_text("print('hi')\n")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "setup.cfg").write_text("")

        provider = LocalFileProvider(tmp_path, repo_key="acme/widgets")
        root = await provider.get_tree()
        nested = await provider.get_tree("src")

        assert [(e.type, e.path) for e in root] == [("file", "setup.cfg"), ("dir", "src")]
        assert [(e.type, e.path) for e in nested] == [("file", "src/app.py")]

    @pytest.mark.asyncio
    async def test_get_file(self, tmp_path: Path) -> None:
        """Content is base64-encoded and the sha matches git's blob sha."""
        (tmp_path / "hello.txt").write_text("hello\n")
        provider = LocalFileProvider(tmp_path)
        remote = await provider.get_file("hello.txt")

        assert remote is not None
        assert base64.b64decode(remote.content) == b"hello\n"
        assert remote.sha == "ce013625030ba8dba906f756967f9e9ca394464a"
        assert remote.decode() == "hello\n"

    @pytest.mark.asyncio
    async def test_missing_file_and_directory(self, tmp_path: Path) -> None:
        """Missing paths and directories are not files."""
        (tmp_path / "src").mkdir()
        provider = LocalFileProvider(tmp_path)

        assert await provider.get_file("absent.py") is None
        assert await provider.get_file("src") is None

    @pytest.mark.asyncio
    async def test_rejects_escaping_paths(self, tmp_path: Path) -> None:
        """Paths outside the root are refused."""
        provider = LocalFileProvider(tmp_path / "repo")
        (tmp_path / "repo").mkdir()

        with pytest.raises(FetchError):
            await provider.get_file("../secret.py")

    @pytest.mark.asyncio
    async def test_unlistable_directory(self, tmp_path: Path) -> None:
        """Listing a missing directory raises FetchError."""
        provider = LocalFileProvider(tmp_path)

        with pytest.raises(FetchError):
            await provider.get_tree("missing")

    def test_default_repo_key(self, tmp_path: Path) -> None:
        assert LocalFileProvider(tmp_path).repo_key == f"local/{tmp_path.name}"


def _github_provider(handler) -> GitHubFileProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubFileProvider("acme", "widgets", token="ghp_test", http_client=client)


class TestGitHubFileProvider:
    """Tests for the GitHub contents API provider."""

    @pytest.mark.asyncio
    async def test_get_tree(self) -> None:
        """Directory listings are mapped to tree entries."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[
                    {"type": "file", "path": "src/app.ts", "name": "app.ts"},
                    {"type": "dir", "path": "src/lib", "name": "lib"},
                    {"type": "symlink", "path": "src/link", "name": "link"},
                ],
            )

        provider = _github_provider(handler)
        entries = await provider.get_tree("src")

        assert [(e.type, e.path) for e in entries] == [("file", "src/app.ts"), ("dir", "src/lib")]
        assert seen[0].url.path == "/repos/acme/widgets/contents/src"
        assert seen[0].headers["Authorization"] == "Bearer ghp_test"
        assert seen[0].headers["X-GitHub-Api-Version"] == "2022-11-28"

    @pytest.mark.asyncio
    async def test_get_tree_failure(self) -> None:
        """A listing error surfaces as FetchError."""
        provider = _github_provider(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(FetchError):
            await provider.get_tree()

    @pytest.mark.asyncio
    async def test_get_file(self) -> None:
        """File content keeps its base64 form and the ref is sent."""
        encoded = base64.b64encode(b"export const x = 1;\n").decode()
        wrapped = encoded[:10] + "\n" + encoded[10:]
        refs: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            refs.append(request.url.params.get("ref"))
            return httpx.Response(200, json={"type": "file", "content": wrapped, "sha": "abc123"})

        provider = _github_provider(handler)
        remote = await provider.get_file("src/x.ts", ref="main")

        assert remote is not None
        assert remote.sha == "abc123"
        assert remote.decode() == "export const x = 1;\n"
        assert refs == ["main"]

    @pytest.mark.asyncio
    async def test_get_file_not_found(self) -> None:
        """A 404 means no content, not an error."""
        provider = _github_provider(lambda request: httpx.Response(404, json={"message": "Not Found"}))

        assert await provider.get_file("gone.ts") is None

    @pytest.mark.asyncio
    async def test_get_file_directory(self) -> None:
        """A directory listing is not a file."""
        provider = _github_provider(lambda request: httpx.Response(200, json=[]))

        assert await provider.get_file("src") is None

    @pytest.mark.asyncio
    async def test_get_file_connection_error(self) -> None:
        """Transport failures surface as FetchError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        provider = _github_provider(handler)

        with pytest.raises(FetchError):
            await provider.get_file("src/x.ts")

    @pytest.mark.asyncio
    async def test_default_branch(self) -> None:
        provider = _github_provider(lambda request: httpx.Response(200, json={"default_branch": "trunk"}))

        assert await provider.default_branch() == "trunk"
