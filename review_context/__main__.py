"""CLI for indexing repositories and selecting review context.

Usage:
    python -m review_context index /path/to/repo
    python -m review_context index --github owner/repo --ref main
    python -m review_context context --changed-files changed_files.txt --output similar_code.md

Environment variables required:
    OPENROUTER_API_KEY - OpenRouter API key for embeddings
    QDRANT_URL - Qdrant Cloud cluster URL
    QDRANT_API_KEY - Qdrant Cloud API key
    GITHUB_TOKEN - GitHub token (only for --github)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from review_context.chunker import chunk_source_file
from review_context.config import EngineConfig, check_env_vars, load_environment
from review_context.embeddings.client import EmbeddingClient
from review_context.embeddings.vector_store import VectorStore
from review_context.errors import ContextEngineError
from review_context.indexer import Indexer
from review_context.providers.base import FileProvider
from review_context.providers.github import GitHubFileProvider
from review_context.providers.local import LocalFileProvider
from review_context.query import QueryEngine
from review_context.selector import ContextSelector
from review_context.walker import RepositoryWalker


def load_config(config_path: str | None) -> EngineConfig:
    """Load engine settings from YAML, or defaults when no file is given."""
    if config_path:
        return EngineConfig.from_yaml(Path(config_path))
    return EngineConfig()


def build_clients(config: EngineConfig) -> tuple[EmbeddingClient, VectorStore]:
    """Construct the shared embedding client and vector store."""
    embedder = EmbeddingClient(model=config.embedding_model)
    dimension = config.embedding_dimension or embedder.dimension
    store = VectorStore(dimension=dimension, collection_name=config.collection_name)
    return embedder, store


def build_provider(args: argparse.Namespace) -> FileProvider:
    if args.github:
        owner, _, repo = args.github.partition("/")
        if not owner or not repo:
            raise ValueError(f"--github expects owner/repo, got '{args.github}'")
        return GitHubFileProvider(owner, repo)
    return LocalFileProvider(Path(args.repo_path))


async def count_chunks_only(walker: RepositoryWalker, config: EngineConfig, ref: str | None) -> int:
    """Dry run: count chunks without embedding."""
    paths = walker.filter_supported(await walker.list_files())
    total = 0
    for path in paths:
        source_file = await walker.load_file(path, ref)
        if source_file is None:
            continue
        total += len(
            chunk_source_file(source_file, max_size=config.chunk_size, overlap=config.chunk_overlap)
        )

    print(f"Found {total} chunks in {len(paths)} code files")
    return total


async def index_command(args: argparse.Namespace, config: EngineConfig) -> int:
    """Index a repository into the vector store."""
    provider = build_provider(args)
    walker = RepositoryWalker(provider)

    try:
        ref = args.ref
        if ref is None and isinstance(provider, GitHubFileProvider):
            ref = await provider.default_branch()

        if args.dry_run:
            await count_chunks_only(walker, config, ref)
            return 0

        embedder, store = build_clients(config)
        indexer = Indexer.from_config(config, embedder, store)
        print(f"Indexing {provider.repo_key} into namespace '{config.namespace}'...")
        try:
            report = await indexer.index_repository(walker, ref=ref)
        finally:
            await store.close()
    finally:
        await provider.close()

    print("\nIndexing complete:")
    print(f"  Files processed: {report.files_processed}")
    print(f"  Files skipped: {report.files_skipped}")
    print(f"  Files failed: {report.files_failed}")
    print(f"  Records written: {report.records_written}")
    print(f"  Time: {report.elapsed_seconds:.1f}s")

    for path, reason in report.failed_files.items():
        print(f"  ✗ {path}: {reason}", file=sys.stderr)

    return 1 if report.failed_files else 0


async def context_command(args: argparse.Namespace, config: EngineConfig) -> int:
    """Select related code for changed files and write it out."""
    changed_list = Path(args.changed_files)
    if not changed_list.exists():
        print(f"Error: {changed_list} not found", file=sys.stderr)
        return 1

    paths = [line.strip() for line in changed_list.read_text().splitlines() if line.strip()]
    walker = RepositoryWalker(LocalFileProvider(Path(args.repo_root)))

    files = []
    for path in walker.filter_supported(paths):
        source_file = await walker.load_file(path)
        if source_file is not None:
            files.append(source_file)

    embedder, store = build_clients(config)
    selector = ContextSelector.from_config(config, QueryEngine(embedder, store, namespace=config.namespace))
    try:
        selection = await selector.select_context(files)
    finally:
        await store.close()

    for path, reason in selection.failures.items():
        print(f"Warning: no context for {path}: {reason}", file=sys.stderr)

    if args.format == "markdown":
        output = selection.format(max_tokens=args.max_tokens)
    else:
        output = json.dumps(selection.to_dict(), indent=2)

    if args.output:
        Path(args.output).write_text(output)
        print(f"Wrote similar code context to {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="Code context retrieval for pull request review")
    parser.add_argument("--config", "-c", help="Path to YAML configuration file")
    parser.add_argument("--env-file", type=Path, help="Path to .env file with credentials")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print detailed progress")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    index_parser = subparsers.add_parser("index", help="Index a repository into the vector store")
    index_parser.add_argument("repo_path", nargs="?", default=".", help="Local repository to index")
    index_parser.add_argument("--github", help="Index a GitHub repository (owner/repo) instead")
    index_parser.add_argument("--ref", help="Branch or commit to index (default: default branch)")
    index_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Just count chunks without generating embeddings",
    )

    context_parser = subparsers.add_parser("context", help="Select related code for changed files")
    context_parser.add_argument(
        "--changed-files",
        required=True,
        help="File containing list of changed files (one per line)",
    )
    context_parser.add_argument("--repo-root", default=".", help="Repository root directory")
    context_parser.add_argument("--output", "-o", help="Output file (default: stdout)")
    context_parser.add_argument("--format", choices=["markdown", "json"], default="markdown")
    context_parser.add_argument("--max-tokens", type=int, default=8000, help="Token budget for markdown")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_environment(args.env_file)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    dry_run = args.command == "index" and args.dry_run
    if not dry_run:
        missing = check_env_vars(["GITHUB_TOKEN"] if getattr(args, "github", None) else None)
        if missing:
            print("Error: Missing required environment variables:", file=sys.stderr)
            for var in missing:
                print(f"  - {var}", file=sys.stderr)
            print("\nSet these in your environment or a .env file.", file=sys.stderr)
            return 1

    command = index_command if args.command == "index" else context_command
    try:
        return asyncio.run(command(args, config))
    except (ContextEngineError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
