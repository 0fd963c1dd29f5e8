"""Select related code for files under review."""

import asyncio
import contextlib
import logging

from review_context.config import EngineConfig
from review_context.errors import ContextEngineError
from review_context.models import ContextSelection, MatchResult, SourceFile
from review_context.query import DEFAULT_TOP_K, QueryEngine

logger = logging.getLogger(__name__)

DEFAULT_RELEVANCE_THRESHOLD = 0.8
DEFAULT_MAX_RESULTS = 3


def filter_matches(
    file_path: str,
    matches: list[MatchResult],
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[MatchResult]:
    """Drop self-matches and weak matches, then cap the result count.

    Args:
        file_path: Path of the file the matches were retrieved for.
        matches: Raw matches in ranking order.
        threshold: Matches must score strictly above this.
        max_results: Maximum matches kept.

    Returns:
        Surviving matches in their original order.
    """
    related = [match for match in matches if match.filepath != file_path]
    relevant = [match for match in related if match.score > threshold]
    return relevant[:max_results]


class ContextSelector:
    """Finds a small, ranked set of related snippets for each file under review."""

    def __init__(
        self,
        query_engine: QueryEngine,
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
        max_results: int = DEFAULT_MAX_RESULTS,
        max_concurrency: int | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            query_engine: Engine used for the per-file lookups.
            top_k: Raw matches requested per file before filtering.
            threshold: Relevance threshold (strict).
            max_results: Matches kept per file.
            max_concurrency: Optional cap on concurrent lookups.
        """
        self.query_engine = query_engine
        self.top_k = top_k
        self.threshold = threshold
        self.max_results = max_results
        self.max_concurrency = max_concurrency

    @classmethod
    def from_config(cls, config: EngineConfig, query_engine: QueryEngine) -> "ContextSelector":
        return cls(
            query_engine,
            top_k=config.query_top_k,
            threshold=config.relevance_threshold,
            max_results=config.max_results,
            max_concurrency=config.max_concurrency,
        )

    async def select_context(self, files: list[SourceFile]) -> ContextSelection:
        """Select related code for each file.

        Each file is queried with its own content. Files without relevant
        matches are left out of ``contexts``; files whose lookup failed are
        listed in ``failures`` and do not affect the others.

        Args:
            files: Files under review.

        Returns:
            ContextSelection with per-file matches and failures.
        """
        selection = ContextSelection()
        limiter = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else contextlib.nullcontext()

        async def select_for(source_file: SourceFile) -> None:
            if not source_file.content:
                return

            async with limiter:
                try:
                    matches = await self.query_engine.query(source_file.content, k=self.top_k)
                except ContextEngineError as e:
                    logger.error(f"Context lookup failed for {source_file.path}: {e}")
                    selection.failures[source_file.path] = str(e)
                    return

            selected = filter_matches(source_file.path, matches, self.threshold, self.max_results)
            logger.debug(f"{source_file.path}: kept {len(selected)} of {len(matches)} matches")
            if selected:
                selection.contexts[source_file.path] = selected

        await asyncio.gather(*(select_for(source_file) for source_file in files))

        # Report in input order regardless of completion order
        order = {source_file.path: index for index, source_file in enumerate(files)}
        selection.contexts = dict(sorted(selection.contexts.items(), key=lambda item: order[item[0]]))
        return selection
