"""Embedding client for generating vector embeddings via OpenRouter."""

import asyncio
import hashlib
import logging
import os
import random
import re
from functools import wraps
from typing import Callable, ClassVar, TypeVar

import httpx

from review_context.errors import EmbeddingError

# Type variable for async functions
F = TypeVar("F", bound=Callable)

logger = logging.getLogger(__name__)


class RateLimitError(EmbeddingError):
    """Raised when API rate limit is exceeded (HTTP 429)."""

    pass


class ServerError(EmbeddingError):
    """Raised when server returns 5xx error."""

    pass


class EmbeddingTimeoutError(EmbeddingError):
    """Raised when a request times out or the connection fails."""

    pass


def with_retry(max_retries: int = 3, base_delay: float = 1.0) -> Callable[[F], F]:
    """Decorator that adds exponential backoff retry logic to async functions.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 1.0)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):  # +1 for initial attempt
                try:
                    return await func(*args, **kwargs)
                except (RateLimitError, ServerError, EmbeddingTimeoutError, httpx.TimeoutException) as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Function {func.__name__} failed after {max_retries} retries. "
                            f"Final error: {e}"
                        )
                        raise

                    # Exponential backoff with jitter
                    delay = base_delay * (2**attempt) + random.uniform(0, 1)

                    logger.warning(
                        f"Function {func.__name__} failed on attempt {attempt + 1}/{max_retries + 1}. "
                        f"Error: {e}. Retrying in {delay:.2f} seconds..."
                    )

                    await asyncio.sleep(delay)
                except Exception as e:
                    logger.error(f"Function {func.__name__} failed with non-retryable error: {e}")
                    raise

        return wrapper  # type: ignore

    return decorator


class EmbeddingClient:
    """Client for generating embeddings via OpenRouter.

    One client is constructed per process and shared by the indexer and the
    query engine. Pass ``http_client`` to reuse a connection pool; otherwise a
    short-lived client is opened per request.
    """

    DEFAULT_MODEL = "qwen/qwen3-embedding-8b"
    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    # Model dimension mapping
    MODEL_DIMENSIONS: ClassVar[dict[str, int]] = {
        "qwen/qwen3-embedding-8b": 4096,
        "openai/text-embedding-3-small": 1536,
        "openai/text-embedding-3-large": 3072,
        "sentence-transformers/all-minilm-l6-v2": 384,
    }

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        max_input_chars: int = 8000,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the embedding client.

        Args:
            api_key: OpenRouter API key. Falls back to OPENROUTER_API_KEY env var.
            model: Model to use for embeddings.
            http_client: Optional shared HTTP client.
            max_input_chars: Texts are truncated to this many characters before embedding.
            timeout: Request timeout in seconds when no shared client is given.
        """
        self.api_key = api_key or os.environ.get("OPENROUTER_API_KEY", "")
        self.model = model or self.DEFAULT_MODEL
        self.max_input_chars = max_input_chars
        self.timeout = timeout
        self._http_client = http_client
        self._dimension: int | None = None

    @property
    def dimension(self) -> int:
        """Get the embedding dimension for the current model."""
        if self._dimension is None:
            self._dimension = self.MODEL_DIMENSIONS.get(self.model, 4096)
        return self._dimension

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text string.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.

        Raises:
            EmbeddingError: If the API key is missing or the call fails.
        """
        if not self.api_key:
            raise EmbeddingError("OPENROUTER_API_KEY environment variable not set")

        embeddings = await self._embed_batch([text[: self.max_input_chars]])
        return embeddings[0]

    @with_retry(max_retries=3, base_delay=1.0)
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts via OpenRouter API.

        Args:
            texts: List of texts to embed.

        Returns:
            List of embedding vectors.

        Raises:
            RateLimitError: When API rate limit is exceeded (HTTP 429)
            ServerError: When server returns 5xx error
            EmbeddingTimeoutError: When request times out or cannot connect
            EmbeddingError: For other API-related errors
        """
        try:
            response = await self._post({"model": self.model, "input": texts})

            if response.status_code == 429:
                raise RateLimitError(f"Rate limit exceeded: {response.text}")
            elif 500 <= response.status_code < 600:
                raise ServerError(f"Server error {response.status_code}: {response.text}")
            elif response.status_code != 200:
                raise EmbeddingError(f"API error {response.status_code}: {response.text}")

            data = response.json()
            embeddings = [item["embedding"] for item in data["data"]]
            if len(embeddings) != len(texts):
                raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(embeddings)}")
            return embeddings

        except httpx.TimeoutException as e:
            raise EmbeddingTimeoutError(f"Request timed out: {e}") from e
        except httpx.ConnectError as e:
            raise EmbeddingTimeoutError(f"Connection error: {e}") from e
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Unexpected error during embedding: {e}") from e

    async def _post(self, payload: dict) -> httpx.Response:
        """Send an embeddings request, reusing the shared client when present."""
        url = f"{self.OPENROUTER_BASE_URL}/embeddings"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._http_client is not None:
            return await self._http_client.post(url, headers=headers, json=payload)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, headers=headers, json=payload)


class MockEmbeddingClient(EmbeddingClient):
    """Offline embedding client for tests and dry runs.

    Vectors are normalized bags of hashed word tokens, so texts that share most
    of their tokens score close to 1.0 under cosine similarity.
    """

    TOKEN_PATTERN = re.compile(r"\w+")

    def __init__(self, dimension: int = 384) -> None:
        """Initialize mock client.

        Args:
            dimension: Dimension of fake embeddings to generate.
        """
        super().__init__(api_key="mock", model="mock")
        self._dimension = dimension
        self.calls: list[str] = []

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate deterministic embeddings from token hashes."""
        embeddings: list[list[float]] = []
        for text in texts:
            self.calls.append(text)
            embedding = [0.0] * self.dimension
            tokens = self.TOKEN_PATTERN.findall(text.lower()) or [text]
            for token in tokens:
                digest = hashlib.sha256(token.encode()).digest()
                embedding[int.from_bytes(digest[:4], "big") % self.dimension] += 1.0

            # Normalize to unit length
            norm = sum(x * x for x in embedding) ** 0.5
            embeddings.append([x / norm for x in embedding])
        return embeddings
