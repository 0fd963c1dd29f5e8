"""Configuration for the code context engine."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

DEFAULT_NAMESPACE = "code files"
DEFAULT_COLLECTION = "code-embeddings"

REQUIRED_ENV_VARS = ["OPENROUTER_API_KEY", "QDRANT_URL", "QDRANT_API_KEY"]


class EngineConfig(BaseModel):
    """Settings shared by the indexer, query engine and context selector.

    Attributes:
        namespace: Vector store namespace for all code-context reads and writes.
        collection_name: Qdrant collection holding the namespace.
        chunk_size: Maximum chunk length in characters.
        chunk_overlap: Characters shared by consecutive chunks.
        query_top_k: Raw matches requested per context query.
        relevance_threshold: Matches must score strictly above this.
        max_results: Matches kept per file after filtering.
        max_concurrency: Optional cap on concurrent per-file operations.
        embedding_model: OpenRouter embedding model.
        embedding_dimension: Override for the model's vector dimension.
    """

    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    collection_name: str = Field(default=DEFAULT_COLLECTION, min_length=1)
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    query_top_k: int = Field(default=20, gt=0)
    relevance_threshold: float = 0.8
    max_results: int = Field(default=3, gt=0)
    max_concurrency: int | None = Field(default=None, gt=0)
    embedding_model: str | None = None
    embedding_dimension: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_overlap(self) -> "EngineConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def from_yaml(cls, config_path: Path) -> "EngineConfig":
        """Load settings from the ``context`` section of a YAML file.

        Args:
            config_path: Path to the YAML configuration.

        Returns:
            EngineConfig with defaults for anything not set.
        """
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**(data.get("context") or {}))


def load_environment(env_file: Path | None = None) -> None:
    """Load credentials from a .env file into the environment."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()


def check_env_vars(extra: list[str] | None = None) -> list[str]:
    """Check required environment variables are set."""
    missing = []
    for var in REQUIRED_ENV_VARS + (extra or []):
        if not os.environ.get(var):
            missing.append(var)
    return missing
