"""Shared data models for code context retrieval."""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

# Extension to fenced-code language hint for prompt formatting
LANGUAGE_HINTS = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
}


@dataclass(frozen=True)
class SourceFile:
    """A file's decoded text content, ready for chunking.

    Attributes:
        path: Repository-relative path of the file.
        content: Decoded text content.
        repo_key: Repository identifier in ``owner/repo`` form.
    """

    path: str
    content: str
    repo_key: str


@dataclass(frozen=True)
class Chunk:
    """A bounded contiguous slice of a file's text."""

    text: str
    line_from: int
    line_to: int
    source_file: SourceFile | None = None
    start_offset: int = 0

    @property
    def line_range(self) -> str:
        """Line range in ``from-to`` form."""
        return f"{self.line_from}-{self.line_to}"


@dataclass(frozen=True)
class FunctionMetadata:
    """Structural hints for a function signature found in a chunk."""

    name: str
    params: list[str]
    return_type: str


@dataclass
class ChunkMetadata:
    """Metadata stored alongside a chunk's embedding.

    Optional fields are omitted from the stored payload when empty, so the
    store only ever receives non-empty string values.
    """

    filepath: str
    repo: str
    content: str
    chunk_index: int
    line_range: str | None = None
    function_name: str | None = None
    function_params: str | None = None
    return_type: str | None = None

    def to_payload(self) -> dict[str, str]:
        """Flatten to a mapping of string keys to non-empty string values."""
        raw: dict[str, Any] = {
            "filepath": self.filepath,
            "repo": self.repo,
            "content": self.content,
            "chunk_index": str(self.chunk_index),
            "line_range": self.line_range,
            "function_name": self.function_name,
            "function_params": self.function_params,
            "return_type": self.return_type,
        }
        return {key: value for key, value in raw.items() if isinstance(value, str) and value != ""}


@dataclass
class IndexRecord:
    """A chunk embedding ready to be upserted into the vector store."""

    id: str
    vector: list[float]
    metadata: ChunkMetadata

    @staticmethod
    def make_id(filepath: str, chunk_index: int) -> str:
        """Deterministic record id for a file's chunk."""
        return f"{filepath}-{chunk_index}"


@dataclass(frozen=True)
class StoreMatch:
    """Raw nearest-neighbor hit returned by the vector store."""

    id: str
    score: float
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchResult:
    """A related snippet returned for a query, highest score first."""

    content: str
    filepath: str
    repo: str
    score: float
    line_range: str | None = None

    def format(self, include_code: bool = True) -> str:
        """Format match for display."""
        location = f"{self.filepath}:{self.line_range}" if self.line_range else self.filepath
        header = f"#### {location}\nSimilarity: {self.score:.2f}"
        if include_code:
            language = LANGUAGE_HINTS.get(PurePosixPath(self.filepath).suffix.lower(), "")
            header += f"\n```{language}\n{self.content}\n```"
        return header

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "file": self.filepath,
            "repo": self.repo,
            "lines": self.line_range,
            "similarity": round(self.score, 3),
            "content": self.content,
        }


@dataclass
class ContextSelection:
    """Related code selected for a set of files under review.

    Attributes:
        contexts: Filtered matches per file path. Files without relevant
            context are absent.
        failures: Files whose lookup failed, mapped to the failure reason.
    """

    contexts: dict[str, list[MatchResult]] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    token_estimate: int = 0

    def format(self, max_tokens: int = 8000) -> str:
        """Format selected context as markdown for a review prompt."""
        if not self.contexts:
            return ""

        sections = [
            "## Similar Code Patterns in Codebase\n\n"
            "The following existing code is similar to files in this PR.\n"
            "Consider it when reviewing for consistency and potential reuse."
        ]
        current_tokens = len(sections[0]) // 4

        for changed_file, matches in self.contexts.items():
            sections.append(f"### Similar to `{changed_file}`")
            for match in matches:
                formatted = match.format(include_code=True)
                result_tokens = len(formatted) // 4

                if current_tokens + result_tokens > max_tokens:
                    # Include without code if over budget
                    formatted = match.format(include_code=False)
                    result_tokens = len(formatted) // 4

                if current_tokens + result_tokens <= max_tokens:
                    sections.append(formatted)
                    current_tokens += result_tokens

        self.token_estimate = current_tokens
        return "\n\n".join(sections)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "contexts": {
                path: [match.to_dict() for match in matches] for path, matches in self.contexts.items()
            },
            "failures": dict(self.failures),
        }


@dataclass
class IndexingReport:
    """Result of a repository-wide indexing run."""

    files_processed: int = 0
    files_skipped: int = 0
    records_written: int = 0
    failed_files: dict[str, str] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def files_failed(self) -> int:
        """Number of files whose indexing failed."""
        return len(self.failed_files)
