"""Exceptions raised by the code context engine."""


class ContextEngineError(Exception):
    """Base exception for context engine failures.

    Attributes:
        path: Path of the file being processed when the error occurred, if any.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FetchError(ContextEngineError):
    """Raised when the file provider is unavailable or a tree cannot be listed."""

    pass


class EmbeddingError(ContextEngineError):
    """Raised when an embedding call fails."""

    pass


class StoreWriteError(ContextEngineError):
    """Raised when an upsert to the vector store fails."""

    pass


class StoreQueryError(ContextEngineError):
    """Raised when a nearest-neighbor query against the vector store fails."""

    pass
