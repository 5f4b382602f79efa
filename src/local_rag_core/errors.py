from __future__ import annotations


class RAGError(Exception):
    """Base class for retrieval core failures."""


class EmbeddingError(RAGError):
    """Raised when an embedding provider cannot produce a vector."""


class ProviderUnavailableError(EmbeddingError):
    """The underlying model could not be loaded or invoked."""


class InvalidInputError(EmbeddingError):
    """The input text is empty or longer than the provider accepts."""


class DimensionMismatchError(EmbeddingError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch (expected {expected}, got {actual})"
        )
        self.expected = expected
        self.actual = actual


class StoreError(RAGError):
    """Raised when the chunk store fails."""


class StoreConnectionError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class StoreReadError(StoreError):
    pass


class QueryError(RAGError):
    """Raised when a query cannot be embedded. `query()` returns no results instead."""


__all__ = [
    "RAGError",
    "EmbeddingError",
    "ProviderUnavailableError",
    "InvalidInputError",
    "DimensionMismatchError",
    "StoreError",
    "StoreConnectionError",
    "StoreWriteError",
    "StoreReadError",
    "QueryError",
]
