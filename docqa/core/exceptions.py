"""Custom exceptions for the application."""


class ScopeNotFoundError(Exception):
    """Raised when a category or document id does not resolve."""

    def __init__(self, kind: str, scope_id: int) -> None:
        self.kind = kind
        self.scope_id = scope_id
        super().__init__(f"{kind.capitalize()} not found with id: {scope_id}")


class ExtractionError(Exception):
    """Raised when text extraction from a stored file fails."""

    pass


class DimensionMismatchError(Exception):
    """Raised when a vector does not match the configured embedding size."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimensionality mismatch: expected {expected}, got {actual}. "
            "Query and stored vectors must come from the same embedding model."
        )


class VectorDBError(Exception):
    """Raised when vector database operations fail."""

    pass


class EmbeddingError(Exception):
    """Raised when embedding generation fails."""

    pass


class LLMError(Exception):
    """Raised when LLM operations fail."""

    pass


class CacheError(Exception):
    """Raised when cache operations fail."""

    pass


class DLQError(Exception):
    """Raised when Dead Letter Queue operations fail."""

    pass


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass
