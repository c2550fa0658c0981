"""Exception hierarchy for mdindex.

Every error carries a message and an optional details dictionary so that
background callers can record structured failures.
"""

from typing import Any


class MdIndexError(Exception):
    """Base exception for all mdindex errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class EmbeddingError(MdIndexError):
    """Base exception for embedding generation failures."""


class EmbeddingTimeout(EmbeddingError):
    """Raised when the embedding provider does not answer within the timeout."""

    def __init__(self, timeout: float, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["timeout"] = timeout
        super().__init__(f"Embedding timeout after {timeout}s", details)
        self.timeout = timeout


class EmbeddingProviderError(EmbeddingError):
    """Raised when the embedding provider fails for any reason other than a timeout."""


class PartialBatchFailure(EmbeddingError):
    """Raised when one item of an embedding batch fails; the whole batch is discarded."""

    def __init__(
        self,
        index: int,
        cause: Exception,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize batch failure.

        Args:
            index: Position of the failing text in the submitted batch
            cause: The error raised for that text
            details: Additional context
        """
        details = details or {}
        details["index"] = index
        super().__init__(f"Embedding batch aborted at item {index}: {cause}", details)
        self.index = index
        self.cause = cause


class DimensionMismatch(MdIndexError, ValueError):
    """Raised when two vectors of different lengths are compared."""

    def __init__(self, len_a: int, len_b: int) -> None:
        super().__init__(
            "Vectors must have same dimensions",
            {"len_a": len_a, "len_b": len_b},
        )


class VectorStoreError(MdIndexError):
    """Raised when a vector store operation fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize vector store error.

        Args:
            message: Error message
            operation: Gateway operation that failed (upsert, search, ...)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


class VectorStoreUnavailable(VectorStoreError):
    """Raised when the vector store cannot be reached at all."""


class UnsupportedFileType(MdIndexError):
    """Raised when an uploaded file cannot be converted to text."""

    def __init__(self, file_name: str) -> None:
        extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
        super().__init__(
            f"Unsupported file type: {extension or file_name}",
            {"file_name": file_name},
        )
