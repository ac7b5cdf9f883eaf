"""Error taxonomy for the indexing and retrieval pipeline.

Every error raised to callers of the pipeline derives from RagError. A raised error
always means the subsystem itself is unusable (missing credential, provider failure,
unreachable store, mismatched embedding model); "nothing relevant found" is reported
as an empty result, never as an exception.
"""
from typing import Optional


class RagError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(RagError):
    """Required configuration is missing or invalid."""


class EmbeddingUnavailable(ConfigurationError):
    """No embedding credential is configured."""


class EmbeddingProviderError(RagError):
    """The embedding provider rejected or failed a request.

    Attributes:
        status_code: HTTP status returned by the provider, when known.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoreUnavailable(RagError):
    """The persistence layer failed."""


class DimensionMismatch(RagError, ValueError):
    """Two vectors that must be compared have different lengths."""

    def __init__(self, expected: int, actual: int, context: str = ""):
        suffix = f" ({context})" if context else ""
        super().__init__(f"vector dimension mismatch: expected {expected}, got {actual}{suffix}")
        self.expected = expected
        self.actual = actual


class IndexingInProgress(RagError):
    """An index run for the same repository is already in flight."""

    def __init__(self, repository: str):
        super().__init__(f"repository {repository!r} is already being indexed")
        self.repository = repository


class RepositoryNotFound(RagError):
    """The repository source has no repository by that name."""

    def __init__(self, repository: str):
        super().__init__(f"repository {repository!r} not found")
        self.repository = repository
