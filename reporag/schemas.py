"""Pydantic models for pipeline data and the HTTP API.

Pipeline data:
- Document: one chunk of one repository file, the unit that gets embedded.
- VectorMetadata / Vector: an embedding keyed by its Document's id, with a denormalized
  copy of the Document's location so metadata-only reads never need the content.
- StoredVector: a Vector as read back from the store, carrying the original chunk text.
- SearchResult: a Document paired with its cosine similarity to a query.

API contracts:
- IndexRequest / IndexResponse, SearchRequest / SearchResponse, ContextResponse,
  IndexedResponse, RepositoriesResponse.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def document_id(repository: str, path: str, start_line: Optional[int], end_line: Optional[int]) -> str:
    """Compose the unique id of a chunk from its location."""
    start = "" if start_line is None else start_line
    end = "" if end_line is None else end_line
    return f"{repository}:{path}:{start}:{end}"


class Document(BaseModel):
    """A chunk of repository source text.

    Attributes:
        id: Opaque id composed from repository, path and line range.
        repository: Owning repository name (e.g. "org/repo"), treated as an opaque key.
        path: Repository-relative POSIX path of the source file.
        content: Chunk text, trimmed and non-empty.
        start_line: First source line of the chunk (1-based, inclusive).
        end_line: Last source line of the chunk (1-based, inclusive).
    """
    model_config = ConfigDict(frozen=True)

    id: str
    repository: str
    path: str
    content: str
    start_line: Optional[int] = Field(default=None, ge=1)
    end_line: Optional[int] = Field(default=None, ge=1)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("document content must not be blank")
        return v

    @model_validator(mode="after")
    def _check_range(self) -> "Document":
        if self.start_line is not None and self.end_line is not None and self.end_line < self.start_line:
            raise ValueError(f"end_line {self.end_line} precedes start_line {self.start_line}")
        return self

    @classmethod
    def create(
        cls,
        repository: str,
        path: str,
        content: str,
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
    ) -> "Document":
        return cls(
            id=document_id(repository, path, start_line, end_line),
            repository=repository,
            path=path,
            content=content,
            start_line=start_line,
            end_line=end_line,
        )

    @property
    def metadata(self) -> "VectorMetadata":
        return VectorMetadata(
            repository=self.repository,
            path=self.path,
            start_line=self.start_line,
            end_line=self.end_line,
        )


class VectorMetadata(BaseModel):
    """Location fields copied from the owning Document."""
    model_config = ConfigDict(frozen=True)

    repository: str
    path: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None


class Vector(BaseModel):
    """Embedding of one Document, keyed by the Document's id."""
    id: str
    values: List[float]
    metadata: VectorMetadata


class StoredVector(Vector):
    """A Vector read back from storage together with its chunk text."""
    content: str

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            repository=self.metadata.repository,
            path=self.metadata.path,
            content=self.content,
            start_line=self.metadata.start_line,
            end_line=self.metadata.end_line,
        )


class SearchResult(BaseModel):
    """A retrieved Document and its cosine similarity to the query, in [-1, 1]."""
    document: Document
    score: float


# --- HTTP API contracts -------------------------------------------------------


class IndexRequest(BaseModel):
    """Request body for indexing a repository.

    Attributes:
        repository: Repository name, resolved against the configured repository source.
    """
    repository: str = Field(..., min_length=1, description="Repository name, e.g. org/repo")


class IndexResponse(BaseModel):
    """Summary of one index run."""
    repository: str
    vectors: int
    files_listed: int = 0
    files_selected: int = 0
    files_skipped: int = 0
    documents: int = 0
    elapsed_ms: int = 0


class SearchRequest(BaseModel):
    """Request body for similarity search and context retrieval.

    Attributes:
        query: Free-text query to embed and match.
        repository: Optional repository scope; searches every repository when omitted.
        top_k: Maximum number of results (server default when omitted).
    """
    query: str = Field(..., min_length=1, description="Search query")
    repository: Optional[str] = None
    top_k: Optional[int] = Field(default=None, ge=1, le=100)


class SearchHit(BaseModel):
    """A search result flattened for API consumers."""
    id: str
    repository: str
    path: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    score: float
    content: str


class SearchResponse(BaseModel):
    results: List[SearchHit]


class ContextResponse(BaseModel):
    """Formatted context block; an empty string means no context is available."""
    context: str


class IndexedResponse(BaseModel):
    repository: str
    indexed: bool


class RepositoriesResponse(BaseModel):
    repositories: List[str]
