"""Database ORM models.

Defines the persistent entity behind the vector store:
- VectorRecord: one embedded chunk, keyed by its Document id, carrying the
  denormalized location metadata, the original chunk text and the embedding values.

Indexes:
    - idx_rag_vectors_repository: scoped reads and repository-wide deletes
    - idx_rag_vectors_path: lookups by file
"""
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from reporag.db import Base


class VectorRecord(Base):
    """Stored embedding of one chunk.

    Notes:
        Embedding values are stored as a JSON array so the table works on any
        SQLAlchemy backend; similarity is computed in-process by the retriever.
    """
    __tablename__ = "rag_vectors"

    id = Column(String(2048), primary_key=True)
    repository = Column(String(512), nullable=False)
    path = Column(String(1024), nullable=False)
    start_line = Column(Integer, nullable=True)
    end_line = Column(Integer, nullable=True)
    content = Column(Text, nullable=False)
    embedding = Column(JSON, nullable=False)
    dimension = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_rag_vectors_repository", "repository"),
        Index("idx_rag_vectors_path", "path"),
    )
