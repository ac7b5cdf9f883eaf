"""Persistent vector storage backed by SQLAlchemy.

The VectorStore keeps one row per embedded chunk (see reporag.models.VectorRecord)
and supports scoped and full enumeration plus repository-wide deletion. All writes of
one ``put`` call happen in a single transaction: either every vector is stored or the
call fails and nothing is written.

Any SQLAlchemy fault is surfaced as StoreUnavailable. The store never retries; retry
policy belongs to its callers.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from reporag.config import settings
from reporag.db import Database
from reporag.errors import DimensionMismatch, StoreUnavailable
from reporag.models import VectorRecord
from reporag.obs import span
from reporag.schemas import Document, StoredVector, Vector, VectorMetadata

logger = logging.getLogger(__name__)

# Bound on bind parameters per IN (...) clause
_ID_BATCH = 500


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Vector store %s failed: %s", action, e)
        raise StoreUnavailable(f"vector store {action} failed: {e}") from e


def _to_stored(row: VectorRecord) -> StoredVector:
    return StoredVector(
        id=row.id,
        values=list(row.embedding),
        metadata=VectorMetadata(
            repository=row.repository,
            path=row.path,
            start_line=row.start_line,
            end_line=row.end_line,
        ),
        content=row.content,
    )


class VectorStore:
    """Keyed storage of embedded chunks.

    Args:
        database: Explicit database handle; a new one on settings.DATABASE_URL when omitted.
        dimension: Required vector length; settings.EMBEDDING_DIM when omitted.
            Pass 0 to accept any length (all vectors must still agree with each other).
    """

    def __init__(self, database: Optional[Database] = None, dimension: Optional[int] = None):
        self.database = database or Database()
        self.dimension = settings.EMBEDDING_DIM if dimension is None else dimension

    def initialize(self) -> None:
        """Open storage and create the table and its indexes (idempotent)."""
        with _storage_errors("initialize"):
            self.database.init_schema()

    def close(self) -> None:
        self.database.close()

    def _check_dimensions(self, vectors: Sequence[Vector]) -> None:
        expected = self.dimension or len(vectors[0].values)
        for v in vectors:
            if len(v.values) != expected:
                raise DimensionMismatch(expected, len(v.values), context=f"vector {v.id}")

    def put(self, vectors: Sequence[Vector], documents: Sequence[Document]) -> int:
        """Upsert vectors, storing each one's chunk text from the Document with the same id.

        Args:
            vectors: Vectors to write; an existing entry with the same id is replaced.
            documents: Source Documents supplying the original text.

        Returns:
            int: Number of vectors written.

        Raises:
            ValueError: A vector has no matching Document.
            DimensionMismatch: A vector's length differs from the store's dimension.
            StoreUnavailable: The write failed; nothing was written.
        """
        if not vectors:
            return 0
        self._check_dimensions(vectors)

        content_by_id: Dict[str, str] = {d.id: d.content for d in documents}
        # last occurrence wins for repeated ids
        unique: Dict[str, Vector] = {}
        for v in vectors:
            if v.id not in content_by_id:
                raise ValueError(f"no document content for vector {v.id!r}")
            unique[v.id] = v

        ids = list(unique)
        with span("vector_store.put", {"count": len(ids)}), _storage_errors("put"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                for i in range(0, len(ids), _ID_BATCH):
                    db.execute(delete(VectorRecord).where(VectorRecord.id.in_(ids[i:i + _ID_BATCH])))
                db.add_all(
                    VectorRecord(
                        id=v.id,
                        repository=v.metadata.repository,
                        path=v.metadata.path,
                        start_line=v.metadata.start_line,
                        end_line=v.metadata.end_line,
                        content=content_by_id[v.id],
                        embedding=list(v.values),
                        dimension=len(v.values),
                    )
                    for v in unique.values()
                )
        logger.info("Stored %d vectors", len(ids))
        return len(ids)

    def get_by_repository(self, repository: str) -> List[StoredVector]:
        """All vectors of one repository, in no particular order."""
        with _storage_errors("get_by_repository"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                rows = db.scalars(select(VectorRecord).where(VectorRecord.repository == repository)).all()
                return [_to_stored(r) for r in rows]

    def get_all(self) -> List[StoredVector]:
        """Every stored vector, in no particular order."""
        with _storage_errors("get_all"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                return [_to_stored(r) for r in db.scalars(select(VectorRecord)).all()]

    def delete_by_repository(self, repository: str) -> int:
        """Remove every vector of a repository.

        Returns:
            int: Number of rows removed; 0 when the repository had none.
        """
        with _storage_errors("delete_by_repository"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                result = db.execute(delete(VectorRecord).where(VectorRecord.repository == repository))
                deleted = result.rowcount or 0
        logger.info("Deleted %d vectors for repository %s", deleted, repository)
        return deleted

    def clear(self) -> None:
        """Remove every vector (administrative / test use)."""
        with _storage_errors("clear"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                db.execute(delete(VectorRecord))

    def count(self) -> int:
        with _storage_errors("count"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                return int(db.scalar(select(func.count()).select_from(VectorRecord)) or 0)

    def count_by_repository(self, repository: str) -> int:
        with _storage_errors("count_by_repository"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                stmt = select(func.count()).select_from(VectorRecord).where(VectorRecord.repository == repository)
                return int(db.scalar(stmt) or 0)

    def list_repositories(self) -> List[str]:
        """Names of repositories that currently have vectors, sorted."""
        with _storage_errors("list_repositories"):
            self.database.init_schema()
            with self.database.session_scope() as db:
                stmt = select(VectorRecord.repository).distinct().order_by(VectorRecord.repository)
                return list(db.scalars(stmt).all())
