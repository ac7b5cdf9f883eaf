"""Database handle and session utilities for SQLAlchemy.

The Database class owns one engine and session factory with an explicit lifecycle:
- open: create the engine (idempotent)
- init_schema: create tables and indexes from the ORM metadata (idempotent, thread-safe)
- session_scope: context-managed transactional scope
- close: dispose of the engine

Each VectorStore holds its own Database, so several isolated stores can coexist
(for example one in-memory database per test).
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from reporag.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class Database:
    """Explicit handle on one SQLAlchemy engine.

    Args:
        url: SQLAlchemy database URL; defaults to settings.DATABASE_URL.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.DATABASE_URL
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None
        self._lock = threading.RLock()
        self._schema_ready = False
        # an in-memory SQLite database lives on a single shared connection
        self._serialize = _is_memory_sqlite(self.url)

    @property
    def engine(self) -> Engine:
        return self.open()

    def open(self) -> Engine:
        """Create the engine and session factory if not already open."""
        with self._lock:
            if self._engine is None:
                kwargs = {"future": True}
                if self.url.startswith("sqlite"):
                    kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
                    if self._serialize:
                        kwargs["poolclass"] = StaticPool
                else:
                    kwargs["pool_pre_ping"] = True
                self._engine = create_engine(self.url, **kwargs)
                self._sessionmaker = sessionmaker(
                    autocommit=False, autoflush=False, bind=self._engine, future=True
                )
                logger.debug("Opened database %s", self._engine.url.render_as_string(hide_password=True))
            return self._engine

    def init_schema(self) -> None:
        """Create tables and indexes from the ORM metadata.

        This function is idempotent and safe to call concurrently.
        """
        if self._schema_ready:
            return
        with self._lock:
            if self._schema_ready:
                return
            # Import models after Base is defined
            from reporag import models  # noqa: F401

            Base.metadata.create_all(bind=self.open())
            self._schema_ready = True

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations.

        Yields:
            Session: A SQLAlchemy session bound to this database's engine.

        Notes:
            - Commits on successful exit.
            - Rolls back and re-raises on exception.
            - Always closes the session at the end.
            - Sessions on an in-memory SQLite database are serialized.
        """
        self.open()
        if self._serialize:
            self._lock.acquire()
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            if self._serialize:
                self._lock.release()

    def close(self) -> None:
        """Dispose of the engine; the handle can be re-opened later."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            self._schema_ready = False
