"""Service facade wiring the pipeline components together.

RagPipeline exposes the operations the rest of an application uses:
- index_repository / index_repository_with_report
- retrieve_context
- get_search_results
- is_repository_indexed

get_pipeline returns a process-wide instance built from reporag.config.settings.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from reporag.chunking import Chunker
from reporag.config import settings
from reporag.db import Database
from reporag.embedding import Embedder
from reporag.indexing import IndexingGuard, IndexReport, RepositoryIndexer
from reporag.retrieval import Retriever, format_as_context
from reporag.schemas import SearchResult
from reporag.sources import LocalRepositorySource, RepositorySource
from reporag.vector_store import VectorStore

logger = logging.getLogger(__name__)


class RagPipeline:
    """Indexing and retrieval over one vector store.

    Every collaborator can be injected; missing ones are built from settings.
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        source: Optional[RepositorySource] = None,
        embedder: Optional[Embedder] = None,
        chunker: Optional[Chunker] = None,
        store: Optional[VectorStore] = None,
        guard: Optional[IndexingGuard] = None,
        default_top_k: Optional[int] = None,
    ):
        self.store = store or VectorStore(database or Database())
        self.source = source or LocalRepositorySource()
        self.embedder = embedder or Embedder()
        self.chunker = chunker or Chunker()
        self.retriever = Retriever(self.store, self.embedder)
        self.indexer = RepositoryIndexer(
            source=self.source,
            store=self.store,
            embedder=self.embedder,
            chunker=self.chunker,
            guard=guard or IndexingGuard(),
        )
        self.default_top_k = default_top_k or settings.TOP_K

    def initialize(self) -> None:
        self.store.initialize()

    def index_repository(self, repository: str) -> int:
        return self.indexer.index_repository(repository)

    def index_repository_with_report(self, repository: str) -> IndexReport:
        return self.indexer.index_repository_with_report(repository)

    def get_search_results(
        self, query: str, repository: Optional[str] = None, top_k: Optional[int] = None
    ) -> List[SearchResult]:
        return self.retriever.search(query, repository, self.default_top_k if top_k is None else top_k)

    def retrieve_context(self, query: str, repository: Optional[str] = None, top_k: Optional[int] = None) -> str:
        """Search and format the results; "" means no context is available."""
        return format_as_context(self.get_search_results(query, repository, top_k))

    def is_repository_indexed(self, repository: str) -> bool:
        return self.indexer.is_repository_indexed(repository)

    def list_indexed_repositories(self) -> List[str]:
        return self.store.list_repositories()

    def close(self) -> None:
        self.store.close()


_pipeline: Optional[RagPipeline] = None
_pipeline_lock = threading.Lock()


def get_pipeline() -> RagPipeline:
    """Return a cached RagPipeline configured from settings.

    Returns:
        RagPipeline: A singleton-like instance reused across calls.
    """
    global _pipeline
    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                _pipeline = RagPipeline()
    return _pipeline
