"""Repository indexing: files -> chunks -> vectors -> store.

Main pieces:
- IndexingGuard: per-repository in-flight guard; a second concurrent index of the same
  repository is rejected while different repositories may be indexed in parallel
- IndexReport: counters describing one index run
- RepositoryIndexer: the end-to-end driver behind ``index_repository`` and
  ``is_repository_indexed``

Each run first deletes the repository's previous vectors, so a repository always
reflects its latest run. File fetches fan out over a small thread pool; embedding
batches stay sequential (see reporag.embedding). Files that fail to fetch or look
unsuitable are skipped; only embedder or store failures abort the run. Runs are not
checkpointed.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Iterator, List, Optional, Set, Tuple

from reporag.chunking import Chunker
from reporag.config import settings
from reporag.embedding import Embedder
from reporag.errors import IndexingInProgress
from reporag.filters import content_skip_reason, select_files
from reporag.obs import span
from reporag.schemas import Document
from reporag.sources import RepositorySource
from reporag.vector_store import VectorStore

logger = logging.getLogger(__name__)


class IndexingGuard:
    """Track repositories with an index run in flight."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[str] = set()

    @contextmanager
    def hold(self, repository: str) -> Iterator[None]:
        """Mark a repository busy for the duration of the block.

        Raises:
            IndexingInProgress: The repository is already held.
        """
        with self._lock:
            if repository in self._active:
                raise IndexingInProgress(repository)
            self._active.add(repository)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(repository)

    def is_active(self, repository: str) -> bool:
        with self._lock:
            return repository in self._active


@dataclass
class IndexReport:
    """Counters for one index run."""
    repository: str
    files_listed: int = 0
    files_selected: int = 0
    files_skipped: int = 0
    documents: int = 0
    vectors: int = 0
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class RepositoryIndexer:
    """Drive one repository through listing, filtering, chunking, embedding and storage.

    Args:
        source: Repository browsing collaborator.
        store: Vector store receiving the vectors.
        embedder: Embedder for chunk text.
        chunker: Chunker for file contents.
        guard: In-flight guard; a private one when omitted.
        max_depth: Directory levels to scan.
        max_file_chars: Files longer than this are skipped.
        max_non_printable_ratio: Files with a larger share of non-printable characters are skipped.
        fetch_concurrency: Number of concurrent file fetches.
    """

    def __init__(
        self,
        source: RepositorySource,
        store: VectorStore,
        embedder: Embedder,
        chunker: Optional[Chunker] = None,
        guard: Optional[IndexingGuard] = None,
        max_depth: Optional[int] = None,
        max_file_chars: Optional[int] = None,
        max_non_printable_ratio: Optional[float] = None,
        fetch_concurrency: Optional[int] = None,
    ):
        self.source = source
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or Chunker()
        self.guard = guard or IndexingGuard()
        self.max_depth = max_depth if max_depth is not None else settings.MAX_SCAN_DEPTH
        self.max_file_chars = max_file_chars if max_file_chars is not None else settings.MAX_FILE_CHARS
        self.max_non_printable_ratio = (
            max_non_printable_ratio if max_non_printable_ratio is not None else settings.MAX_NON_PRINTABLE_RATIO
        )
        self.fetch_concurrency = max(1, fetch_concurrency or settings.FETCH_CONCURRENCY)

    def _fetch(self, repository: str, path: str) -> Tuple[str, Optional[str]]:
        try:
            return path, self.source.fetch_file_content(repository, path)
        except Exception as e:
            logger.warning("Failed to fetch %s/%s: %s", repository, path, e)
            return path, None

    def _collect_documents(self, repository: str, paths: List[str], report: IndexReport) -> List[Document]:
        documents: List[Document] = []
        with ThreadPoolExecutor(max_workers=self.fetch_concurrency, thread_name_prefix="reporag-fetch") as pool:
            fetched = pool.map(lambda p: self._fetch(repository, p), paths)
            for path, content in fetched:
                if content is None:
                    report.files_skipped += 1
                    continue
                reason = content_skip_reason(content, self.max_file_chars, self.max_non_printable_ratio)
                if reason:
                    logger.info("Skipping %s: %s", path, reason)
                    report.files_skipped += 1
                    continue
                try:
                    chunks = self.chunker.chunk(repository, path, content)
                except Exception:
                    logger.exception("Chunking failed for %s", path)
                    report.files_skipped += 1
                    continue
                documents.extend(chunks)
        return documents

    def index_repository_with_report(self, repository: str) -> IndexReport:
        """Index a repository and return counters for the run.

        Raises:
            IndexingInProgress: The same repository is being indexed.
            RepositoryNotFound: The source does not know the repository.
            EmbeddingUnavailable, EmbeddingProviderError: Embedding failed.
            StoreUnavailable: Storage failed.
        """
        report = IndexReport(repository=repository)
        t0 = time.time()
        with self.guard.hold(repository), span("indexing.repository", {"repository": repository}):
            logger.info("Indexing repository: %s", repository)
            self.store.initialize()
            self.store.delete_by_repository(repository)

            files = self.source.list_files(repository, "", max_depth=self.max_depth)
            report.files_listed = len(files)
            selected = select_files(files)
            report.files_selected = len(selected)
            logger.info("Found %d files, %d selected for indexing", len(files), len(selected))

            documents = self._collect_documents(repository, selected, report)
            report.documents = len(documents)
            logger.info("Created %d chunks", len(documents))

            if documents:
                vectors = self.embedder.embed_documents(documents)
                report.vectors = self.store.put(vectors, documents)

        report.elapsed_ms = int((time.time() - t0) * 1000)
        logger.info(
            "Indexed %s: vectors=%d files=%d skipped=%d in %dms",
            repository, report.vectors, report.files_selected, report.files_skipped, report.elapsed_ms,
        )
        return report

    def index_repository(self, repository: str) -> int:
        """Index a repository, replacing its previous index.

        Returns:
            int: Number of vectors written (0 when no file produced a chunk).
        """
        return self.index_repository_with_report(repository).vectors

    def is_repository_indexed(self, repository: str) -> bool:
        """True when the store holds at least one vector for the repository."""
        self.store.initialize()
        return self.store.count_by_repository(repository) > 0
