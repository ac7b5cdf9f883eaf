"""Repository browsing collaborators.

The indexer only needs two operations from a repository source:
- list_files(repository, path, max_depth): repository-relative file paths
- fetch_file_content(repository, path): file text, or None when absent

LocalRepositorySource serves repositories checked out under one root directory,
where repository "org/repo" lives at ``<root>/org/repo``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from reporag.config import settings
from reporag.errors import RepositoryNotFound

logger = logging.getLogger(__name__)


class RepositorySource(ABC):
    """Abstract interface for listing and reading repository files."""

    @abstractmethod
    def list_files(self, repository: str, path: str = "", max_depth: int = 5) -> List[str]:
        """List files under ``path`` recursively, descending at most ``max_depth`` levels."""

    @abstractmethod
    def fetch_file_content(self, repository: str, path: str) -> Optional[str]:
        """Return the text of one file, or None when it does not exist."""


class LocalRepositorySource(RepositorySource):
    """Repositories checked out on the local filesystem.

    Args:
        root: Directory containing the repositories; settings.REPOS_ROOT when omitted.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root or settings.REPOS_ROOT)

    def repository_path(self, repository: str) -> Path:
        """Resolve a repository name to its directory.

        Raises:
            RepositoryNotFound: The name escapes the root or the directory does not exist.
        """
        root = self.root.resolve()
        repo_dir = (root / repository).resolve()
        if repo_dir != root and root not in repo_dir.parents:
            raise RepositoryNotFound(repository)
        if not repo_dir.is_dir() or repo_dir == root:
            raise RepositoryNotFound(repository)
        return repo_dir

    def list_files(self, repository: str, path: str = "", max_depth: int = 5) -> List[str]:
        repo_dir = self.repository_path(repository)
        start = (repo_dir / path).resolve() if path else repo_dir
        if not start.is_dir():
            return []

        files: List[str] = []

        def _walk(directory: Path, depth: int) -> None:
            if depth <= 0:
                return
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning("Failed to list %s: %s", directory, e)
                return
            for entry in entries:
                if entry.is_symlink():
                    continue
                if entry.is_file():
                    files.append(entry.relative_to(repo_dir).as_posix())
                elif entry.is_dir() and not entry.name.startswith("."):
                    _walk(entry, depth - 1)

        _walk(start, max_depth)
        return files

    def fetch_file_content(self, repository: str, path: str) -> Optional[str]:
        repo_dir = self.repository_path(repository)
        fp = (repo_dir / path).resolve()
        if repo_dir not in fp.parents:
            logger.warning("Refusing path outside repository %s: %s", repository, path)
            return None
        if not fp.is_file():
            return None
        return fp.read_text(encoding="utf-8", errors="replace")
