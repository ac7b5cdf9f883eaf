"""Command-line repository indexer.

Indexes one or more repositories checked out under a local root directory, replacing
any previous index of each repository, and optionally runs a test query afterwards.

Usage:
  python -m reporag.ingestion.index_repo --repository org/repo --root ./repos
  python -m reporag.ingestion.index_repo --repository org/repo --query "authentication"

Configuration:
- Storage: reporag.config.settings.DATABASE_URL (or --database-url)
- Embeddings: reporag.config.settings.OPENAI_API_KEY, OPENAI_EMBEDDING_MODEL
- Discovery and chunking limits: reporag.config.settings
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from reporag.config import settings
from reporag.db import Database
from reporag.errors import RagError
from reporag.pipeline import RagPipeline
from reporag.sources import LocalRepositorySource

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Index local repositories for semantic retrieval.")
    parser.add_argument(
        "--repository",
        action="append",
        required=True,
        help="Repository name relative to the root, e.g. org/repo (repeatable)",
    )
    parser.add_argument("--root", default=settings.REPOS_ROOT, help="Directory containing repositories")
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="SQLAlchemy database URL")
    parser.add_argument("--query", default=None, help="Optional query to run after indexing")
    parser.add_argument("--top-k", type=int, default=settings.TOP_K, help="Results for --query")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    pipeline = RagPipeline(
        database=Database(args.database_url),
        source=LocalRepositorySource(args.root),
    )
    failures = 0
    try:
        pipeline.initialize()
        for repository in args.repository:
            logger.info("Starting indexing for %s", repository)
            try:
                report = pipeline.index_repository_with_report(repository)
            except RagError:
                logger.exception("Indexing failed for %s", repository)
                failures += 1
                continue
            print(
                f"[INDEX] {repository} -> {report.vectors} vectors "
                f"({report.files_selected} files, {report.files_skipped} skipped, {report.elapsed_ms} ms)"
            )

        if args.query:
            scope = args.repository[0] if len(args.repository) == 1 else None
            context = pipeline.retrieve_context(args.query, scope, args.top_k)
            print(context or "[QUERY] no relevant context found")
    finally:
        pipeline.close()
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
