"""Ingestion package for offline indexing jobs.

Contains command-line entry points that populate the vector store with chunked,
embedded repository content. See index_repo.py.
"""
