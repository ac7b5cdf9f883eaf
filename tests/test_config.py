"""Tests for environment-driven settings."""
from reporag.config import Settings


def test_defaults(monkeypatch):
    for name in ("OPENAI_EMBEDDING_MODEL", "TOP_K", "MIN_SIMILARITY", "MAX_CHUNK_SIZE"):
        monkeypatch.delenv(name, raising=False)
    s = Settings(_env_file=None)
    assert s.OPENAI_EMBEDDING_MODEL == "text-embedding-3-small"
    assert s.EMBEDDING_DIM == 1536
    assert s.TOP_K == 5
    assert s.MIN_SIMILARITY == 0.5
    assert s.MAX_CHUNK_SIZE == 1000


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("top_k", "7")
    monkeypatch.setenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-large")
    s = Settings(_env_file=None)
    assert s.TOP_K == 7
    assert s.EMBEDDING_DIM == 3072
