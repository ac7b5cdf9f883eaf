"""Shared pytest fixtures for reporag tests."""
from __future__ import annotations

import math
import zlib
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import httpx
import openai
import pytest

from reporag.db import Database
from reporag.embedding import Embedder
from reporag.pipeline import RagPipeline
from reporag.sources import LocalRepositorySource
from reporag.vector_store import VectorStore

DIM = 8


def bag_of_words_vector(text: str, dim: int = DIM) -> List[float]:
    """Deterministic toy embedding: hashed word counts, L2-normalized."""
    vec = [0.0] * dim
    for word in text.lower().split():
        vec[zlib.crc32(word.encode("utf-8")) % dim] += 1.0
    norm = math.sqrt(sum(v * v for v in vec))
    return [v / norm for v in vec] if norm else vec


class FakeEmbeddings:
    def __init__(self, owner: "FakeEmbeddingsClient"):
        self._owner = owner

    def create(self, model: str, input: List[str]):
        owner = self._owner
        owner.calls.append(list(input))
        if owner.fail_on_call is not None and len(owner.calls) >= owner.fail_on_call:
            raise openai.APIConnectionError(
                message="embedding backend unreachable",
                request=httpx.Request("POST", "https://api.openai.com/v1/embeddings"),
            )
        data = [
            SimpleNamespace(index=i, embedding=owner.embed(text))
            for i, text in enumerate(input)
        ]
        # the provider does not promise ordered items
        return SimpleNamespace(data=list(reversed(data)))


class FakeEmbeddingsClient:
    """Mimics ``OpenAI().embeddings.create`` and records every request."""

    def __init__(self, dim: int = DIM, fixed: Optional[Dict[str, List[float]]] = None,
                 fail_on_call: Optional[int] = None):
        self.dim = dim
        self.fixed = fixed or {}
        self.fail_on_call = fail_on_call
        self.calls: List[List[str]] = []
        self.embeddings = FakeEmbeddings(self)

    def embed(self, text: str) -> List[float]:
        if text in self.fixed:
            return list(self.fixed[text])
        return bag_of_words_vector(text, self.dim)


@pytest.fixture
def database():
    db = Database("sqlite://")
    yield db
    db.close()


@pytest.fixture
def store(database):
    s = VectorStore(database, dimension=DIM)
    s.initialize()
    return s


@pytest.fixture
def fake_client():
    return FakeEmbeddingsClient()


@pytest.fixture
def embedder(fake_client):
    return Embedder(client=fake_client, model="test-embedding")


@pytest.fixture
def repos_root(tmp_path) -> Path:
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture
def make_repo(repos_root) -> Callable[[str, Dict[str, str]], str]:
    """Write files into ``<repos_root>/<name>`` and return the repository name."""

    def _make(name: str, files: Dict[str, str]) -> str:
        base = repos_root / name
        base.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            fp = base / rel
            fp.parent.mkdir(parents=True, exist_ok=True)
            fp.write_text(content, encoding="utf-8")
        return name

    return _make


@pytest.fixture
def pipeline(database, repos_root, embedder):
    p = RagPipeline(
        store=VectorStore(database, dimension=DIM),
        source=LocalRepositorySource(repos_root),
        embedder=embedder,
    )
    p.initialize()
    yield p
    p.close()
