"""Tests for the FastAPI routes and error mapping."""
import pytest
from fastapi.testclient import TestClient

from reporag.embedding import Embedder
from reporag.main import app
from reporag.pipeline import RagPipeline, get_pipeline
from reporag.sources import LocalRepositorySource
from reporag.vector_store import VectorStore

from .conftest import DIM, FakeEmbeddingsClient

README = "authentication service handles user login and session tokens"


@pytest.fixture
def client(pipeline, make_repo):
    make_repo("org/app", {"README.md": README, "notes/todo.txt": "remember to rotate the signing keys"})
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def _override(p):
    app.dependency_overrides[get_pipeline] = lambda: p


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_index_and_status(client):
    resp = client.post("/index", json={"repository": "org/app"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["repository"] == "org/app"
    assert body["vectors"] == 2
    assert body["files_selected"] == 2

    resp = client.get("/repositories/org/app/indexed")
    assert resp.json() == {"repository": "org/app", "indexed": True}

    resp = client.get("/repositories")
    assert resp.json() == {"repositories": ["org/app"]}


def test_not_indexed(client):
    resp = client.get("/repositories/org/app/indexed")
    assert resp.status_code == 200
    assert resp.json()["indexed"] is False


def test_search_and_context(client):
    client.post("/index", json={"repository": "org/app"})

    resp = client.post("/search", json={"query": README, "repository": "org/app", "top_k": 3})
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert results[0]["path"] == "README.md"
    assert results[0]["content"] == README
    assert results[0]["score"] == pytest.approx(1.0)
    assert all(r["score"] > 0.5 for r in results)

    resp = client.post("/context", json={"query": README})
    context = resp.json()["context"]
    assert context.startswith("Relevant code context:\n\n[Context 1] README.md (lines 1-1):\n")


def test_search_without_matches_is_empty(client):
    resp = client.post("/search", json={"query": "anything at all"})
    assert resp.status_code == 200
    assert resp.json() == {"results": []}

    resp = client.post("/context", json={"query": "anything at all"})
    assert resp.json() == {"context": ""}


def test_request_validation(client):
    assert client.post("/search", json={"query": ""}).status_code == 422
    assert client.post("/search", json={"query": "x", "top_k": 0}).status_code == 422
    assert client.post("/index", json={}).status_code == 422


def test_unknown_repository_is_404(client):
    resp = client.post("/index", json={"repository": "org/none"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "RepositoryNotFound"


def test_concurrent_index_is_409(client, pipeline):
    with pipeline.indexer.guard.hold("org/app"):
        resp = client.post("/index", json={"repository": "org/app"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "IndexingInProgress"


def test_missing_embedding_key_is_503(client, database, repos_root):
    p = RagPipeline(
        store=VectorStore(database, dimension=DIM),
        source=LocalRepositorySource(repos_root),
        embedder=Embedder(api_key=""),
    )
    _override(p)
    resp = client.post("/search", json={"query": "authentication"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "EmbeddingUnavailable"


def test_provider_failure_is_502(client, database, repos_root):
    p = RagPipeline(
        store=VectorStore(database, dimension=DIM),
        source=LocalRepositorySource(repos_root),
        embedder=Embedder(client=FakeEmbeddingsClient(fail_on_call=1)),
    )
    _override(p)
    resp = client.post("/index", json={"repository": "org/app"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "EmbeddingProviderError"
