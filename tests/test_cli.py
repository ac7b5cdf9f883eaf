"""Tests for the command-line indexer."""
import pytest

from reporag.config import settings
from reporag.ingestion import index_repo

from .conftest import FakeEmbeddingsClient


@pytest.fixture
def fake_openai(monkeypatch):
    client = FakeEmbeddingsClient(dim=settings.EMBEDDING_DIM)
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr("reporag.embedding.OpenAI", lambda **kwargs: client)
    return client


def _args(repos_root, *extra):
    return ["--root", str(repos_root), "--database-url", "sqlite://", *extra]


def test_index_and_query(fake_openai, make_repo, repos_root, capsys):
    make_repo("org/app", {"README.md": "authentication service handles user login"})

    code = index_repo.main(
        _args(repos_root, "--repository", "org/app", "--query", "authentication service handles user login")
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "[INDEX] org/app -> 1 vectors (1 files, 0 skipped" in out
    assert "[Context 1] README.md (lines 1-1):" in out
    assert len(fake_openai.calls) == 2


def test_failed_repository_sets_exit_code(fake_openai, make_repo, repos_root, capsys):
    make_repo("org/app", {"README.md": "authentication service handles user login"})

    code = index_repo.main(_args(repos_root, "--repository", "org/none", "--repository", "org/app"))

    assert code == 1
    out = capsys.readouterr().out
    assert "[INDEX] org/app -> 1 vectors" in out
    assert "org/none" not in out


def test_repository_is_required():
    with pytest.raises(SystemExit):
        index_repo.build_parser().parse_args([])
