"""Tests for the local filesystem repository source."""
import pytest

from reporag.errors import RepositoryNotFound
from reporag.sources import LocalRepositorySource


@pytest.fixture
def source(repos_root, make_repo):
    make_repo(
        "org/app",
        {
            "README.md": "# App",
            "src/main.py": "print('hi')",
            "src/auth/login.py": "def login(): pass",
            ".git/HEAD": "ref: refs/heads/main",
            ".env": "TOKEN=1",
        },
    )
    return LocalRepositorySource(repos_root)


def test_lists_files_sorted_as_posix_paths(source):
    assert source.list_files("org/app") == [
        ".env",
        "README.md",
        "src/auth/login.py",
        "src/main.py",
    ]


def test_depth_bound(source):
    assert source.list_files("org/app", max_depth=1) == [".env", "README.md"]
    assert source.list_files("org/app", max_depth=2) == [".env", "README.md", "src/main.py"]
    assert source.list_files("org/app", max_depth=0) == []


def test_list_subdirectory(source):
    assert source.list_files("org/app", "src") == ["src/auth/login.py", "src/main.py"]
    assert source.list_files("org/app", "missing") == []


@pytest.mark.parametrize("name", ["org/none", "../outside", ""])
def test_unknown_repository(source, name):
    with pytest.raises(RepositoryNotFound):
        source.list_files(name)


def test_fetch_file_content(source):
    assert source.fetch_file_content("org/app", "src/auth/login.py") == "def login(): pass"
    assert source.fetch_file_content("org/app", "src/nope.py") is None


def test_fetch_refuses_paths_outside_repository(source, repos_root):
    (repos_root / "secret.txt").write_text("s3cret", encoding="utf-8")
    assert source.fetch_file_content("org/app", "../../secret.txt") is None


def test_undecodable_bytes_are_replaced(source, repos_root):
    (repos_root / "org/app/blob.bin").write_bytes(b"ab\xff\xfe")
    assert source.fetch_file_content("org/app", "blob.bin") == "ab\ufffd\ufffd"
