"""Tests for file selection rules and content heuristics."""
import pytest

from reporag.filters import (
    classify,
    content_skip_reason,
    is_database_related,
    is_excluded_path,
    is_minified_asset,
    non_printable_ratio,
    select_files,
)


@pytest.mark.parametrize(
    "path",
    [
        "node_modules/lodash/index.js",
        "packages/web/node_modules/react/index.js",
        ".git/config",
        "build/output.js",
        "package-lock.json",
        "frontend/yarn.lock",
        "src/__pycache__/mod.cpython-311.pyc",
    ],
)
def test_excluded_paths(path):
    assert is_excluded_path(path)
    assert classify(path) == (False, False)


def test_source_paths_are_not_excluded():
    assert not is_excluded_path("src/index.js")
    # only directory components count as excluded directories
    assert not is_excluded_path("src/build.py")


@pytest.mark.parametrize("path", ["static/app.min.js", "dist2/vendor.bundle.js", "css/site.min.css", "app.js.map"])
def test_minified_assets(path):
    assert is_minified_asset(path)
    assert classify(path) == (False, False)


def test_database_classification():
    assert is_database_related("db/migrations/001_init.sql")
    assert is_database_related("prisma/schema.prisma")
    assert is_database_related("src/models/user.ts")
    assert is_database_related("app/user_model.py")
    assert not is_database_related("src/app.ts")


@pytest.mark.parametrize(
    "path",
    ["src/user.model.ts", "app/Models/UserModel.php", "src/CreateUsersMigration.cs", "seed-data.js", "schemas.py"],
)
def test_database_names_match_whole_words(path):
    assert is_database_related(path)


@pytest.mark.parametrize(
    "path",
    ["src/remodel.ts", "src/modeling.py", "lib/seedling.rb", "src/Remodeler.java", "docs/schematic.md"],
)
def test_database_words_inside_other_words_do_not_match(path):
    assert not is_database_related(path)


@pytest.mark.parametrize("path", ["assets/model-diagram.png", "models/weights.bin", "fixtures/photo.jpg"])
def test_binary_files_near_database_names_are_dropped(path):
    assert not is_database_related(path)
    assert classify(path) == (False, False)


def test_binary_database_files_are_kept():
    assert classify("data/app.sqlite") == (True, True)
    assert classify("fixtures/sample.db") == (True, True)


def test_binary_files_are_dropped():
    assert classify("assets/logo.png") == (False, False)
    assert classify("lib/native.so") == (False, False)


def test_earlier_rules_win():
    # excluded directory beats the database carve-out
    assert classify("node_modules/prisma/schema.prisma") == (False, False)
    # minified beats database-related
    assert classify("migrations/bundle.min.js") == (False, False)


def test_select_files_puts_database_files_first():
    paths = [
        "src/app.ts",
        "README.md",
        "db/migrations/001_init.sql",
        "assets/logo.png",
        "src/models/user.ts",
        "node_modules/x/index.js",
        "prisma/schema.prisma",
    ]
    assert select_files(paths) == [
        "db/migrations/001_init.sql",
        "src/models/user.ts",
        "prisma/schema.prisma",
        "src/app.ts",
        "README.md",
    ]


class TestContentSkipReason:
    def test_acceptable_text(self):
        assert content_skip_reason("def f():\n\treturn 1\r\n", 1000, 0.1) is None

    def test_too_large(self):
        reason = content_skip_reason("a" * 11, 10, 0.1)
        assert reason.startswith("too large")

    def test_size_limit_is_inclusive(self):
        assert content_skip_reason("a" * 10, 10, 0.1) is None

    def test_null_bytes(self):
        assert content_skip_reason("abc\x00def", 1000, 0.1) == "contains null bytes"

    def test_mostly_control_characters(self):
        text = "\x01\x02\x03" + "a" * 7
        assert non_printable_ratio(text) == pytest.approx(0.3)
        assert content_skip_reason(text, 1000, 0.1).startswith("looks binary")

    def test_replacement_characters_count_as_non_printable(self):
        text = "\ufffd" * 2 + "a" * 8
        assert non_printable_ratio(text) == pytest.approx(0.2)
        assert content_skip_reason(text, 1000, 0.1) is not None

    def test_empty_text(self):
        assert non_printable_ratio("") == 0.0
