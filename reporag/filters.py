"""Path and content predicates used to select repository files for indexing.

Path rules are applied in a fixed order by ``select_files``:
1. drop known non-source directories and artifacts (dependency caches, VCS metadata,
   build output, lock files)
2. drop minified / bundled assets
3. classify database-related files (database extensions; migration, schema, seed,
   fixture and ORM model directories or names on non-binary files)
4. drop binary extensions, unless the file was classified database-related in step 3
5. keep everything else

Surviving files are stably partitioned so database-related files come first.

Content rules (``content_skip_reason``) reject oversized text and text that looks binary.
"""
from __future__ import annotations

import fnmatch
import posixpath
import re
from typing import List, Optional, Sequence, Tuple

EXCLUDED_DIRS = {
    ".git", ".svn", ".hg",
    "node_modules", "bower_components", "vendor",
    "dist", "build", "out", "target", ".next", ".nuxt", ".output",
    "__pycache__", ".venv", "venv", ".tox", ".mypy_cache", ".pytest_cache",
    "coverage", ".coverage", ".idea", ".vscode", ".gradle",
}

EXCLUDED_FILE_GLOBS = [
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "poetry.lock", "Cargo.lock",
    "composer.lock", "Gemfile.lock", "*.pyc", "*.pyo", ".DS_Store", "*.log",
]

MINIFIED_GLOBS = [
    "*.min.js", "*.min.css", "*.min.mjs", "*.bundle.js", "*.chunk.js", "*.chunk.css",
    "*.map", "*-bundle.js", "bundle.js",
]

DATABASE_DIR_NAMES = {
    "migrations", "migration", "migrate", "schema", "schemas", "seeds", "seed", "seeders",
    "fixtures", "fixture", "models", "entities", "prisma", "alembic", "db", "database",
}

DATABASE_EXTENSIONS = {".sql", ".prisma", ".sqlite", ".sqlite3", ".db", ".dbml"}

# whole words of a file stem: schema, user_model, user.model, create-users-migration
_DATABASE_NAME = re.compile(
    r"(?:^|[_.\-])(?:migrations?|schemas?|seeds?|seeders?|fixtures?|models?|entity|entities)(?:$|[_.\-])"
)
# camelCase words: UserModel, CreateUsersMigration
_DATABASE_NAME_CAMEL = re.compile(
    r"[a-z0-9](?:Migrations?|Schemas?|Seeds?|Seeders?|Fixtures?|Models?|Entity|Entities)(?:$|[A-Z_.\-])"
)

BINARY_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff", ".psd",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".jar", ".war",
    ".exe", ".dll", ".so", ".dylib", ".bin", ".o", ".a", ".class", ".wasm", ".pyc",
    ".mp3", ".mp4", ".wav", ".ogg", ".mov", ".avi", ".webm", ".flac",
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    ".sqlite", ".sqlite3", ".db", ".mdb", ".pkl", ".npy", ".parquet",
}


def _ext(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def is_excluded_path(path: str) -> bool:
    """Rule 1: path lies in a non-source directory or is a known artifact."""
    parts = path.split("/")
    if any(p in EXCLUDED_DIRS for p in parts[:-1]):
        return True
    name = parts[-1]
    return any(fnmatch.fnmatch(name, g) for g in EXCLUDED_FILE_GLOBS)


def is_minified_asset(path: str) -> bool:
    """Rule 2: minified or bundled asset."""
    name = posixpath.basename(path).lower()
    return any(fnmatch.fnmatch(name, g) for g in MINIFIED_GLOBS)


def is_database_related(path: str) -> bool:
    """Rule 3: migrations, schema, seed, fixture and ORM model files.

    Database file extensions always qualify. Directory and file-name matches only
    qualify files that are not of a binary format, so ``models/weights.bin`` or
    ``assets/model-diagram.png`` stay binary.
    """
    ext = _ext(path)
    if ext in DATABASE_EXTENSIONS:
        return True
    if ext in BINARY_EXTENSIONS:
        return False
    parts = path.split("/")
    if any(p.lower() in DATABASE_DIR_NAMES for p in parts[:-1]):
        return True
    stem = posixpath.splitext(parts[-1])[0]
    return bool(_DATABASE_NAME.search(stem.lower()) or _DATABASE_NAME_CAMEL.search(stem))


def is_binary_path(path: str) -> bool:
    """Rule 4 predicate: extension of a known binary format."""
    return _ext(path) in BINARY_EXTENSIONS


def classify(path: str) -> Tuple[bool, bool]:
    """Apply the path rules in order.

    Returns:
        Tuple[bool, bool]: (keep, database_related).
    """
    if is_excluded_path(path):
        return False, False
    if is_minified_asset(path):
        return False, False
    database = is_database_related(path)
    if not database and is_binary_path(path):
        return False, False
    return True, database


def select_files(paths: Sequence[str]) -> List[str]:
    """Filter repository paths and put database-related files first (stable)."""
    database: List[str] = []
    other: List[str] = []
    for p in paths:
        keep, is_db = classify(p)
        if not keep:
            continue
        (database if is_db else other).append(p)
    return database + other


def non_printable_ratio(text: str) -> float:
    """Share of control characters (other than tab, CR, LF) and decode replacement characters."""
    if not text:
        return 0.0
    bad = sum(1 for ch in text if (ord(ch) < 32 and ch not in "\t\r\n") or ord(ch) == 127 or ch == "\ufffd")
    return bad / len(text)


def content_skip_reason(content: str, max_chars: int, max_non_printable_ratio: float) -> Optional[str]:
    """Return why fetched content must not be indexed, or None when it is acceptable."""
    if len(content) > max_chars:
        return f"too large ({len(content)} > {max_chars} chars)"
    if "\x00" in content:
        return "contains null bytes"
    ratio = non_printable_ratio(content)
    if ratio > max_non_printable_ratio:
        return f"looks binary ({ratio:.0%} non-printable)"
    return None
