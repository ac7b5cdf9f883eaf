"""Structural and fixed-size chunking of repository source files.

Splits one file's text into Documents small enough to embed while keeping enough
locality for a matched chunk to be self-explanatory:

1. Structural pass: for known language families, each line that starts a top-level
   definition (function, class, struct, type...) opens a unit that is closed by brace
   balance. Lines between units are kept as their own chunks. Units whose trimmed text is
   not longer than ``min_structure_chunk`` characters are dropped.
2. Fixed-size pass: when the language is unknown or no unit is found, lines are packed
   into chunks of at most ``max_chunk_size`` characters, each new chunk re-using the
   last few lines of the previous one.

Line numbers are 1-based and inclusive on every Document.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Dict, List, Optional, Pattern

from reporag.config import settings
from reporag.schemas import Document

logger = logging.getLogger(__name__)

# Approximate characters per line used to turn the overlap size into a line count.
AVG_LINE_CHARS = 50

_JS = r"^(export\s+)?(default\s+)?(async\s+)?(function\*?|class|const|let|var)\s+\w+"
_TS = r"^(export\s+)?(default\s+)?(declare\s+)?(abstract\s+)?(async\s+)?(function\*?|class|const|let|var|interface|type|enum|namespace)\s+\w+"

LANGUAGE_PATTERNS: Dict[str, Pattern[str]] = {
    "javascript": re.compile(_JS),
    "typescript": re.compile(_TS),
    "jsx": re.compile(r"^(export\s+)?(default\s+)?(function|const|class)\s+\w+|^const\s+\w+\s*=\s*(\(|async\s*\()"),
    "tsx": re.compile(r"^(export\s+)?(default\s+)?(function|const|class|interface|type)\s+\w+|^const\s+\w+\s*[:=]\s*(\(|async\s*\()"),
    "python": re.compile(r"^(def|class|async\s+def)\s+\w+"),
    "java": re.compile(r"^(public|private|protected)?\s*(abstract\s+|final\s+)?(static\s+)?(class|interface|enum|record)\s+\w+"),
    "kotlin": re.compile(r"^(public|private|internal)?\s*(data\s+|sealed\s+|abstract\s+|open\s+)?(fun|class|interface|object|enum\s+class)\s+\w+"),
    "c_sharp": re.compile(r"^(public|private|protected|internal)?\s*(static\s+|abstract\s+|sealed\s+|partial\s+)*(class|interface|struct|enum|record)\s+\w+"),
    "go": re.compile(r"^(func|type|const|var)\s+\w+|^func\s+\(\w+\s+\*?\w+\)\s+\w+"),
    "rust": re.compile(r"^(pub(\([^)]*\))?\s+)?(async\s+)?(fn|struct|enum|impl|trait|mod)\s+\w+|^impl\b"),
    "cpp": re.compile(r"^(class|struct|namespace)\s+\w+|^template\s*<|^\w+\s*::\s*\w+\s*\("),
    "c": re.compile(r"^(struct|typedef|enum)\s+\w+|^\w+\s+\**\w+\s*\("),
    "php": re.compile(r"^(abstract\s+|final\s+)?(function|class|interface|trait)\s+\w+"),
    "ruby": re.compile(r"^(def|class|module)\s+\w+"),
    "swift": re.compile(r"^(public\s+|private\s+|internal\s+|open\s+)?(final\s+)?(func|class|struct|enum|protocol|extension)\s+\w+"),
    "scala": re.compile(r"^(case\s+)?(def|class|object|trait)\s+\w+"),
}

EXT_TO_LANG: Dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".jsx": "jsx",
    ".tsx": "tsx",
    ".py": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".cs": "c_sharp",
    ".go": "go",
    ".rs": "rust",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".scala": "scala",
}


def get_language_for_file(path: str) -> Optional[str]:
    """Get language family name from file extension."""
    _, ext = os.path.splitext(path)
    return EXT_TO_LANG.get(ext.lower())


def get_language_pattern(path: str) -> Optional[Pattern[str]]:
    """Return the definition-start pattern for a file, or None for unknown languages."""
    lang = get_language_for_file(path)
    return LANGUAGE_PATTERNS.get(lang) if lang else None


def count_braces(line: str) -> int:
    """Net brace depth change contributed by one line."""
    return line.count("{") - line.count("}")


class Chunker:
    """Split file contents into Documents.

    Args:
        max_chunk_size: Maximum characters per chunk in the fixed-size pass.
        overlap: Characters of trailing context carried into the next fixed-size chunk,
            approximated as ``overlap // 50`` whole lines.
        min_structure_chunk: Structural units whose trimmed text is not longer than
            this are dropped.
    """

    def __init__(
        self,
        max_chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
        min_structure_chunk: Optional[int] = None,
    ):
        self.max_chunk_size = max_chunk_size if max_chunk_size is not None else settings.MAX_CHUNK_SIZE
        self.overlap = overlap if overlap is not None else settings.CHUNK_OVERLAP
        self.min_structure_chunk = (
            min_structure_chunk if min_structure_chunk is not None else settings.MIN_STRUCTURE_CHUNK
        )
        self.overlap_lines = max(0, self.overlap // AVG_LINE_CHARS)

    def chunk(self, repository: str, path: str, content: str) -> List[Document]:
        """Chunk one file.

        Never raises for any text input. Blank content yields no Documents since a
        Document's content must be non-empty; any other input yields at least one.

        Args:
            repository: Owning repository name.
            path: Repository-relative file path (its extension selects the language).
            content: Full file text.

        Returns:
            List[Document]: Chunks in source order.
        """
        if not content or not content.strip():
            return []
        lines = content.split("\n")

        pattern = get_language_pattern(path)
        if pattern is not None:
            docs = self._chunk_by_structure(repository, path, lines, pattern)
            if docs:
                logger.debug("%s: %d structural chunks", path, len(docs))
                return docs

        docs = self._chunk_by_size(repository, path, lines)
        logger.debug("%s: %d fixed-size chunks", path, len(docs))
        return docs

    def _chunk_by_structure(
        self, repository: str, path: str, lines: List[str], pattern: Pattern[str]
    ) -> List[Document]:
        """Structural pass; returns [] when no definition unit was emitted."""
        docs: List[Document] = []
        units = 0

        loose: List[str] = []
        loose_start = 1
        unit: List[str] = []
        unit_start = 1
        balance = 0
        opened = False
        in_unit = False

        for i, line in enumerate(lines):
            line_no = i + 1

            if not in_unit and pattern.match(line):
                if loose:
                    self._append(docs, repository, path, loose, loose_start, line_no - 1)
                    loose = []
                unit = [line]
                unit_start = line_no
                balance = count_braces(line)
                opened = balance > 0
                in_unit = True
                continue

            if not in_unit:
                if not loose:
                    loose_start = line_no
                loose.append(line)
                continue

            unit.append(line)
            balance += count_braces(line)
            if balance > 0:
                opened = True
            if (opened and balance <= 0) or (not opened and len(unit) > 1):
                text = "\n".join(unit).strip()
                if len(text) > self.min_structure_chunk:
                    docs.append(Document.create(repository, path, text, unit_start, line_no))
                    units += 1
                unit = []
                in_unit = False
                opened = False
                balance = 0

        if in_unit and unit:
            # unclosed unit runs to end of file
            if self._append(docs, repository, path, unit, unit_start, len(lines)):
                units += 1
        elif loose:
            self._append(docs, repository, path, loose, loose_start, len(lines))

        return docs if units else []

    def _chunk_by_size(self, repository: str, path: str, lines: List[str]) -> List[Document]:
        """Fixed-size pass with trailing-line overlap."""
        docs: List[Document] = []
        buffer: List[str] = []
        size = 0
        start = 1

        for i, line in enumerate(lines):
            line_size = len(line) + 1  # newline

            if size + line_size > self.max_chunk_size and buffer:
                self._append(docs, repository, path, buffer, start, i)

                overlap = buffer[-self.overlap_lines:] if self.overlap_lines else []
                overlap_size = len("\n".join(overlap))
                if overlap and overlap_size + line_size > self.max_chunk_size:
                    overlap = []
                    overlap_size = 0
                buffer = list(overlap)
                size = overlap_size
                start = i + 1 - len(overlap)

            buffer.append(line)
            size += line_size

        if buffer:
            self._append(docs, repository, path, buffer, start, len(lines))
        return docs

    @staticmethod
    def _append(
        docs: List[Document], repository: str, path: str, lines: List[str], start: int, end: int
    ) -> bool:
        text = "\n".join(lines).strip()
        if not text:
            return False
        docs.append(Document.create(repository, path, text, start, max(start, end)))
        return True


def chunk_file(repository: str, path: str, content: str) -> List[Document]:
    """Chunk a file with the configured defaults (functional wrapper)."""
    return Chunker().chunk(repository, path, content)
