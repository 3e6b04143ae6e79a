"""Dependency-style ordering of changed files.

Contains:
- classify_bucket: Assign a file path to an ordering bucket
- order_files: Sort files by bucket, path depth, then path
- natural_order: The single total order of tagged hunks

The order is a path-based heuristic meant to land configuration and shared
code before the code that uses it. It does not analyse imports, so an
intermediate commit is not guaranteed to build.
"""

import re
from pathlib import PurePosixPath
from typing import Iterable, Mapping

from gitbahn.split.models import Bucket, ChunkCategory, FileChange, TaggedHunk

CONFIG_FILENAMES = {
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
    "pipfile",
    "package.json",
    "tsconfig.json",
    "jsconfig.json",
    "cargo.toml",
    "go.mod",
    "go.sum",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "settings.gradle",
    "settings.gradle.kts",
    "gemfile",
    "composer.json",
    "makefile",
    "cmakelists.txt",
    "dockerfile",
    "docker-compose.yml",
    "docker-compose.yaml",
    ".gitignore",
    ".gitattributes",
    ".editorconfig",
    ".dockerignore",
    ".env.example",
    ".babelrc",
    ".eslintrc",
    ".prettierrc",
}

CONFIG_EXTENSIONS = {
    ".toml",
    ".ini",
    ".cfg",
    ".conf",
    ".yaml",
    ".yml",
    ".json",
    ".lock",
    ".env",
    ".properties",
}

UTILS_MARKERS = {
    "util", "utils", "utility", "utilities", "helper", "helpers", "lib", "libs",
    "common", "shared", "support", "internal",
}

CORE_MARKERS = {
    "model", "models", "schema", "schemas", "entity", "entities", "domain",
    "type", "types", "core",
}

TEST_MARKERS = {"test", "tests", "spec", "specs", "testing", "__tests__", "e2e", "fixture", "fixtures"}

DOCS_MARKERS = {"doc", "docs", "documentation", "readme", "changelog", "license", "contributing"}

DOCS_EXTENSIONS = {".md", ".rst", ".txt", ".adoc"}

_TOKEN_RE = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])|__tests__")


def _tokens(path: str) -> set[str]:
    """Lower-cased words of every path segment (snake, kebab and camel case)."""
    pure = PurePosixPath(path)
    words: set[str] = set()
    parts = list(pure.parts[:-1]) + [pure.name.split(".")[0]]
    for part in parts:
        words.add(part.lower())
        for word in _TOKEN_RE.findall(part):
            words.add(word.lower())
    return words


def classify_bucket(path: str) -> Bucket:
    """Assign a file to an ordering bucket.

    Rules are tested in order: config files, infrastructure markers, domain
    markers, test markers, documentation, and finally feature code.

    Args:
        path: Repository-relative file path.

    Returns:
        The file's Bucket.
    """
    pure = PurePosixPath(path)
    name = pure.name.lower()
    suffix = pure.suffix.lower()
    words = _tokens(path)

    if name in CONFIG_FILENAMES or suffix in CONFIG_EXTENSIONS or name.startswith(".env"):
        return Bucket.CONFIG
    if words & UTILS_MARKERS:
        return Bucket.UTILS
    if words & CORE_MARKERS:
        return Bucket.CORE
    if words & TEST_MARKERS or ".test." in name or ".spec." in name:
        return Bucket.TEST
    if words & DOCS_MARKERS or suffix in DOCS_EXTENSIONS:
        return Bucket.DOCS
    return Bucket.FEATURE


def _file_key(path: str) -> tuple[int, int, str]:
    return classify_bucket(path), len(PurePosixPath(path).parts), path


def order_files(files: Iterable[FileChange]) -> list[FileChange]:
    """Sort files by bucket, then path depth, then lexical path."""
    return sorted(files, key=lambda f: _file_key(f.path))


def natural_order(
    files: Iterable[FileChange],
    tagged_by_path: Mapping[str, list[TaggedHunk]],
) -> list[TaggedHunk]:
    """Return every tagged hunk in the natural order.

    Files follow order_files; within a file the preamble comes first, then
    chunks in file order, then hunks by line.
    """
    ordered: list[TaggedHunk] = []
    for file_change in order_files(files):
        tagged = tagged_by_path.get(file_change.path, [])
        ordered.extend(sorted(
            tagged,
            key=lambda t: (
                0 if t.chunk.category == ChunkCategory.PREAMBLE else 1,
                t.chunk_index,
                t.hunk.new_start,
                t.hunk.id,
            ),
        ))
    return ordered
