"""Diff text prepared for commit-message generation.

Contains:
- DEFAULT_DIFF_EXCLUDE_PATTERNS: Default patterns for files to exclude from the message diff
- _should_exclude_file: Check if a file should be excluded based on patterns
- get_message_diff: Get the staged diff of a group, excluding ignored files
"""

import fnmatch
from pathlib import Path
from typing import Optional

from gitbahn.git.backend import GitBackend


# Lock files and other generated artifacts inflate the diff without adding
# anything a commit message should describe. Repository config overrides this.
DEFAULT_DIFF_EXCLUDE_PATTERNS = [
    "poetry.lock",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Cargo.lock",
    "Gemfile.lock",
    "composer.lock",
    "go.sum",
]

IGNORED_ONLY_PLACEHOLDER = "(Only ignored files staged - no code changes to describe)"


def _should_exclude_file(filename: str, patterns: list[str]) -> bool:
    """Check if a file should be excluded based on patterns.

    Supports glob patterns like *.lock, build/*, etc.

    Args:
        filename: The file path to check.
        patterns: List of patterns to match against.

    Returns:
        True if the file should be excluded.
    """
    for pattern in patterns:
        if filename == pattern:
            return True
        if fnmatch.fnmatch(filename, pattern):
            return True
        # Bare patterns also match the basename
        if fnmatch.fnmatch(Path(filename).name, pattern):
            return True
    return False


def get_message_diff(
    backend: GitBackend,
    paths: list[str],
    ignore_patterns: Optional[list[str]] = None,
    max_chars: int = 50000,
) -> str:
    """Get the staged diff for a group's files, excluding ignored files.

    Args:
        backend: Repository backend.
        paths: Files touched by the group being committed.
        ignore_patterns: Patterns excluded from the diff (defaults apply when None).
        max_chars: Maximum characters for the diff output.

    Returns:
        The diff text, a placeholder when only ignored files are staged,
        or an empty string when nothing is staged for the paths.
    """
    if ignore_patterns is None:
        ignore_patterns = DEFAULT_DIFF_EXCLUDE_PATTERNS

    files_to_include = [p for p in paths if not _should_exclude_file(p, ignore_patterns)]
    if not files_to_include:
        return IGNORED_ONLY_PLACEHOLDER

    diff = backend.staged_diff(files_to_include)
    if len(diff) > max_chars:
        diff = diff[:max_chars] + "\n...[truncated]\n"
    return diff
