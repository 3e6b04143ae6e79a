"""Git plumbing for gitbahn.

This package provides the repository access layer with:
- exceptions: GitError, NoChangesError, BackendError, LockError
- runner: _run_git_command, _run_git_bytes, get_repo_root
- backend: GitBackend, EMPTY_TREE, format_git_date
- diff: get_message_diff, _should_exclude_file, DEFAULT_DIFF_EXCLUDE_PATTERNS
"""

# Exceptions
from gitbahn.git.exceptions import (
    GitError,
    NoChangesError,
    BackendError,
    LockError,
)

# Runner utilities
from gitbahn.git.runner import (
    _run_git_command,
    _run_git_bytes,
    get_repo_root,
)

# Backend
from gitbahn.git.backend import (
    GitBackend,
    EMPTY_TREE,
    format_git_date,
)

# Diff utilities
from gitbahn.git.diff import (
    get_message_diff,
    _should_exclude_file,
    DEFAULT_DIFF_EXCLUDE_PATTERNS,
)


__all__ = [
    # Exceptions
    "GitError",
    "NoChangesError",
    "BackendError",
    "LockError",
    # Runner
    "_run_git_command",
    "_run_git_bytes",
    "get_repo_root",
    # Backend
    "GitBackend",
    "EMPTY_TREE",
    "format_git_date",
    # Diff
    "get_message_diff",
    "_should_exclude_file",
    "DEFAULT_DIFF_EXCLUDE_PATTERNS",
]
