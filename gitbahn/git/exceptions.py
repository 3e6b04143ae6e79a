"""Git-related exception classes.

Contains all exception classes for Git operations:
- GitError: Base exception for git-related errors
- NoChangesError: Raised when the changeset is empty
- BackendError: Raised when staging, committing or pushing fails mid-run
- LockError: Raised when another gitbahn process owns the repository
"""


class GitError(Exception):
    """Custom exception for git-related errors."""

    pass


class NoChangesError(GitError):
    """Raised when there are no changes to decompose."""

    pass


class BackendError(GitError):
    """Raised when a repository mutation (stage, commit, push) fails."""

    pass


class LockError(GitError):
    """Raised when the repository lock is held by another live process."""

    pass
