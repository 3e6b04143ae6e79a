"""Rollback of commits created by the current session.

Contains:
- UndoManager: Undo the most recent commits of a CommitSession
"""

import logging

from gitbahn.git.backend import GitBackend
from gitbahn.split.errors import UndoRangeError
from gitbahn.split.models import CommitRecord, Scope
from gitbahn.split.session import CommitSession

logger = logging.getLogger(__name__)


class UndoManager:
    """Moves HEAD back over session commits, keeping the working tree."""

    def __init__(self, backend: GitBackend, session: CommitSession):
        self.backend = backend
        self.session = session

    def check(self, count: int) -> None:
        """Validate an undo request without touching the repository.

        Raises:
            UndoRangeError: If count is out of range or HEAD moved on.
        """
        available = len(self.session)
        if count < 1:
            raise UndoRangeError(f"Undo count must be at least 1, got {count}")
        if count > available:
            raise UndoRangeError(
                f"Cannot undo {count} commit(s): this session created {available}"
            )
        head = self.backend.head()
        if head != self.session.last.sha:
            raise UndoRangeError(
                "HEAD no longer points at the last commit of this session; refusing to undo"
            )

    def undo(self, count: int = 1) -> list[CommitRecord]:
        """Undo the newest ``count`` session commits.

        HEAD moves back with a soft reset, so file contents are untouched.
        When the session committed unstaged changes, the touched paths are
        also reset in the index so they are unstaged again.

        Args:
            count: Number of commits to undo.

        Returns:
            The removed records, oldest first.

        Raises:
            UndoRangeError: If the request is out of range (nothing changes).
            BackendError: If git fails while resetting.
        """
        self.check(count)
        removed = self.session.records[len(self.session) - count:]

        target = self.backend.reset_soft(count)
        logger.debug("Moved HEAD back %d commit(s) to %s", count, target or "(unborn)")

        if self.session.scope != Scope.STAGED:
            paths = sorted({path for record in removed for path in record.files})
            self.backend.reset_paths(target, paths)

        return self.session.pop(count)
