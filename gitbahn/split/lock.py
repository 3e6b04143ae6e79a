"""Repository lock preventing concurrent gitbahn runs.

Contains:
- LOCK_FILENAME: Name of the lock file inside the git directory
- RepoLock: PID lock file used as a context manager
"""

import logging
import os
from pathlib import Path
from typing import Optional

from gitbahn.git.exceptions import LockError

logger = logging.getLogger(__name__)

LOCK_FILENAME = "gitbahn.lock"


def _process_alive(pid: int) -> bool:
    """Check whether a process with this PID exists."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user
        return True
    except OSError:
        return False
    return True


class RepoLock:
    """Exclusive ownership of a repository for one gitbahn process.

    The lock file holds the owner's PID. A lock left behind by a process that
    no longer runs is reclaimed.

    Example:
        with RepoLock(backend.git_dir()):
            orchestrator.run(plan)
    """

    def __init__(self, git_dir: Path):
        self.path = Path(git_dir) / LOCK_FILENAME
        self.acquired = False

    def holder(self) -> Optional[int]:
        """PID recorded in the lock file, if any."""
        try:
            content = self.path.read_text().strip()
        except OSError:
            return None
        first_line = content.splitlines()[0] if content else ""
        try:
            return int(first_line)
        except ValueError:
            return None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            LockError: If a live process holds it.
        """
        if self.path.exists():
            pid = self.holder()
            if pid is not None and pid != os.getpid() and _process_alive(pid):
                raise LockError(
                    f"Another gitbahn instance is already running (PID: {pid}). "
                    f"If this is incorrect, remove {self.path}"
                )
            logger.debug("Removing stale lock file %s", self.path)
            self.path.unlink(missing_ok=True)

        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise LockError(f"Another gitbahn instance just acquired {self.path}")
        with os.fdopen(fd, "w") as f:
            f.write(f"{os.getpid()}\n")
        self.acquired = True

    def release(self) -> None:
        if self.acquired:
            self.path.unlink(missing_ok=True)
            self.acquired = False

    def __enter__(self) -> "RepoLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
