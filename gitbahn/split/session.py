"""Session state for commit runs and watch mode.

Contains:
- CommitSession: The commits created by the current session, newest last
- BatchSession: Buffer of observed changes awaiting a flush
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, TypeVar

from gitbahn.git.backend import GitBackend
from gitbahn.split.models import CommitRecord, Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CommitSession:
    """Commits created in this session, in creation order.

    Only these commits may be undone.
    """

    scope: Scope = Scope.STAGED
    records: list[CommitRecord] = field(default_factory=list)

    def record(self, record: CommitRecord) -> None:
        self.records.append(record)

    def pop(self, count: int) -> list[CommitRecord]:
        """Remove and return the newest ``count`` records, oldest first."""
        removed = self.records[len(self.records) - count:]
        del self.records[len(self.records) - count:]
        return removed

    @property
    def last(self) -> Optional[CommitRecord]:
        return self.records[-1] if self.records else None

    def __len__(self) -> int:
        return len(self.records)

    @classmethod
    def from_history(cls, backend: GitBackend, count: int) -> "CommitSession":
        """Rebuild a session from the newest ``count`` commits on HEAD.

        A fresh process has no memory of earlier runs, so recent history
        stands in for the session.
        """
        records = []
        if count > 0:
            output = backend.git(["log", f"-n{count}", "--name-only", "--pretty=format:%x01%H%x00%at%x00%s"])
            for entry in output.split("\x01"):
                if not entry.strip():
                    continue
                header, _, names = entry.partition("\n")
                sha, timestamp, subject = header.split("\x00", 2)
                records.append(CommitRecord(
                    sha=sha,
                    timestamp=datetime.fromtimestamp(int(timestamp)).astimezone(),
                    subject=subject,
                    files=[name for name in names.splitlines() if name],
                ))
        records.reverse()
        return cls(scope=Scope.STAGED, records=records)


class BatchSession:
    """Accumulates changed paths between flushes in watch mode.

    The buffer is owned by the session: ``flush`` hands it to a pipeline and
    clears it only when the pipeline succeeds.
    """

    def __init__(self):
        self.active = False
        self.started_at: Optional[datetime] = None
        self._pending: dict[str, datetime] = {}

    def start(self, now: Optional[datetime] = None) -> None:
        self.active = True
        self.started_at = now or datetime.now().astimezone()
        self._pending.clear()

    def append(self, paths: Iterable[str], now: Optional[datetime] = None) -> int:
        """Add changed paths to the batch.

        Returns:
            How many paths were not pending before.
        """
        if not self.active:
            raise RuntimeError("BatchSession has not been started")
        now = now or datetime.now().astimezone()
        added = 0
        for path in paths:
            if path not in self._pending:
                self._pending[path] = now
                added += 1
        return added

    @property
    def pending(self) -> list[str]:
        """Pending paths in the order they were first observed."""
        return list(self._pending)

    def first_seen(self, path: str) -> Optional[datetime]:
        return self._pending.get(path)

    def is_due(self, now: datetime, flush_every: timedelta) -> bool:
        """Whether the oldest pending change has waited ``flush_every``."""
        if not self._pending:
            return False
        oldest = min(self._pending.values())
        return now - oldest >= flush_every

    def flush(self, pipeline: Callable[[list[str]], T]) -> Optional[T]:
        """Run the pipeline on the pending paths and clear them.

        Returns:
            The pipeline's result, or None when nothing was pending.

        Raises:
            Whatever the pipeline raises; the batch is kept in that case.
        """
        if not self._pending:
            return None
        paths = self.pending
        logger.debug("Flushing %d pending paths", len(paths))
        result = pipeline(paths)
        for path in paths:
            self._pending.pop(path, None)
        return result

    def cancel(self) -> list[str]:
        """Drop the batch and stop the session, returning what was pending."""
        dropped = self.pending
        self._pending.clear()
        self.active = False
        return dropped
