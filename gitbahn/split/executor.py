"""Sequential execution of a split plan.

Contains:
- RunReport: Commits created, groups left pending, and any fatal error
- CommitOrchestrator: Stage, describe and commit each planned group in order
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from gitbahn.git.backend import GitBackend
from gitbahn.git.diff import get_message_diff
from gitbahn.git.exceptions import GitError
from gitbahn.llm.messages import MessageGenerator
from gitbahn.split.models import CommitRecord, ScheduledCommit
from gitbahn.split.planner import SplitPlan
from gitbahn.split.session import CommitSession
from gitbahn.split.staging import stage_group, verify_materialization

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Outcome of one orchestrated run."""

    records: list[CommitRecord] = field(default_factory=list)
    pending: list[ScheduledCommit] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[GitError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.pending


class CommitOrchestrator:
    """Turns a SplitPlan into commits, one group at a time.

    Each group is staged as the cumulative content of its files (every
    earlier group's hunks plus its own), so every commit's tree contains
    exactly the changes planned up to that point.
    """

    def __init__(
        self,
        backend: GitBackend,
        message_generator: Optional[MessageGenerator] = None,
        session: Optional[CommitSession] = None,
        ignore_patterns: Optional[list[str]] = None,
        max_diff_chars: int = 50000,
    ):
        self.backend = backend
        self.message_generator = message_generator
        self.session = session if session is not None else CommitSession()
        self.ignore_patterns = ignore_patterns
        self.max_diff_chars = max_diff_chars

    def _message(self, commit: ScheduledCommit, paths: list[str], report: RunReport) -> str:
        """Message for a staged group, falling back to its label."""
        if commit.message:
            return commit.message
        if self.message_generator is None:
            return commit.label

        diff = get_message_diff(self.backend, paths, self.ignore_patterns, self.max_diff_chars)
        try:
            message = self.message_generator.generate(diff)
        except Exception as e:
            logger.debug("Message generation failed for commit %d", commit.index, exc_info=True)
            report.warnings.append(f"Commit {commit.index}: message generation failed ({e}); using label")
            return commit.label
        if not message or not message.strip():
            report.warnings.append(f"Commit {commit.index}: empty message; using label")
            return commit.label
        return message.strip()

    def run(
        self,
        plan: SplitPlan,
        on_commit: Optional[Callable[[ScheduledCommit, CommitRecord], None]] = None,
    ) -> RunReport:
        """Execute every planned commit in order.

        Args:
            plan: The plan to execute.
            on_commit: Called after each commit is created.

        Returns:
            RunReport. On a git failure the report carries the error, the
            commits created so far and the groups that were not committed;
            the index is reset to HEAD.

        Raises:
            InvariantViolationError: If applying every hunk would not rebuild
                the snapshot's content.
            KeyboardInterrupt: After restoring the index of the in-flight group.
                Any other unexpected error is re-raised after the same restore.
        """
        report = RunReport()
        files = plan.files
        verify_materialization(files.values(), plan.atoms_by_path)

        committed: set[str] = set()
        self.backend.unstage_all()

        for position, commit in enumerate(plan.commits):
            snapshot = None
            try:
                snapshot = self.backend.write_tree()
                stage_group(self.backend, commit.group, files, plan.atoms_by_path, committed)

                touched: list[str] = []
                for path in commit.group.files:
                    for touched_path in files[path].touched_paths:
                        if touched_path not in touched:
                            touched.append(touched_path)

                message = self._message(commit, touched, report)
                sha = self.backend.commit(message, commit.timestamp, commit.timestamp)
            except GitError as e:
                logger.debug("Commit %d failed: %s", commit.index, e)
                report.error = e
                report.pending = list(plan.commits[position:])
                try:
                    self.backend.unstage_all()
                except GitError as reset_error:
                    report.warnings.append(f"Could not reset the index: {reset_error}")
                return report
            except BaseException:
                if snapshot is not None:
                    self.backend.read_tree(snapshot)
                raise

            record = CommitRecord(
                sha=sha,
                timestamp=commit.timestamp,
                subject=message.split("\n", 1)[0],
                files=touched,
            )
            self.session.record(record)
            report.records.append(record)
            logger.debug("Created commit %s for group %d", sha[:12], commit.index)
            if on_commit is not None:
                on_commit(commit, record)

        return report
