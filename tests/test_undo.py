"""Tests for gitbahn.split.undo module (real git repositories)."""

import random
import subprocess
from datetime import datetime, timedelta, timezone

import pytest

from conftest import git

from gitbahn.git.backend import GitBackend
from gitbahn.split.errors import UndoRangeError
from gitbahn.split.executor import CommitOrchestrator
from gitbahn.split.ingest import ingest_changeset
from gitbahn.split.models import Scope, SplitMode
from gitbahn.split.planner import SplitOptions, plan_split
from gitbahn.split.session import CommitSession
from gitbahn.split.undo import UndoManager

START = datetime(2025, 1, 5, 9, 0, tzinfo=timezone.utc)


def _output(repo, *args):
    return subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    ).stdout


def _run(repo, scope=Scope.STAGED):
    """Commit three files as three commits and return backend and session."""
    backend = GitBackend(repo)
    changeset = ingest_changeset(backend, scope)
    options = SplitOptions(mode=SplitMode.WHOLE_FILE, start=START, spread=timedelta(hours=1))
    plan = plan_split(changeset, options, random.Random(1))
    session = CommitSession(scope=scope)
    CommitOrchestrator(backend, session=session).run(plan)
    return backend, session


@pytest.fixture
def three_files(temp_repo):
    (temp_repo / "config.json").write_text("{}\n")
    (temp_repo / "lib").mkdir()
    (temp_repo / "lib" / "helpers.py").write_text("def helper():\n    return 1\n")
    (temp_repo / "app.py").write_text("from lib.helpers import helper\n")
    return temp_repo


def _worktree(repo):
    return {
        path: (repo / path).read_bytes()
        for path in ("README.md", "config.json", "lib/helpers.py", "app.py")
    }


class TestUndoManager:
    """Tests for UndoManager."""

    def test_undo_two_of_three(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)
        first_sha = session.records[0].sha
        before = _worktree(three_files)

        removed = UndoManager(backend, session).undo(2)

        assert len(removed) == 2
        assert backend.head() == first_sha
        assert len(session) == 1
        assert _worktree(three_files) == before
        # Undone changes stay staged
        staged = _output(three_files, "diff", "--cached", "--name-only").split()
        assert sorted(staged) == sorted(r.files[0] for r in removed)

    def test_removed_records_are_oldest_first(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)
        expected = [r.sha for r in session.records[1:]]

        removed = UndoManager(backend, session).undo(2)

        assert [r.sha for r in removed] == expected

    def test_unstaged_session_unstages_paths(self, three_files):
        backend, session = _run(three_files, Scope.UNSTAGED)

        UndoManager(backend, session).undo(3)

        assert _output(three_files, "diff", "--cached", "--name-only") == ""
        assert "app.py" in _output(three_files, "status", "--porcelain")

    def test_count_above_session(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)

        with pytest.raises(UndoRangeError, match="created 3"):
            UndoManager(backend, session).undo(4)
        assert backend.head() == session.last.sha

    def test_count_below_one(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)

        with pytest.raises(UndoRangeError):
            UndoManager(backend, session).check(0)

    def test_head_moved(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)
        (three_files / "extra.txt").write_text("x\n")
        git(three_files, "add", "extra.txt")
        git(three_files, "commit", "-q", "-m", "Manual commit")

        with pytest.raises(UndoRangeError, match="HEAD"):
            UndoManager(backend, session).undo(1)

    def test_undo_root_commits(self, empty_repo):
        (empty_repo / "a.txt").write_text("a\n")
        git(empty_repo, "add", "a.txt")
        backend, session = _run(empty_repo)

        UndoManager(backend, session).undo(1)

        assert backend.head() is None
        assert (empty_repo / "a.txt").read_text() == "a\n"

    def test_session_rebuilt_from_history(self, three_files):
        git(three_files, "add", "-A")
        backend, session = _run(three_files)

        rebuilt = CommitSession.from_history(backend, 3)

        assert [r.sha for r in rebuilt.records] == [r.sha for r in session.records]
        assert rebuilt.records[0].files == ["config.json"]
        UndoManager(backend, rebuilt).undo(3)
        assert _output(three_files, "log", "--pretty=%s").splitlines() == ["Initial commit"]
