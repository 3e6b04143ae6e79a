"""Tests for gitbahn.split.executor module (real git repositories)."""

import random
import subprocess
from datetime import datetime, timedelta, timezone

import pytest

from conftest import git

from gitbahn.git.backend import GitBackend
from gitbahn.git.exceptions import BackendError
from gitbahn.llm.exceptions import LLMError
from gitbahn.split.executor import CommitOrchestrator
from gitbahn.split.ingest import ingest_changeset
from gitbahn.split.models import Scope
from gitbahn.split.planner import SplitOptions, plan_split
from gitbahn.split.session import CommitSession

START = datetime(2025, 1, 5, 9, 0, tzinfo=timezone.utc)


def _output(repo, *args):
    return subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    ).stdout


@pytest.fixture
def staged_repo(temp_repo, utils_strings_source):
    """A repository with a config file and a utils module staged."""
    (temp_repo / "utils").mkdir()
    (temp_repo / "utils" / "strings.py").write_text(utils_strings_source)
    (temp_repo / "config.json").write_text('{"debug": false}\n')
    git(temp_repo, "add", "-A")
    return temp_repo


def _plan(repo, scope=Scope.STAGED, **options):
    backend = GitBackend(repo)
    changeset = ingest_changeset(backend, scope)
    values = dict(start=START, spread=timedelta(hours=4))
    values.update(options)
    return backend, plan_split(changeset, SplitOptions(**values), random.Random(1))


class TestCommitOrchestrator:
    """Tests for CommitOrchestrator.run."""

    def test_commits_in_plan_order_with_dates(self, staged_repo):
        backend, plan = _plan(staged_repo)

        report = CommitOrchestrator(backend).run(plan)

        assert report.succeeded
        assert len(report.records) == len(plan) == 5
        subjects = _output(staged_repo, "log", "--reverse", "--pretty=%s").splitlines()
        assert subjects[1:] == [c.label for c in plan.commits]
        dates = _output(staged_repo, "log", "--reverse", "--pretty=%at %ct").splitlines()[1:]
        for line, commit in zip(dates, plan.commits):
            author, committer = line.split()
            assert int(author) == int(commit.timestamp.timestamp())
            assert int(committer) == int(commit.timestamp.timestamp())

    def test_each_commit_holds_cumulative_content(self, staged_repo, utils_strings_source):
        backend, plan = _plan(staged_repo)

        report = CommitOrchestrator(backend).run(plan)

        # Commit 2 adds the imports of utils/strings.py only
        second = report.records[1].sha
        content = _output(staged_repo, "show", f"{second}:utils/strings.py")
        assert content == "".join(utils_strings_source.splitlines(keepends=True)[:4])
        final = _output(staged_repo, "show", "HEAD:utils/strings.py")
        assert final == utils_strings_source

    def test_final_tree_matches_snapshot(self, staged_repo):
        backend, plan = _plan(staged_repo)

        CommitOrchestrator(backend).run(plan)

        assert _output(staged_repo, "status", "--porcelain") == ""

    def test_records_go_to_session(self, staged_repo):
        backend, plan = _plan(staged_repo)
        session = CommitSession()
        seen = []

        report = CommitOrchestrator(backend, session=session).run(
            plan, on_commit=lambda commit, record: seen.append(commit.index)
        )

        assert session.records == report.records
        assert seen == [1, 2, 3, 4, 5]
        assert session.last.sha == backend.head()
        assert report.records[0].files == ["config.json"]

    def test_unstaged_scope_leaves_other_changes(self, temp_repo):
        (temp_repo / "README.md").write_text("# Test Repo\n\nUsage.\n")
        (temp_repo / "notes.txt").write_text("todo\n")
        backend, plan = _plan(temp_repo, scope=Scope.UNSTAGED)

        report = CommitOrchestrator(backend).run(plan)

        assert report.succeeded
        assert _output(temp_repo, "status", "--porcelain") == ""

    def test_message_generator_used(self, staged_repo, mocker):
        backend, plan = _plan(staged_repo, target_commits=2)
        generator = mocker.Mock()
        generator.generate.side_effect = ["Add config\n\n- Debug flag", "Add string helpers"]

        report = CommitOrchestrator(backend, message_generator=generator).run(plan)

        assert [r.subject for r in report.records] == ["Add config", "Add string helpers"]
        first_diff = generator.generate.call_args_list[0].args[0]
        assert "config.json" in first_diff
        assert "utils/strings.py" not in first_diff
        body = _output(staged_repo, "log", "-n1", "--skip=1", "--pretty=%B")
        assert "- Debug flag" in body

    def test_generator_failure_falls_back_to_label(self, staged_repo, mocker):
        backend, plan = _plan(staged_repo, target_commits=2)
        generator = mocker.Mock()
        generator.generate.side_effect = [LLMError("rate limited"), "   "]

        report = CommitOrchestrator(backend, message_generator=generator).run(plan)

        assert [r.subject for r in report.records] == [c.label for c in plan.commits]
        assert len(report.warnings) == 2
        assert "rate limited" in report.warnings[0]

    def test_backend_failure_reports_pending(self, staged_repo, mocker):
        backend, plan = _plan(staged_repo)
        real_commit = backend.commit
        calls = {"n": 0}

        def flaky(message, author_time, committer_time):
            calls["n"] += 1
            if calls["n"] == 3:
                raise BackendError("Failed to commit: hook said no")
            return real_commit(message, author_time, committer_time)

        mocker.patch.object(backend, "commit", side_effect=flaky)

        report = CommitOrchestrator(backend).run(plan)

        assert not report.succeeded
        assert isinstance(report.error, BackendError)
        assert len(report.records) == 2
        assert [c.index for c in report.pending] == [3, 4, 5]
        # Index is back at HEAD: nothing staged beyond the two commits
        assert _output(staged_repo, "diff", "--cached", "--name-only") == ""

    def test_unexpected_generator_error_falls_back_to_label(self, staged_repo, mocker):
        """Test that any generator exception leaves the run going."""
        backend, plan = _plan(staged_repo, target_commits=2)
        generator = mocker.Mock()
        generator.generate.side_effect = ["Add config", RuntimeError("socket closed")]

        report = CommitOrchestrator(backend, message_generator=generator).run(plan)

        assert report.succeeded
        assert [r.subject for r in report.records] == ["Add config", plan.commits[1].label]
        assert "socket closed" in report.warnings[0]
        assert _output(staged_repo, "status", "--porcelain") == ""

    def test_interrupt_restores_index(self, staged_repo, mocker):
        """Test that Ctrl-C during group 2 keeps commit 1 and unstages group 2."""
        backend, plan = _plan(staged_repo)
        generator = mocker.Mock()
        generator.generate.side_effect = ["Add config", KeyboardInterrupt()]

        with pytest.raises(KeyboardInterrupt):
            CommitOrchestrator(backend, message_generator=generator).run(plan)

        assert _output(staged_repo, "log", "--pretty=%s").splitlines()[0] == "Add config"
        index_tree = _output(staged_repo, "write-tree").strip()
        head_tree = _output(staged_repo, "rev-parse", "HEAD^{tree}").strip()
        assert index_tree == head_tree

    def test_unexpected_commit_error_restores_index(self, staged_repo, mocker):
        """Test that a non-git failure while committing is re-raised after a restore."""
        backend, plan = _plan(staged_repo)
        real_commit = backend.commit
        calls = {"n": 0}

        def broken(message, author_time, committer_time):
            calls["n"] += 1
            if calls["n"] == 2:
                raise ValueError("bad timestamp")
            return real_commit(message, author_time, committer_time)

        mocker.patch.object(backend, "commit", side_effect=broken)

        with pytest.raises(ValueError):
            CommitOrchestrator(backend).run(plan)

        assert len(_output(staged_repo, "log", "--pretty=%s").splitlines()) == 2
        index_tree = _output(staged_repo, "write-tree").strip()
        assert index_tree == _output(staged_repo, "rev-parse", "HEAD^{tree}").strip()
