"""Tests for gitbahn.split.ingest module (real git repositories)."""

import pytest

from conftest import git

from gitbahn.git.backend import EMPTY_TREE, GitBackend
from gitbahn.git.exceptions import GitError, NoChangesError
from gitbahn.split.ingest import ingest_changeset
from gitbahn.split.models import FileStatus, Scope


class TestIngestStaged:
    """Tests for the staged scope."""

    def test_modified_file(self, temp_repo):
        (temp_repo / "README.md").write_text("# Test Repo\n\nMore text.\n")
        git(temp_repo, "add", "README.md")

        changeset = ingest_changeset(GitBackend(temp_repo), Scope.STAGED)

        assert changeset.scope == Scope.STAGED
        assert len(changeset) == 1
        change = changeset.file("README.md")
        assert change.status == FileStatus.MODIFIED
        assert change.old_text == "# Test Repo\n"
        assert change.new_text == "# Test Repo\n\nMore text.\n"
        assert len(change.hunks) == 1
        assert change.hunks[0].new_start == 2

    def test_added_file_is_insertion(self, temp_repo):
        (temp_repo / "app.py").write_text("print('hi')\n")
        git(temp_repo, "add", "app.py")

        changeset = ingest_changeset(GitBackend(temp_repo))
        change = changeset.file("app.py")

        assert change.status == FileStatus.ADDED
        assert change.old_text is None
        assert change.hunks[0].is_insertion
        assert change.hunks[0].new_len == 1

    def test_deleted_file_is_opaque(self, temp_repo):
        git(temp_repo, "rm", "-q", "README.md")

        changeset = ingest_changeset(GitBackend(temp_repo))
        change = changeset.file("README.md")

        assert change.status == FileStatus.DELETED
        assert change.is_opaque

    def test_rename_is_opaque_with_blob(self, temp_repo):
        git(temp_repo, "mv", "README.md", "GUIDE.md")

        changeset = ingest_changeset(GitBackend(temp_repo))
        change = changeset.file("GUIDE.md")

        assert change.status == FileStatus.RENAMED
        assert change.old_path == "README.md"
        assert change.is_opaque
        assert change.new_blob
        assert change.touched_paths == ["README.md", "GUIDE.md"]

    def test_binary_file(self, temp_repo):
        (temp_repo / "data.bin").write_bytes(b"\x00\x01\x02binary")
        git(temp_repo, "add", "data.bin")

        changeset = ingest_changeset(GitBackend(temp_repo))
        change = changeset.file("data.bin")

        assert change.binary
        assert change.is_opaque
        assert change.new_blob

    def test_no_staged_changes(self, temp_repo):
        with pytest.raises(NoChangesError):
            ingest_changeset(GitBackend(temp_repo), Scope.STAGED)

    def test_unborn_repository(self, empty_repo):
        (empty_repo / "first.txt").write_text("one\n")
        git(empty_repo, "add", "first.txt")

        changeset = ingest_changeset(GitBackend(empty_repo))

        assert changeset.base == EMPTY_TREE
        assert changeset.file("first.txt").status == FileStatus.ADDED


class TestIngestWorkingTree:
    """Tests for the unstaged and all scopes."""

    def test_unstaged_includes_untracked(self, temp_repo):
        (temp_repo / "README.md").write_text("# Changed\n")
        (temp_repo / "new.txt").write_text("a\nb\n")

        changeset = ingest_changeset(GitBackend(temp_repo), Scope.UNSTAGED)

        assert {f.path for f in changeset.files} == {"README.md", "new.txt"}
        untracked = changeset.file("new.txt")
        assert untracked.status == FileStatus.ADDED
        assert untracked.hunks[0].new_len == 2

    def test_unstaged_requires_clean_index(self, temp_repo):
        (temp_repo / "README.md").write_text("# Changed\n")
        git(temp_repo, "add", "README.md")

        with pytest.raises(GitError, match="already has staged changes"):
            ingest_changeset(GitBackend(temp_repo), Scope.UNSTAGED)

    def test_all_combines_staged_and_unstaged(self, temp_repo):
        (temp_repo / "README.md").write_text("# Changed\n")
        git(temp_repo, "add", "README.md")
        (temp_repo / "README.md").write_text("# Changed again\n")

        changeset = ingest_changeset(GitBackend(temp_repo), Scope.ALL)

        assert changeset.file("README.md").new_text == "# Changed again\n"

    def test_paths_limit_changeset(self, temp_repo):
        (temp_repo / "a.txt").write_text("a\n")
        (temp_repo / "b.txt").write_text("b\n")

        changeset = ingest_changeset(GitBackend(temp_repo), Scope.ALL, ["a.txt"])

        assert [f.path for f in changeset.files] == ["a.txt"]

    def test_empty_working_tree(self, temp_repo):
        with pytest.raises(NoChangesError):
            ingest_changeset(GitBackend(temp_repo), Scope.ALL)
