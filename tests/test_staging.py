"""Tests for gitbahn.split.staging module."""

import pytest

from conftest import make_file_change

from gitbahn.split.chunker import chunk_file
from gitbahn.split.errors import InvariantViolationError
from gitbahn.split.hunks import tag_hunks
from gitbahn.split.models import FileChange, FileStatus, Hunk
from gitbahn.split.staging import materialize, stage_file, verify_materialization

OLD = "one\ntwo\nthree\nfour\nfive\n"
# Replace "two", insert after "four", delete "five"
NEW = "one\nTWO\nthree\nfour\nfour and a half\n"
HUNKS = [
    Hunk("r", "f.txt", 2, 1, 2, 1),
    Hunk("i", "f.txt", 4, 0, 5, 1),
    Hunk("d", "f.txt", 5, 1, 5, 0),
]


@pytest.fixture
def change():
    return make_file_change("f.txt", NEW, old_text=OLD, hunks=HUNKS)


class TestMaterialize:
    """Tests for materialize."""

    def test_nothing_committed_is_old_content(self, change):
        assert "".join(materialize(change, HUNKS, set())) == OLD

    def test_everything_committed_is_new_content(self, change):
        assert "".join(materialize(change, HUNKS, {"r", "i", "d"})) == NEW

    def test_single_replacement(self, change):
        assert "".join(materialize(change, HUNKS, {"r"})) == "one\nTWO\nthree\nfour\nfive\n"

    def test_insertion_only(self, change):
        assert "".join(materialize(change, HUNKS, {"i"})) == "one\ntwo\nthree\nfour\nfour and a half\nfive\n"

    def test_deletion_only(self, change):
        assert "".join(materialize(change, HUNKS, {"d"})) == "one\ntwo\nthree\nfour\n"

    def test_insertion_pieces_apply_in_order(self, utils_strings_source):
        added = make_file_change("utils/strings.py", utils_strings_source)
        pieces = [t.hunk for t in tag_hunks(added, chunk_file(added).chunks).tagged]

        first_two = {pieces[0].id, pieces[1].id}
        lines = materialize(added, pieces, first_two)

        assert "".join(lines) == "".join(added.new_lines[:8])

    def test_missing_trailing_newline(self):
        change = make_file_change(
            "g.txt", "a\nb", old_text="a\n", hunks=[Hunk("x", "g.txt", 1, 0, 2, 1)]
        )

        assert "".join(materialize(change, change.hunks, {"x"})) == "a\nb"


class TestVerifyMaterialization:
    """Tests for verify_materialization."""

    def test_consistent_atoms(self, change):
        verify_materialization([change], {"f.txt": tuple(HUNKS)})

    def test_missing_atom_is_detected(self, change):
        with pytest.raises(InvariantViolationError, match="f.txt"):
            verify_materialization([change], {"f.txt": tuple(HUNKS[:2])})

    def test_opaque_files_are_skipped(self):
        opaque = FileChange(
            path="data.bin",
            status=FileStatus.ADDED,
            hunks=(Hunk("b", "data.bin", 0, 0, 0, 0, opaque=True),),
            binary=True,
            new_blob="abc123",
        )

        verify_materialization([opaque], {"data.bin": opaque.hunks})


class TestStageFile:
    """Tests for stage_file against a mocked backend."""

    def test_text_file_stages_content(self, mocker, change):
        backend = mocker.Mock()

        stage_file(backend, change, HUNKS, {"r"})

        backend.stage_content.assert_called_once_with(
            "f.txt", b"one\nTWO\nthree\nfour\nfive\n", "100644"
        )

    def test_added_file_untouched_until_committed(self, mocker):
        backend = mocker.Mock()
        added = make_file_change("new.txt", "x\n")

        stage_file(backend, added, added.hunks, set())

        backend.stage_content.assert_not_called()

    def test_deleted_file_is_removed(self, mocker):
        backend = mocker.Mock()
        deleted = FileChange(
            path="gone.txt",
            status=FileStatus.DELETED,
            hunks=(Hunk("g", "gone.txt", 0, 0, 0, 0, opaque=True),),
        )

        stage_file(backend, deleted, deleted.hunks, {"g"})

        backend.remove_from_index.assert_called_once_with("gone.txt")

    def test_rename_drops_old_path(self, mocker):
        backend = mocker.Mock()
        renamed = FileChange(
            path="new.md",
            status=FileStatus.RENAMED,
            hunks=(Hunk("m", "new.md", 0, 0, 0, 0, opaque=True),),
            old_path="old.md",
            new_mode="100644",
            new_blob="deadbeef",
        )

        stage_file(backend, renamed, renamed.hunks, {"m"})

        backend.remove_from_index.assert_called_once_with("old.md")
        backend.stage_blob.assert_called_once_with("new.md", "deadbeef", "100644")

    def test_opaque_without_blob(self, mocker):
        backend = mocker.Mock()
        binary = FileChange(
            path="data.bin",
            status=FileStatus.ADDED,
            hunks=(Hunk("b", "data.bin", 0, 0, 0, 0, opaque=True),),
            binary=True,
        )

        with pytest.raises(InvariantViolationError):
            stage_file(backend, binary, binary.hunks, {"b"})
