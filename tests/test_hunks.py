"""Tests for gitbahn.split.hunks module."""

from conftest import make_file_change

from gitbahn.split.chunker import chunk_file
from gitbahn.split.hunks import suggest_merges, tag_hunks
from gitbahn.split.models import Bucket, ChunkCategory, FileStatus, Hunk, LogicalChunk


def _hunk(hunk_id, old_start, old_len, new_start, new_len, path="pkg/app.py"):
    return Hunk(
        id=hunk_id,
        file_path=path,
        old_start=old_start,
        old_len=old_len,
        new_start=new_start,
        new_len=new_len,
    )


CHUNKS = (
    LogicalChunk("imports", ChunkCategory.PREAMBLE, 1, 3),
    LogicalChunk("fn alpha", ChunkCategory.FUNCTION, 4, 9),
    LogicalChunk("fn beta", ChunkCategory.FUNCTION, 10, 15),
)


def _change(hunks, path="pkg/app.py"):
    text = "".join(f"line {i}\n" for i in range(1, 16))
    return make_file_change(path, text, old_text=text, hunks=hunks, status=FileStatus.MODIFIED)


class TestTagHunks:
    """Tests for tag_hunks."""

    def test_hunks_map_to_containing_chunk(self):
        change = _change([_hunk("a", 2, 1, 2, 1), _hunk("b", 11, 1, 11, 1)])

        result = tag_hunks(change, CHUNKS)

        assert [(t.id, t.chunk.name) for t in result.tagged] == [("a", "imports"), ("b", "fn beta")]
        assert result.tagged[1].chunk_index == 2

    def test_replacement_widens_chunk(self):
        change = _change([_hunk("a", 8, 4, 8, 4)])

        result = tag_hunks(change, CHUNKS)

        assert result.tagged[0].chunk.name == "fn alpha"
        assert result.chunks[1].end == 11
        assert result.chunks[2].start == 12

    def test_widening_can_swallow_next_chunk(self):
        change = _change([_hunk("a", 5, 11, 5, 11)])

        result = tag_hunks(change, CHUNKS)

        assert [c.name for c in result.chunks] == ["imports", "fn alpha"]
        assert result.chunks[1].end == 15

    def test_deletion_anchors_on_preceding_line(self):
        change = _change([_hunk("d", 10, 2, 9, 0)])

        result = tag_hunks(change, CHUNKS)

        assert result.tagged[0].chunk.name == "fn alpha"

    def test_deletion_at_top_of_file(self):
        change = _change([_hunk("d", 1, 1, 0, 0)])

        result = tag_hunks(change, CHUNKS)

        assert result.tagged[0].chunk.name == "imports"

    def test_insertion_crossing_chunks_is_cut(self):
        change = _change([_hunk("ins", 0, 0, 1, 15)])

        result = tag_hunks(change, CHUNKS)
        pieces = [t.hunk for t in result.tagged]

        assert [p.id for p in pieces] == ["ins.1", "ins.2", "ins.3"]
        assert [(p.new_start, p.new_len) for p in pieces] == [(1, 3), (4, 6), (10, 6)]
        assert all(p.parent == "ins" for p in pieces)
        assert [t.chunk_index for t in result.tagged] == [0, 1, 2]

    def test_insertion_inside_one_chunk_is_kept(self):
        change = _change([_hunk("ins", 5, 0, 6, 2)])

        result = tag_hunks(change, CHUNKS)

        assert result.tagged[0].hunk.id == "ins"
        assert result.tagged[0].hunk.parent is None

    def test_bucket_comes_from_path(self):
        change = _change([_hunk("a", 2, 1, 2, 1, path="tests/test_app.py")], path="tests/test_app.py")

        result = tag_hunks(change, CHUNKS)

        assert result.tagged[0].bucket == Bucket.TEST

    def test_added_file_uses_chunker_output(self, utils_strings_source):
        change = make_file_change("utils/strings.py", utils_strings_source)

        result = tag_hunks(change, chunk_file(change).chunks)

        assert [t.chunk.name for t in result.tagged] == ["imports", "fn slugify", "fn shout", "fn letters"]
        assert sum(t.hunk.new_len for t in result.tagged) == 14


class TestSuggestMerges:
    """Tests for suggest_merges."""

    def test_adjacent_chunks_are_suggested(self):
        change = _change([_hunk("a", 2, 1, 2, 1), _hunk("b", 5, 1, 5, 1)])
        tagged = tag_hunks(change, CHUNKS).tagged

        assert suggest_merges(tagged) == {("a", "b")}

    def test_distant_hunks_in_far_chunks_are_not(self):
        change = _change([_hunk("a", 1, 1, 1, 1), _hunk("b", 14, 1, 14, 1)])
        tagged = tag_hunks(change, CHUNKS).tagged

        assert suggest_merges(tagged) == set()

    def test_threshold_controls_distance(self):
        chunks = (
            LogicalChunk("one", ChunkCategory.FUNCTION, 1, 5),
            LogicalChunk("two", ChunkCategory.FUNCTION, 6, 10),
            LogicalChunk("three", ChunkCategory.FUNCTION, 11, 15),
        )
        change = _change([_hunk("a", 5, 1, 5, 1), _hunk("b", 11, 1, 11, 1)])
        tagged = tag_hunks(change, chunks).tagged

        assert suggest_merges(tagged, threshold=3) == set()
        assert suggest_merges(tagged, threshold=6) == {("a", "b")}

    def test_different_files_never_suggested(self):
        first = tag_hunks(_change([_hunk("a", 2, 1, 2, 1)]), CHUNKS).tagged
        second = tag_hunks(
            _change([_hunk("b", 2, 1, 2, 1, path="pkg/other.py")], path="pkg/other.py"),
            CHUNKS,
        ).tagged

        assert suggest_merges(first + second) == set()
