"""Mapping of hunks onto logical chunks.

Contains:
- TaggingResult: Tagged hunks of one file plus its final chunk list
- tag_hunks: Bind every hunk of a file to the chunk it falls inside
- suggest_merges: Propose merging neighbouring hunks of the same file
"""

from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from gitbahn.split.models import ChunkCategory, FileChange, Hunk, LogicalChunk, TaggedHunk
from gitbahn.split.ordering import classify_bucket

DEFAULT_MERGE_THRESHOLD = 3


@dataclass(frozen=True)
class TaggingResult:
    """Tagged hunks in file order and the (possibly widened) chunks."""

    tagged: tuple[TaggedHunk, ...]
    chunks: tuple[LogicalChunk, ...]


def _find_chunk(chunks: Sequence[LogicalChunk], line: int) -> int:
    for index, chunk in enumerate(chunks):
        if chunk.contains(line):
            return index
    # Lines past the end belong to the last chunk
    return len(chunks) - 1


def _widen(chunks: list[LogicalChunk], index: int, end: int) -> None:
    """Extend chunk ``index`` to ``end``, shrinking or dropping later chunks."""
    chunk = chunks[index]
    if end <= chunk.end:
        return
    chunks[index] = replace(chunk, end=end)
    following = index + 1
    while following < len(chunks) and chunks[following].start <= end:
        if chunks[following].end <= end:
            del chunks[following]
        else:
            chunks[following] = replace(chunks[following], start=end + 1)
            following += 1


def _cut_insertion(hunk: Hunk, chunks: Sequence[LogicalChunk]) -> list[tuple[Hunk, int]]:
    """Cut a pure insertion at chunk boundaries.

    Returns:
        (hunk or piece, anchor line) pairs. A hunk inside one chunk comes
        back unchanged.
    """
    first = _find_chunk(chunks, hunk.new_start)
    last = _find_chunk(chunks, hunk.new_end)
    if first == last:
        return [(hunk, hunk.new_start)]

    pieces: list[tuple[Hunk, int]] = []
    line = hunk.new_start
    for number, index in enumerate(range(first, last + 1), start=1):
        end = min(chunks[index].end, hunk.new_end)
        piece = replace(
            hunk,
            id=f"{hunk.id}.{number}",
            new_start=line,
            new_len=end - line + 1,
            parent=hunk.id,
        )
        pieces.append((piece, line))
        line = end + 1
    return pieces


def tag_hunks(file_change: FileChange, chunks: Iterable[LogicalChunk]) -> TaggingResult:
    """Bind each hunk of a file to the chunk it falls inside.

    Replacement hunks map to the chunk containing their first new line and
    widen it to their full range. Deletions map to the chunk around the line
    they follow. Pure insertions that cross chunk boundaries are cut into
    pieces so every piece lies inside one chunk.

    Args:
        file_change: The changed file.
        chunks: The file's chunks in file order, covering it exactly.

    Returns:
        TaggingResult with tagged hunks (pieces replacing their parents) and
        the final chunk list.
    """
    chunks = list(chunks)
    bucket = classify_bucket(file_change.path)

    if file_change.is_opaque or not chunks:
        if not chunks:
            chunks = [LogicalChunk("whole file", ChunkCategory.OTHER, 1, 1)]
        tagged = tuple(TaggedHunk(hunk, chunks[0], 0, bucket) for hunk in file_change.hunks)
        return TaggingResult(tagged=tagged, chunks=tuple(chunks))

    line_count = chunks[-1].end
    anchored: list[tuple[Hunk, int]] = []

    for hunk in sorted(file_change.hunks, key=lambda h: (h.new_start, h.old_start)):
        if hunk.is_deletion:
            anchored.append((hunk, min(max(hunk.new_start, 1), line_count)))
        elif hunk.is_insertion:
            anchored.extend(_cut_insertion(hunk, chunks))
        else:
            index = _find_chunk(chunks, hunk.new_start)
            _widen(chunks, index, hunk.new_end)
            anchored.append((hunk, hunk.new_start))

    tagged = []
    for hunk, anchor in anchored:
        index = _find_chunk(chunks, anchor)
        tagged.append(TaggedHunk(hunk=hunk, chunk=chunks[index], chunk_index=index, bucket=bucket))

    return TaggingResult(tagged=tuple(tagged), chunks=tuple(chunks))


def suggest_merges(
    tagged: Sequence[TaggedHunk],
    threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> set[tuple[str, str]]:
    """Propose merging neighbouring hunks of the same file.

    Two consecutive hunks are proposed when they sit in the same or adjacent
    chunks, or when fewer than ``threshold`` unchanged lines separate them.

    Args:
        tagged: Tagged hunks in natural order.
        threshold: Line distance below which neighbours are proposed.

    Returns:
        Set of (earlier id, later id) pairs.
    """
    suggestions: set[tuple[str, str]] = set()
    for previous, current in zip(tagged, tagged[1:]):
        if previous.path != current.path:
            continue
        adjacent = abs(current.chunk_index - previous.chunk_index) <= 1
        distance = current.hunk.new_start - previous.hunk.new_end - 1
        if adjacent or distance < threshold:
            suggestions.add((previous.id, current.id))
    return suggestions
