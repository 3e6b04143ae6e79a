"""Logical chunking of changed files.

Contains:
- ChunkResult: The chunks of one file plus an optional fallback warning
- chunk_lines: Divide lines into chunks with a language profile
- chunk_file: Chunk a FileChange's new content
- chunk_files: Chunk many files in a thread pool, preserving order
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

from gitbahn.split.errors import ChunkParseError
from gitbahn.split.models import ChunkCategory, FileChange, LogicalChunk
from gitbahn.split.profiles import IDENTITY_PROFILE, Language, LanguageProfile, detect_language, get_profile
from gitbahn.split.profiles.base import is_blank

WHOLE_FILE = "whole file"


@dataclass(frozen=True)
class ChunkResult:
    """Chunks of one file, in file order."""

    path: str
    chunks: tuple[LogicalChunk, ...]
    language: Language = Language.UNKNOWN
    warning: Optional[str] = None


def _append(chunks: list[LogicalChunk], chunk: LogicalChunk) -> None:
    """Append a chunk, folding consecutive 'other' chunks together."""
    if (
        chunks
        and chunk.category == ChunkCategory.OTHER
        and chunks[-1].category == ChunkCategory.OTHER
    ):
        chunks[-1] = LogicalChunk(chunks[-1].name, ChunkCategory.OTHER, chunks[-1].start, chunk.end)
    else:
        chunks.append(chunk)


def _extend_last(chunks: list[LogicalChunk], end: int) -> None:
    last = chunks[-1]
    chunks[-1] = LogicalChunk(last.name, last.category, last.start, end)


def chunk_lines(lines: list[str], profile: LanguageProfile) -> list[LogicalChunk]:
    """Divide a file's lines into chunks that cover it exactly.

    Blank lines between units belong to the preceding unit; any other
    uncovered content becomes an 'other' chunk.

    Args:
        lines: The file's lines, line endings kept.
        profile: Language profile that finds the preamble and units.

    Returns:
        Non-overlapping chunks (1-based, inclusive) whose union is every line.

    Raises:
        ChunkParseError: If the profile cannot find boundaries.
    """
    total = len(lines)
    if total == 0:
        return [LogicalChunk(WHOLE_FILE, ChunkCategory.OTHER, 1, 1)]

    spans: list[tuple[str, ChunkCategory, int, int]] = []
    after = 0
    preamble = profile.locate_preamble(lines)
    if preamble:
        spans.append(("imports", ChunkCategory.PREAMBLE, preamble[0], preamble[1]))
        after = preamble[1]
    for unit in profile.locate_units(lines, after):
        start, end = profile.span_of(unit)
        spans.append((unit.name, unit.category, start, end))

    chunks: list[LogicalChunk] = []
    cursor = 1
    for name, category, start, end in spans:
        if start < cursor or end < start or end > total:
            raise ChunkParseError(f"overlapping or out-of-range unit '{name}' at lines {start}-{end}")
        if start > cursor:
            gap = lines[cursor - 1:start - 1]
            if all(is_blank(line) for line in gap):
                if chunks:
                    _extend_last(chunks, start - 1)
                else:
                    start = cursor
            else:
                _append(chunks, LogicalChunk("code", ChunkCategory.OTHER, cursor, start - 1))
        _append(chunks, LogicalChunk(name, category, start, end))
        cursor = end + 1

    if cursor <= total:
        trailing = lines[cursor - 1:]
        if chunks and all(is_blank(line) for line in trailing):
            _extend_last(chunks, total)
        else:
            _append(chunks, LogicalChunk("code", ChunkCategory.OTHER, cursor, total))

    if len(chunks) == 1 and chunks[0].category == ChunkCategory.OTHER:
        return [LogicalChunk(WHOLE_FILE, ChunkCategory.OTHER, 1, total)]

    return [
        LogicalChunk(f"code at line {c.start}", c.category, c.start, c.end)
        if c.category == ChunkCategory.OTHER else c
        for c in chunks
    ]


def chunk_file(file_change: FileChange) -> ChunkResult:
    """Chunk the new content of one file.

    Opaque changes (binary, deleted, renamed, ...) are one whole-file chunk.
    A profile that cannot parse the file falls back to the whole-file chunk
    and reports a warning.
    """
    lines = file_change.new_lines
    if file_change.is_opaque or file_change.new_text is None:
        chunk = LogicalChunk(WHOLE_FILE, ChunkCategory.OTHER, 1, max(len(lines), 1))
        return ChunkResult(path=file_change.path, chunks=(chunk,))

    language = detect_language(file_change.path)
    try:
        chunks = chunk_lines(lines, get_profile(language))
        warning = None
    except ChunkParseError as e:
        chunks = chunk_lines(lines, IDENTITY_PROFILE)
        warning = f"Could not chunk {file_change.path} ({e}); treating it as a single chunk"

    return ChunkResult(path=file_change.path, chunks=tuple(chunks), language=language, warning=warning)


def chunk_files(file_changes: Iterable[FileChange], max_workers: Optional[int] = None) -> dict[str, ChunkResult]:
    """Chunk many files concurrently.

    Args:
        file_changes: Files to chunk.
        max_workers: Thread pool size (executor default when None).

    Returns:
        Mapping of path to ChunkResult in the input order.
    """
    file_changes = list(file_changes)
    if not file_changes:
        return {}
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(chunk_file, file_changes))
    return {result.path: result for result in results}
