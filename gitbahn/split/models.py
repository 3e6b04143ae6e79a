"""Data models for the gitbahn decomposition engine.

Contains:
- Scope, SplitMode, FileStatus, ChunkCategory, Bucket: Enumerations
- Hunk: One contiguous change inside a file (or a piece of one)
- FileChange: One changed file with its hunks and content snapshot
- Changeset: Every change considered in one run
- LogicalChunk: A named, contiguous line span of a file's new content
- TaggedHunk: A hunk bound to the chunk it falls inside
- CommitGroup: The hunks that become one commit
- ScheduledCommit: A commit group with its label and timestamp
- CommitRecord: A commit created by a run
- split_lines: Split text into lines the way git counts them
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Scope(str, Enum):
    """Which pending changes a run decomposes."""

    STAGED = "staged"
    UNSTAGED = "unstaged"
    ALL = "all"


class SplitMode(str, Enum):
    """Granularity of the raw commit groups."""

    WHOLE_FILE = "whole-file"
    LOGICAL_CHUNK = "logical-chunk"
    HUNK = "hunk"


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class ChunkCategory(str, Enum):
    PREAMBLE = "preamble"
    TYPE_DECL = "type-decl"
    FUNCTION = "function"
    OTHER = "other"


class Bucket(IntEnum):
    """Ordering category of a file; lower values are committed first."""

    CONFIG = 0
    UTILS = 1
    CORE = 2
    FEATURE = 3
    TEST = 4
    DOCS = 5

    @property
    def label(self) -> str:
        return self.name.lower()


def split_lines(text: Optional[str]) -> list[str]:
    """Split text on newlines only, keeping the line endings.

    Unlike str.splitlines this ignores form feeds and other separators, so
    line numbers match the ones git reports.
    """
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


@dataclass(frozen=True)
class Hunk:
    """A contiguous change inside one file.

    Ranges follow zero-context unified diff conventions: a zero-length range
    starts at the line after which the change applies. Pieces of a split
    insertion keep their parent's id in ``parent``.
    """

    id: str
    file_path: str
    old_start: int
    old_len: int
    new_start: int
    new_len: int
    label: Optional[str] = None
    opaque: bool = False
    parent: Optional[str] = None

    @property
    def root_id(self) -> str:
        return self.parent or self.id

    @property
    def is_insertion(self) -> bool:
        return self.old_len == 0 and not self.opaque

    @property
    def is_deletion(self) -> bool:
        return self.new_len == 0 and not self.opaque

    @property
    def new_end(self) -> int:
        """Last new line covered (inclusive); equals new_start for deletions."""
        return self.new_start + max(self.new_len, 1) - 1

    @property
    def old_offset(self) -> int:
        """0-based index of the first old line the hunk replaces."""
        if self.old_len == 0:
            return self.old_start
        return self.old_start - 1

    @property
    def changed_lines(self) -> int:
        return max(self.old_len + self.new_len, 1)


@dataclass(frozen=True)
class FileChange:
    """One changed file: status, modes, hunks and content snapshot.

    ``old_text``/``new_text`` are None for binary or absent content.
    ``new_blob`` is the object id staged for opaque changes.
    """

    path: str
    status: FileStatus
    hunks: tuple[Hunk, ...]
    old_path: Optional[str] = None
    old_mode: Optional[str] = None
    new_mode: Optional[str] = None
    binary: bool = False
    old_text: Optional[str] = None
    new_text: Optional[str] = None
    new_blob: Optional[str] = None

    @property
    def is_opaque(self) -> bool:
        return len(self.hunks) == 1 and self.hunks[0].opaque

    @property
    def old_lines(self) -> list[str]:
        return split_lines(self.old_text)

    @property
    def new_lines(self) -> list[str]:
        return split_lines(self.new_text)

    @property
    def mode(self) -> str:
        return self.new_mode or self.old_mode or "100644"

    @property
    def touched_paths(self) -> list[str]:
        if self.old_path and self.old_path != self.path:
            return [self.old_path, self.path]
        return [self.path]


@dataclass(frozen=True)
class Changeset:
    """Every file change of one run, diffed against ``base``."""

    scope: Scope
    base: str
    files: tuple[FileChange, ...]
    warnings: tuple[str, ...] = ()

    @property
    def hunks(self) -> list[Hunk]:
        return [hunk for f in self.files for hunk in f.hunks]

    def file(self, path: str) -> FileChange:
        for f in self.files:
            if f.path == path:
                return f
        raise KeyError(path)

    def __len__(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class LogicalChunk:
    """A named span (1-based, inclusive) of a file's new content."""

    name: str
    category: ChunkCategory
    start: int
    end: int

    def contains(self, line: int) -> bool:
        return self.start <= line <= self.end

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class TaggedHunk:
    """The atomic unit of assembly: a hunk and the chunk it sits in."""

    hunk: Hunk
    chunk: LogicalChunk
    chunk_index: int
    bucket: Bucket

    @property
    def path(self) -> str:
        return self.hunk.file_path

    @property
    def id(self) -> str:
        return self.hunk.id

    @property
    def size(self) -> int:
        return self.hunk.changed_lines


@dataclass(frozen=True)
class CommitGroup:
    """Ordered, non-empty hunks that are committed together."""

    members: tuple[TaggedHunk, ...]

    def __post_init__(self):
        if not self.members:
            raise ValueError("CommitGroup needs at least one hunk")

    @property
    def files(self) -> list[str]:
        seen: list[str] = []
        for member in self.members:
            if member.path not in seen:
                seen.append(member.path)
        return seen

    @property
    def hunk_ids(self) -> list[str]:
        return [member.id for member in self.members]

    @property
    def size(self) -> int:
        return sum(member.size for member in self.members)

    @property
    def bucket_span(self) -> tuple[Bucket, Bucket]:
        buckets = [member.bucket for member in self.members]
        return min(buckets), max(buckets)

    @property
    def is_preamble_only(self) -> bool:
        return all(m.chunk.category == ChunkCategory.PREAMBLE for m in self.members)

    def line_ranges(self) -> dict[str, list[tuple[int, int]]]:
        """New-content line ranges per file, adjacent ranges coalesced."""
        ranges: dict[str, list[tuple[int, int]]] = {}
        for member in self.members:
            start, end = member.hunk.new_start, member.hunk.new_end
            spans = ranges.setdefault(member.path, [])
            if spans and start <= spans[-1][1] + 1:
                spans[-1] = (spans[-1][0], max(spans[-1][1], end))
            else:
                spans.append((start, end))
        return ranges


@dataclass(frozen=True)
class ScheduledCommit:
    """A commit group with its fallback label and scheduled time."""

    index: int
    group: CommitGroup
    label: str
    timestamp: datetime
    message: Optional[str] = None


class CommitRecord(BaseModel):
    """A commit created by a run."""

    model_config = ConfigDict(frozen=True)

    sha: str
    timestamp: datetime
    subject: str
    files: list[str] = []
