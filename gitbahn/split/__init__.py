"""Commit decomposition and temporal scheduling engine.

This package provides:
- models: Changeset, FileChange, Hunk, LogicalChunk, TaggedHunk, CommitGroup,
          ScheduledCommit, CommitRecord and the enumerations
- errors: SplitError and its subclasses
- ingest: ingest_changeset
- chunker: chunk_file, chunk_files
- hunks: tag_hunks, suggest_merges
- ordering: classify_bucket, order_files, natural_order
- assembler: assemble_groups, verify_partition
- schedule: schedule_timestamps, parse_duration, parse_start_time
- planner: SplitOptions, SplitPlan, plan_split
- executor: CommitOrchestrator, RunReport
- undo: UndoManager
- session: CommitSession, BatchSession
- lock: RepoLock
"""

# Models
from gitbahn.split.models import (
    Bucket,
    Changeset,
    ChunkCategory,
    CommitGroup,
    CommitRecord,
    FileChange,
    FileStatus,
    Hunk,
    LogicalChunk,
    ScheduledCommit,
    Scope,
    SplitMode,
    TaggedHunk,
)

# Errors
from gitbahn.split.errors import (
    ChunkParseError,
    InvalidScheduleError,
    InvariantViolationError,
    SplitError,
    UndoRangeError,
    UnsatisfiableTargetCommitsError,
)

# Analysis
from gitbahn.split.ingest import ingest_changeset
from gitbahn.split.chunker import ChunkResult, chunk_file, chunk_files
from gitbahn.split.hunks import TaggingResult, suggest_merges, tag_hunks
from gitbahn.split.ordering import classify_bucket, natural_order, order_files
from gitbahn.split.assembler import AssemblyResult, assemble_groups, verify_partition
from gitbahn.split.schedule import (
    Schedule,
    default_spread,
    parse_duration,
    parse_start_time,
    schedule_timestamps,
)
from gitbahn.split.planner import SplitOptions, SplitPlan, commit_label, plan_split

# Execution
from gitbahn.split.staging import materialize, stage_group
from gitbahn.split.executor import CommitOrchestrator, RunReport
from gitbahn.split.session import BatchSession, CommitSession
from gitbahn.split.undo import UndoManager
from gitbahn.split.lock import RepoLock


__all__ = [
    # Models
    "Bucket",
    "Changeset",
    "ChunkCategory",
    "CommitGroup",
    "CommitRecord",
    "FileChange",
    "FileStatus",
    "Hunk",
    "LogicalChunk",
    "ScheduledCommit",
    "Scope",
    "SplitMode",
    "TaggedHunk",
    # Errors
    "ChunkParseError",
    "InvalidScheduleError",
    "InvariantViolationError",
    "SplitError",
    "UndoRangeError",
    "UnsatisfiableTargetCommitsError",
    # Analysis
    "ingest_changeset",
    "ChunkResult",
    "chunk_file",
    "chunk_files",
    "TaggingResult",
    "suggest_merges",
    "tag_hunks",
    "classify_bucket",
    "natural_order",
    "order_files",
    "AssemblyResult",
    "assemble_groups",
    "verify_partition",
    "Schedule",
    "default_spread",
    "parse_duration",
    "parse_start_time",
    "schedule_timestamps",
    "SplitOptions",
    "SplitPlan",
    "commit_label",
    "plan_split",
    # Execution
    "materialize",
    "stage_group",
    "CommitOrchestrator",
    "RunReport",
    "BatchSession",
    "CommitSession",
    "UndoManager",
    "RepoLock",
]
