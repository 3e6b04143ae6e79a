"""Analysis phase: from a changeset to an executable commit plan.

Contains:
- SplitOptions: Knobs of one decomposition run
- SplitPlan: Immutable, ordered list of scheduled commits plus warnings
- commit_label: Deterministic fallback label of a commit group
- plan_split: Chunk, tag, order, assemble and schedule a changeset
"""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from gitbahn.split.assembler import AssemblyResult, assemble_groups, verify_partition
from gitbahn.split.chunker import chunk_files
from gitbahn.split.hunks import DEFAULT_MERGE_THRESHOLD, suggest_merges, tag_hunks
from gitbahn.split.models import (
    Changeset,
    CommitGroup,
    FileChange,
    Hunk,
    LogicalChunk,
    ScheduledCommit,
    SplitMode,
    TaggedHunk,
)
from gitbahn.split.ordering import natural_order
from gitbahn.split.schedule import default_spread, schedule_timestamps
from gitbahn.split.staging import verify_materialization


@dataclass
class SplitOptions:
    """Options for one decomposition run."""

    mode: SplitMode = SplitMode.LOGICAL_CHUNK
    target_commits: Optional[int] = None
    spread: Optional[timedelta] = None
    start: Optional[datetime] = None
    min_gap: Optional[timedelta] = None
    max_gap: Optional[timedelta] = None
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD
    max_workers: Optional[int] = None


@dataclass(frozen=True)
class SplitPlan:
    """Everything the orchestrator needs, computed without touching the repo."""

    changeset: Changeset
    commits: tuple[ScheduledCommit, ...]
    atoms_by_path: Mapping[str, tuple[Hunk, ...]]
    chunks_by_path: Mapping[str, tuple[LogicalChunk, ...]]
    mode: SplitMode
    start: datetime
    spread: timedelta
    warnings: tuple[str, ...] = ()
    target_error: Optional[Exception] = None

    @property
    def files(self) -> dict[str, FileChange]:
        return {f.path: f for f in self.changeset.files}

    def __len__(self) -> int:
        return len(self.commits)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready description of the plan."""
        commits = []
        for commit in self.commits:
            files = []
            for path, ranges in commit.group.line_ranges().items():
                names = []
                for member in commit.group.members:
                    if member.path == path and member.chunk.name not in names:
                        names.append(member.chunk.name)
                files.append({
                    "path": path,
                    "ranges": [[start, end] for start, end in ranges],
                    "chunks": names,
                })
            commits.append({
                "index": commit.index,
                "label": commit.label,
                "message": commit.message,
                "timestamp": commit.timestamp.isoformat(),
                "size": commit.group.size,
                "hunks": commit.group.hunk_ids,
                "files": files,
            })
        return {
            "scope": self.changeset.scope.value,
            "base": self.changeset.base,
            "mode": self.mode.value,
            "start": self.start.isoformat(),
            "spread_seconds": int(self.spread.total_seconds()),
            "warnings": list(self.warnings),
            "commits": commits,
        }


def commit_label(group: CommitGroup, atoms_by_path: Mapping[str, tuple[Hunk, ...]]) -> str:
    """Deterministic label used when no message can be generated.

    Format: "<bucket>: update <path>", with the touched chunk names when only
    part of the file is in the group, and "and N more" for extra files.
    """
    bucket = group.bucket_span[0].label
    files = group.files
    path = files[0]
    members = [m for m in group.members if m.path == path]
    label = f"{bucket}: update {path}"

    if len(members) < len(atoms_by_path.get(path, ())):
        names = []
        for member in members:
            if member.chunk.name not in names:
                names.append(member.chunk.name)
        label += f" ({', '.join(names)})"
    if len(files) > 1:
        label += f" and {len(files) - 1} more"
    return label


def plan_split(
    changeset: Changeset,
    options: Optional[SplitOptions] = None,
    rng: Optional[random.Random] = None,
) -> SplitPlan:
    """Plan the decomposition of a changeset.

    Pure computation over the changeset snapshot: chunk every file, bind
    hunks to chunks, order them, assemble groups and schedule timestamps.

    Args:
        changeset: The ingested changes.
        options: Run options (defaults when None).
        rng: Random source for the schedule; seed it for reproducible plans.

    Returns:
        The SplitPlan.

    Raises:
        InvariantViolationError: If the groups would drop or duplicate a change.
        InvalidScheduleError: If the spread is not positive.
    """
    options = options or SplitOptions()
    rng = rng or random.Random()
    mode = SplitMode(options.mode)
    warnings: list[str] = list(changeset.warnings)

    chunk_results = chunk_files(changeset.files, max_workers=options.max_workers)

    tagged_by_path: dict[str, list[TaggedHunk]] = {}
    chunks_by_path: dict[str, tuple[LogicalChunk, ...]] = {}
    for file_change in changeset.files:
        result = chunk_results[file_change.path]
        if result.warning:
            warnings.append(result.warning)
        tagging = tag_hunks(file_change, result.chunks)
        tagged_by_path[file_change.path] = list(tagging.tagged)
        chunks_by_path[file_change.path] = tagging.chunks

    ordered = natural_order(changeset.files, tagged_by_path)
    suggestions = suggest_merges(ordered, options.merge_threshold) if mode == SplitMode.HUNK else None

    assembly: AssemblyResult = assemble_groups(
        ordered,
        mode=mode,
        target_commits=options.target_commits,
        suggestions=suggestions,
    )
    warnings.extend(assembly.warnings)
    verify_partition(changeset.hunks, assembly.groups)

    atoms_by_path = {path: tuple(t.hunk for t in tagged) for path, tagged in tagged_by_path.items()}
    verify_materialization(changeset.files, atoms_by_path)

    start = options.start or datetime.now().astimezone()
    spread = options.spread or default_spread(rng)
    schedule = schedule_timestamps(
        len(assembly.groups),
        start,
        spread,
        rng,
        min_gap=options.min_gap,
        max_gap=options.max_gap,
    )
    warnings.extend(schedule.warnings)

    commits = tuple(
        ScheduledCommit(
            index=index,
            group=group,
            label=commit_label(group, atoms_by_path),
            timestamp=timestamp,
        )
        for index, (group, timestamp) in enumerate(zip(assembly.groups, schedule.timestamps), start=1)
    )

    return SplitPlan(
        changeset=changeset,
        commits=commits,
        atoms_by_path=atoms_by_path,
        chunks_by_path=chunks_by_path,
        mode=mode,
        start=start if start.tzinfo else start.astimezone(),
        spread=spread,
        warnings=tuple(warnings),
        target_error=assembly.error,
    )
