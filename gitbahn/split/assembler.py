"""Assembly of tagged hunks into commit groups.

Contains:
- AssemblyResult: The groups plus any warnings and an unmet-target error
- raw_groups: Initial groups for a split mode
- assemble_groups: Merge or split raw groups to a target commit count
- verify_partition: Check that groups cover every hunk exactly once
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence, Union

from gitbahn.split.errors import InvariantViolationError, UnsatisfiableTargetCommitsError
from gitbahn.split.models import CommitGroup, Hunk, SplitMode, TaggedHunk


@dataclass
class AssemblyResult:
    """Commit groups in commit order."""

    groups: list[CommitGroup]
    warnings: list[str] = field(default_factory=list)
    error: Optional[UnsatisfiableTargetCommitsError] = None


def _runs(members: Sequence[TaggedHunk], key: Callable[[TaggedHunk], object]) -> list[CommitGroup]:
    """Group consecutive members that share a key."""
    groups: list[list[TaggedHunk]] = []
    previous = object()
    for member in members:
        current = key(member)
        if not groups or current != previous:
            groups.append([])
        groups[-1].append(member)
        previous = current
    return [CommitGroup(tuple(members)) for members in groups]


def _by_file(member: TaggedHunk) -> str:
    return member.path


def _by_chunk(member: TaggedHunk) -> tuple[str, int]:
    return member.path, member.chunk_index


def raw_groups(ordered: Sequence[TaggedHunk], mode: Union[SplitMode, str]) -> list[CommitGroup]:
    """Build the initial groups: one per file, per chunk or per hunk."""
    mode = SplitMode(mode)
    if not ordered:
        return []
    if mode == SplitMode.WHOLE_FILE:
        return _runs(ordered, _by_file)
    if mode == SplitMode.LOGICAL_CHUNK:
        return _runs(ordered, _by_chunk)
    return [CommitGroup((member,)) for member in ordered]


def _merge(first: CommitGroup, second: CommitGroup) -> CommitGroup:
    return CommitGroup(first.members + second.members)


def _merge_cost(
    first: CommitGroup,
    second: CommitGroup,
    position: int,
    suggestions: set[tuple[str, str]],
) -> tuple:
    """Cost of merging two adjacent groups; lower is better."""
    low = min(first.bucket_span[0], second.bucket_span[0])
    high = max(first.bucket_span[1], second.bucket_span[1])
    crosses_files = len(set(first.files) | set(second.files)) > 1
    suggested = (first.members[-1].id, second.members[0].id) in suggestions
    preamble_penalty = first.is_preamble_only != second.is_preamble_only
    return (
        high - low,
        crosses_files,
        not suggested,
        preamble_penalty,
        first.size + second.size,
        -position,
    )


def _merge_down(
    groups: list[CommitGroup],
    target: int,
    suggestions: set[tuple[str, str]],
) -> list[CommitGroup]:
    """Repeatedly merge the cheapest adjacent pair until ``target`` remain."""
    groups = list(groups)
    while len(groups) > target:
        best = min(
            range(len(groups) - 1),
            key=lambda i: _merge_cost(groups[i], groups[i + 1], i, suggestions),
        )
        groups[best:best + 2] = [_merge(groups[best], groups[best + 1])]
    return groups


def _split_parts(group: CommitGroup) -> list[CommitGroup]:
    """Split a group at the coarsest level that yields more than one part."""
    for key in (_by_file, _by_chunk):
        parts = _runs(group.members, key)
        if len(parts) > 1:
            return parts
    if len(group.members) > 1:
        return [CommitGroup((member,)) for member in group.members]
    return [group]


def _combine_smallest(parts: list[CommitGroup], limit: int) -> list[CommitGroup]:
    """Merge the smallest adjacent pair of parts until at most ``limit`` remain."""
    parts = list(parts)
    while len(parts) > limit:
        best = min(
            range(len(parts) - 1),
            key=lambda i: (parts[i].size + parts[i + 1].size, i),
        )
        parts[best:best + 2] = [_merge(parts[best], parts[best + 1])]
    return parts


def _split_up(groups: list[CommitGroup], target: int) -> list[CommitGroup]:
    """Split the largest splittable group until ``target`` groups exist or none can split."""
    groups = list(groups)
    while len(groups) < target:
        candidates = [
            (index, parts)
            for index, parts in ((i, _split_parts(g)) for i, g in enumerate(groups))
            if len(parts) > 1
        ]
        if not candidates:
            break
        index, parts = max(candidates, key=lambda item: (groups[item[0]].size, -item[0]))
        parts = _combine_smallest(parts, target - len(groups) + 1)
        groups[index:index + 1] = parts
    return groups


def assemble_groups(
    ordered: Sequence[TaggedHunk],
    mode: Union[SplitMode, str] = SplitMode.LOGICAL_CHUNK,
    target_commits: Optional[int] = None,
    suggestions: Optional[Iterable[tuple[str, str]]] = None,
) -> AssemblyResult:
    """Assemble tagged hunks into commit groups.

    Args:
        ordered: Tagged hunks in natural order.
        mode: Granularity of the raw groups.
        target_commits: Exact number of groups wanted; the raw groups are kept
            when None.
        suggestions: Hunk pairs that should preferably be merged.

    Returns:
        AssemblyResult. When the target cannot be reached the groups are as
        fine as possible and ``error`` describes the shortfall.

    Raises:
        ValueError: If target_commits is below 1.
    """
    if target_commits is not None and target_commits < 1:
        raise ValueError("target_commits must be at least 1")

    groups = raw_groups(ordered, mode)
    result = AssemblyResult(groups=groups)
    if target_commits is None or not groups:
        return result

    if len(groups) > target_commits:
        result.groups = _merge_down(groups, target_commits, set(suggestions or ()))
    elif len(groups) < target_commits:
        result.groups = _split_up(groups, target_commits)

    if len(result.groups) != target_commits:
        result.error = UnsatisfiableTargetCommitsError(target_commits, len(result.groups))
        result.warnings.append(f"{result.error}; every changed hunk is already its own commit.")

    return result


def verify_partition(changeset_hunks: Iterable[Hunk], groups: Iterable[CommitGroup]) -> None:
    """Check that the groups cover every hunk of the changeset exactly once.

    Pieces of a split insertion count as their parent when together they tile
    the parent's new range.

    Raises:
        InvariantViolationError: If a hunk is missing, duplicated or unknown.
    """
    expected = {hunk.id: hunk for hunk in changeset_hunks}
    seen: dict[str, list[Hunk]] = {}
    for group in groups:
        for member in group.members:
            seen.setdefault(member.hunk.root_id, []).append(member.hunk)

    unknown = sorted(set(seen) - set(expected))
    if unknown:
        raise InvariantViolationError(f"Groups contain unknown hunks: {', '.join(unknown)}")
    missing = sorted(set(expected) - set(seen))
    if missing:
        raise InvariantViolationError(f"Hunks not assigned to any commit: {', '.join(missing)}")

    for root_id, parts in seen.items():
        parent = expected[root_id]
        if len(parts) == 1 and parts[0].id == root_id:
            continue
        ids = [part.id for part in parts]
        if len(set(ids)) != len(ids) or root_id in ids:
            raise InvariantViolationError(f"Hunk {root_id} is assigned to more than one commit")
        line = parent.new_start
        for part in sorted(parts, key=lambda h: h.new_start):
            if part.new_start != line:
                raise InvariantViolationError(f"Pieces of hunk {root_id} do not cover it exactly")
            line += part.new_len
        if line != parent.new_start + parent.new_len:
            raise InvariantViolationError(f"Pieces of hunk {root_id} do not cover it exactly")
