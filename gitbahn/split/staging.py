"""Staging of commit groups into the git index.

Contains:
- materialize: Cumulative content of a file with some hunks applied
- stage_file: Stage one file's cumulative state
- stage_group: Stage every file a commit group touches
- verify_materialization: Check that applying every hunk yields the new content
"""

import logging
from typing import Collection, Iterable, Mapping, Sequence

from gitbahn.git.backend import GitBackend
from gitbahn.split.errors import InvariantViolationError
from gitbahn.split.models import CommitGroup, FileChange, FileStatus, Hunk

logger = logging.getLogger(__name__)


def materialize(file_change: FileChange, atoms: Sequence[Hunk], committed: Collection[str]) -> list[str]:
    """Build a file's lines with only the committed hunks applied.

    Args:
        file_change: The changed file with its old and new content.
        atoms: Every hunk (or piece) of the file.
        committed: Ids of the hunks applied so far.

    Returns:
        The file's lines, line endings kept.
    """
    old = file_change.old_lines
    new = file_change.new_lines
    lines: list[str] = []
    cursor = 0

    for atom in sorted(atoms, key=lambda h: (h.old_offset, h.new_start)):
        if atom.old_offset > cursor:
            lines.extend(old[cursor:atom.old_offset])
            cursor = atom.old_offset
        if atom.id in committed:
            lines.extend(new[atom.new_start - 1:atom.new_start - 1 + atom.new_len])
        else:
            lines.extend(old[atom.old_offset:atom.old_offset + atom.old_len])
        cursor = max(cursor, atom.old_offset + atom.old_len)

    lines.extend(old[cursor:])
    return lines


def _encode(lines: Iterable[str]) -> bytes:
    return "".join(lines).encode("utf-8", errors="surrogateescape")


def stage_file(
    backend: GitBackend,
    file_change: FileChange,
    atoms: Sequence[Hunk],
    committed: Collection[str],
) -> None:
    """Stage one file as it looks with the committed hunks applied.

    Opaque files are staged whole once their single hunk is committed:
    deletions are removed from the index, renames drop the old path.

    Raises:
        BackendError: If git rejects the index update.
    """
    if file_change.is_opaque:
        if not any(atom.id in committed for atom in atoms):
            return
        if file_change.status == FileStatus.DELETED:
            backend.remove_from_index(file_change.path)
            return
        if file_change.old_path and file_change.old_path != file_change.path:
            backend.remove_from_index(file_change.old_path)
        if file_change.new_blob is None:
            raise InvariantViolationError(f"No content recorded for {file_change.path}")
        backend.stage_blob(file_change.path, file_change.new_blob, file_change.mode)
        return

    applied = [atom for atom in atoms if atom.id in committed]
    if not applied and file_change.status == FileStatus.ADDED:
        return
    content = _encode(materialize(file_change, atoms, committed))
    logger.debug("Staging %s with %d of %d hunks", file_change.path, len(applied), len(atoms))
    backend.stage_content(file_change.path, content, file_change.mode)


def stage_group(
    backend: GitBackend,
    group: CommitGroup,
    files: Mapping[str, FileChange],
    atoms_by_path: Mapping[str, Sequence[Hunk]],
    committed: set[str],
) -> None:
    """Stage a commit group on top of the previously committed hunks.

    Args:
        backend: Repository backend.
        group: The group being committed.
        files: FileChange by path.
        atoms_by_path: Every hunk or piece by path.
        committed: Ids committed so far; the group's ids are added to it.
    """
    committed.update(group.hunk_ids)
    for path in group.files:
        stage_file(backend, files[path], atoms_by_path[path], committed)


def verify_materialization(
    files: Iterable[FileChange],
    atoms_by_path: Mapping[str, Sequence[Hunk]],
) -> None:
    """Check that applying every hunk of each file rebuilds its new content.

    Raises:
        InvariantViolationError: If a file's content would not match.
    """
    for file_change in files:
        if file_change.is_opaque or file_change.new_text is None:
            continue
        atoms = atoms_by_path.get(file_change.path, ())
        every = {atom.id for atom in atoms}
        if "".join(materialize(file_change, atoms, every)) != file_change.new_text:
            raise InvariantViolationError(
                f"Committed content of {file_change.path} would not match the working copy"
            )
