"""Changeset ingestion for the gitbahn decomposition engine.

Contains:
- ingest_changeset: Snapshot the repository's pending changes as a Changeset
- _build_file_change: Turn a parsed diff block into a FileChange
- _untracked_file_change: Turn an untracked file into an added FileChange
"""

import os
import stat
from dataclasses import replace
from typing import Optional, Union

from gitbahn.git.backend import GitBackend
from gitbahn.git.exceptions import GitError, NoChangesError
from gitbahn.split.models import Changeset, FileChange, FileStatus, Hunk, Scope, split_lines
from gitbahn.split.parser import ParsedFile, _stable_id, parse_unified_diff

# Symlinks and submodules are committed as a whole
_OPAQUE_MODES = {"120000", "160000"}


def _decode(data: Optional[bytes]) -> tuple[Optional[str], bool]:
    """Decode file bytes, reporting NUL-containing content as binary."""
    if data is None:
        return None, False
    if b"\0" in data:
        return None, True
    return data.decode("utf-8", errors="surrogateescape"), False


def _read_old(backend: GitBackend, scope: Scope, path: str) -> Optional[bytes]:
    if scope == Scope.UNSTAGED:
        return backend.show_file("", path)
    return backend.show_file(backend.base_revision(), path)


def _read_new(backend: GitBackend, scope: Scope, path: str) -> Optional[bytes]:
    if scope == Scope.STAGED:
        return backend.show_file("", path)
    full_path = backend.repo_root / path
    if os.path.islink(full_path):
        return os.readlink(full_path).encode("utf-8", errors="surrogateescape")
    return backend.read_worktree(path)


def _resolve_new_blob(backend: GitBackend, scope: Scope, parsed: ParsedFile) -> Optional[str]:
    """Object id of the file's new content, written to the object store if needed."""
    if parsed.is_deleted_file:
        return None
    if parsed.new_blob and parsed.new_blob.strip("0"):
        return parsed.new_blob
    if scope == Scope.STAGED:
        return backend.blob_sha("", parsed.path)

    full_path = backend.repo_root / parsed.path
    if os.path.islink(full_path):
        return backend.hash_content(os.readlink(full_path).encode("utf-8", errors="surrogateescape"))
    return backend.hash_worktree_file(parsed.path)


def _opaque(hunk: Hunk, old_count: int, new_count: int) -> Hunk:
    return replace(
        hunk,
        old_start=1 if old_count else 0,
        old_len=old_count,
        new_start=1 if new_count else 0,
        new_len=new_count,
        label=None,
        opaque=True,
    )


def _build_file_change(backend: GitBackend, scope: Scope, parsed: ParsedFile) -> FileChange:
    """Turn a parsed diff block into a FileChange with its content snapshot.

    Binary files, deletions, renames, symlinks, submodules and files without
    line changes collapse into a single opaque hunk.
    """
    if parsed.is_new_file:
        status = FileStatus.ADDED
    elif parsed.is_deleted_file:
        status = FileStatus.DELETED
    elif parsed.is_renamed:
        status = FileStatus.RENAMED
    else:
        status = FileStatus.MODIFIED

    old_source = parsed.old_path or parsed.path
    old_bytes = None if parsed.is_new_file else _read_old(backend, scope, old_source)
    new_bytes = None if parsed.is_deleted_file else _read_new(backend, scope, parsed.path)
    old_text, old_binary = _decode(old_bytes)
    new_text, new_binary = _decode(new_bytes)
    binary = parsed.is_binary or old_binary or new_binary

    hunks = parsed.hunks
    opaque = (
        binary
        or status in (FileStatus.DELETED, FileStatus.RENAMED)
        or hunks[0].opaque
        or parsed.old_mode in _OPAQUE_MODES
        or parsed.new_mode in _OPAQUE_MODES
    )

    new_blob = None
    if opaque:
        if binary:
            old_text = new_text = None
        hunks = [_opaque(hunks[0], len(split_lines(old_text)), len(split_lines(new_text)))]
        new_blob = _resolve_new_blob(backend, scope, parsed)

    return FileChange(
        path=parsed.path,
        status=status,
        hunks=tuple(hunks),
        old_path=parsed.old_path,
        old_mode=parsed.old_mode,
        new_mode=parsed.new_mode,
        binary=binary,
        old_text=old_text,
        new_text=new_text,
        new_blob=new_blob,
    )


def _untracked_file_change(backend: GitBackend, path: str, hunk_index: int) -> FileChange:
    """Describe an untracked file as an added FileChange."""
    full_path = backend.repo_root / path

    if os.path.islink(full_path):
        target = os.readlink(full_path).encode("utf-8", errors="surrogateescape")
        hunk = Hunk(
            id=_stable_id(hunk_index, path, [path]),
            file_path=path,
            old_start=0,
            old_len=0,
            new_start=0,
            new_len=0,
            opaque=True,
        )
        return FileChange(
            path=path,
            status=FileStatus.ADDED,
            hunks=(hunk,),
            new_mode="120000",
            new_blob=backend.hash_content(target),
        )

    data = full_path.read_bytes()
    mode = "100755" if full_path.stat().st_mode & stat.S_IXUSR else "100644"
    text, binary = _decode(data)
    line_count = len(split_lines(text))

    hunk = Hunk(
        id=_stable_id(hunk_index, path, split_lines(text)[:50] or [path]),
        file_path=path,
        old_start=0,
        old_len=0,
        new_start=1 if line_count else 0,
        new_len=line_count,
        opaque=binary or line_count == 0,
    )

    return FileChange(
        path=path,
        status=FileStatus.ADDED,
        hunks=(hunk,),
        new_mode=mode,
        binary=binary,
        new_text=text,
        new_blob=backend.hash_worktree_file(path) if hunk.opaque else None,
    )


def ingest_changeset(
    backend: GitBackend,
    scope: Union[Scope, str] = Scope.STAGED,
    paths: Optional[list[str]] = None,
) -> Changeset:
    """Snapshot the repository's pending changes.

    Args:
        backend: Repository backend.
        scope: 'staged' (base vs index), 'unstaged' (index vs working tree,
            plus untracked files) or 'all' (base vs working tree, plus
            untracked files).
        paths: Optional pathspec limiting the changeset.

    Returns:
        Changeset with every file's hunks and old/new content.

    Raises:
        GitError: If the unstaged scope is requested while the index already
            holds staged changes.
        NoChangesError: If there is nothing to decompose.
    """
    scope = Scope(scope)

    if scope == Scope.UNSTAGED and backend.has_staged_changes():
        raise GitError(
            "The index already has staged changes. Commit or unstage them first, "
            "or use --scope staged / --scope all."
        )

    parsed_files, warnings = parse_unified_diff(backend.diff(scope.value, paths))
    files = [_build_file_change(backend, scope, parsed) for parsed in parsed_files]

    if scope != Scope.STAGED:
        hunk_index = sum(len(f.hunks) for f in files)
        known = {f.path for f in files}
        for path in backend.untracked_files(paths):
            if path in known:
                continue
            files.append(_untracked_file_change(backend, path, hunk_index))
            hunk_index += 1

    if not files:
        if scope == Scope.STAGED:
            raise NoChangesError(
                "No staged changes found. Stage your changes first with: git add <files>"
            )
        raise NoChangesError("No changes found in the working tree.")

    return Changeset(
        scope=scope,
        base=backend.base_revision(),
        files=tuple(files),
        warnings=tuple(warnings),
    )
