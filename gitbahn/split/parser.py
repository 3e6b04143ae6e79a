"""Diff parser for the gitbahn decomposition engine.

Contains functions for parsing zero-context unified diff output:
- ParsedFile: Header facts and hunks of one file block
- parse_unified_diff: Parse unified diff output from git diff -U0
- _parse_file_block: Parse a single file block from the diff
- _parse_hunks: Parse hunk headers from the hunk portion of a file diff
- _create_hunk: Create a Hunk from a parsed hunk header
- _unquote_path: Undo git's C-style quoting of unusual paths
"""

import hashlib
import re
from dataclasses import dataclass, field
from typing import Optional

from gitbahn.split.models import Hunk

_HUNK_HEADER_RE = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)")
_INDEX_RE = re.compile(r"index ([0-9a-f]+)\.\.([0-9a-f]+)(?: (\d{6}))?")
_QUOTED_HEADER_RE = re.compile(r'^("(?:[^"\\]|\\.)*"|\S+) ("(?:[^"\\]|\\.)*"|\S+)$')

_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
}


@dataclass
class ParsedFile:
    """Everything a diff block says about one file."""

    path: str
    old_path: Optional[str] = None
    header_lines: list[str] = field(default_factory=list)
    hunks: list[Hunk] = field(default_factory=list)
    is_binary: bool = False
    is_new_file: bool = False
    is_deleted_file: bool = False
    is_renamed: bool = False
    old_mode: Optional[str] = None
    new_mode: Optional[str] = None
    old_blob: Optional[str] = None
    new_blob: Optional[str] = None


def parse_unified_diff(diff_output: str) -> tuple[list[ParsedFile], list[str]]:
    """Parse unified diff output from 'git diff -U0'.

    Files without any hunk (binary files, mode-only changes, pure renames,
    empty files) get a single opaque hunk so every change has an id.

    Args:
        diff_output: Raw output from git diff

    Returns:
        Tuple of (list of ParsedFile objects, list of warning messages)
    """
    files: list[ParsedFile] = []
    warnings: list[str] = []
    hunk_counter = 0

    if not diff_output.strip():
        return files, warnings

    # Each file starts with 'diff --git a/... b/...'
    file_blocks = re.split(r"(?=^diff --git )", diff_output, flags=re.MULTILINE)

    for block in file_blocks:
        if not block.startswith("diff --git"):
            continue

        lines = block.split("\n")
        parsed = _parse_file_block(lines, hunk_counter, warnings)
        if parsed:
            hunk_counter += len(parsed.hunks)
            files.append(parsed)

    return files, warnings


def _split_git_header(rest: str) -> tuple[Optional[str], Optional[str]]:
    """Split 'a/X b/Y' from a diff --git line.

    Unquoted paths are only recoverable when both sides are equal, since
    either may contain spaces.
    """
    quoted = _QUOTED_HEADER_RE.match(rest)
    if quoted and '"' in rest:
        old = _unquote_path(quoted.group(1))
        new = _unquote_path(quoted.group(2))
        if old.startswith("a/") and new.startswith("b/"):
            return old[2:], new[2:]
    if len(rest) % 2 == 1 and rest.startswith("a/"):
        half = (len(rest) - 5) // 2
        old, new = rest[2:2 + half], rest[5 + half:]
        if rest[2 + half:5 + half] == " b/" and old == new:
            return old, new
    return None, None


def _strip_prefix(value: str, prefix: str) -> Optional[str]:
    value = _unquote_path(value.rstrip("\t"))
    if value == "/dev/null":
        return None
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


def _parse_file_block(
    lines: list[str], hunk_start_id: int, warnings: list[str]
) -> Optional[ParsedFile]:
    """Parse a single file block from the diff.

    Args:
        lines: Lines of the file block
        hunk_start_id: Starting ID for hunks in this file
        warnings: List to append warnings to

    Returns:
        ParsedFile object or None if the block is malformed
    """
    if not lines or not lines[0].startswith("diff --git "):
        return None

    old_path, new_path = _split_git_header(lines[0][len("diff --git "):])
    rename_from = rename_to = None
    minus_path = plus_path = None
    saw_minus = saw_plus = False

    parsed = ParsedFile(path="")
    hunk_start_idx = len(lines)

    for i, line in enumerate(lines):
        if line.startswith("@@"):
            hunk_start_idx = i
            break
        parsed.header_lines.append(line)

        if line.startswith("new file mode "):
            parsed.is_new_file = True
            parsed.new_mode = line.split()[-1]
        elif line.startswith("deleted file mode "):
            parsed.is_deleted_file = True
            parsed.old_mode = line.split()[-1]
        elif line.startswith("old mode "):
            parsed.old_mode = line.split()[-1]
        elif line.startswith("new mode "):
            parsed.new_mode = line.split()[-1]
        elif line.startswith("rename from "):
            rename_from = _unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            rename_to = _unquote_path(line[len("rename to "):])
        elif line.startswith("index "):
            match = _INDEX_RE.match(line)
            if match:
                parsed.old_blob = match.group(1)
                parsed.new_blob = match.group(2)
                if match.group(3):
                    parsed.old_mode = parsed.old_mode or match.group(3)
                    parsed.new_mode = parsed.new_mode or match.group(3)
        elif line.startswith("--- "):
            saw_minus = True
            minus_path = _strip_prefix(line[4:], "a/")
        elif line.startswith("+++ "):
            saw_plus = True
            plus_path = _strip_prefix(line[4:], "b/")
        elif line.startswith("Binary files ") or "GIT binary patch" in line:
            parsed.is_binary = True

    if rename_from is not None and rename_to is not None:
        parsed.is_renamed = True
        old_path, new_path = rename_from, rename_to
    if saw_minus and minus_path is not None:
        old_path = minus_path
    if saw_plus and plus_path is not None:
        new_path = plus_path
    if saw_plus and plus_path is None:
        # Deleted file: only the old side has a name
        new_path = old_path
    if saw_minus and minus_path is None and old_path is None:
        old_path = new_path

    if new_path is None:
        warnings.append(f"Could not determine file path from: {lines[0]}")
        return None

    parsed.path = new_path
    parsed.old_path = old_path if parsed.is_renamed else None

    parsed.hunks = _parse_hunks(lines[hunk_start_idx:], new_path, hunk_start_id)
    if not parsed.hunks:
        parsed.hunks = [_create_opaque_hunk(hunk_start_id, new_path, parsed.header_lines)]

    if parsed.is_binary:
        warnings.append(f"Binary file committed as a single unit: {new_path}")

    return parsed


def _parse_hunks(lines: list[str], file_path: str, start_id: int) -> list[Hunk]:
    """Parse hunks from the hunk portion of a file diff.

    Args:
        lines: Lines starting from first @@
        file_path: Path to the file
        start_id: Starting ID number for hunks

    Returns:
        List of Hunk objects
    """
    hunks: list[Hunk] = []
    current_lines: list[str] = []
    current_header: Optional[str] = None
    hunk_id = start_id

    for line in lines:
        if line.startswith("@@"):
            if current_header is not None:
                hunk = _create_hunk(hunk_id, file_path, current_header, current_lines)
                if hunk:
                    hunks.append(hunk)
                    hunk_id += 1
            current_header = line
            current_lines = [line]
        elif current_header is not None:
            current_lines.append(line)

    if current_header is not None:
        hunk = _create_hunk(hunk_id, file_path, current_header, current_lines)
        if hunk:
            hunks.append(hunk)

    return hunks


def _stable_id(hunk_id: int, file_path: str, lines: list[str]) -> str:
    content_hash = hashlib.md5(
        (file_path + "\n" + "".join(lines)).encode("utf-8", errors="surrogateescape"),
        usedforsecurity=False,
    ).hexdigest()[:6]
    return f"H{hunk_id + 1}_{content_hash}"


def _create_hunk(
    hunk_id: int, file_path: str, header: str, lines: list[str]
) -> Optional[Hunk]:
    """Create a Hunk from parsed hunk data.

    Args:
        hunk_id: Numeric ID for the hunk
        file_path: Path to the file
        header: The @@ header line
        lines: All lines of the hunk including header

    Returns:
        Hunk object or None if the header is malformed
    """
    # Format: @@ -old_start,old_len +new_start,new_len @@ optional context
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        return None

    label = match.group(5).strip() or None

    return Hunk(
        id=_stable_id(hunk_id, file_path, lines),
        file_path=file_path,
        old_start=int(match.group(1)),
        old_len=int(match.group(2)) if match.group(2) is not None else 1,
        new_start=int(match.group(3)),
        new_len=int(match.group(4)) if match.group(4) is not None else 1,
        label=label,
    )


def _create_opaque_hunk(hunk_id: int, file_path: str, header_lines: list[str]) -> Hunk:
    return Hunk(
        id=_stable_id(hunk_id, file_path, header_lines),
        file_path=file_path,
        old_start=0,
        old_len=0,
        new_start=0,
        new_len=0,
        opaque=True,
    )


def _unquote_path(value: str) -> str:
    """Undo git's C-style quoting ("a\\tb", octal bytes) of a path."""
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return value

    body = value[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out.extend(ch.encode("utf-8", errors="surrogateescape"))
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _ESCAPES:
            out.extend(_ESCAPES[nxt].encode())
            i += 2
        elif re.match(r"[0-7]{3}", body[i + 1:i + 4]):
            out.append(int(body[i + 1:i + 4], 8))
            i += 4
        else:
            out.extend(nxt.encode("utf-8", errors="surrogateescape"))
            i += 2
    return out.decode("utf-8", errors="surrogateescape")
