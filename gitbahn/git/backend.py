"""Repository backend over the git executable.

Contains:
- EMPTY_TREE: Hash of git's empty tree (base of an unborn repository)
- GitBackend: Every read and write the decomposition engine performs on a repo
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from gitbahn.git.exceptions import BackendError, GitError
from gitbahn.git.runner import _run_git_bytes, _run_git_command

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

# Push failures that no amount of retrying fixes
_PERMANENT_PUSH_ERRORS = (
    "rejected",
    "non-fast-forward",
    "authentication failed",
    "permission denied",
    "could not read from remote repository",
    "does not appear to be a git repository",
)


def format_git_date(moment: datetime) -> str:
    """Format an aware datetime in git's internal '<epoch> <+hhmm>' form.

    Args:
        moment: Timezone-aware datetime.

    Returns:
        Date string accepted by GIT_AUTHOR_DATE / GIT_COMMITTER_DATE.
    """
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return f"{int(moment.timestamp())} {moment.strftime('%z')}"


class GitBackend:
    """Git operations bound to a single repository root."""

    def __init__(self, repo_root: Path, run_hooks: bool = False):
        """Initialize the backend.

        Args:
            repo_root: Root of the working tree.
            run_hooks: Run commit hooks when committing (skipped by default).
        """
        self.repo_root = Path(repo_root)
        self.run_hooks = run_hooks

    def git(self, args: list[str], input: Optional[str] = None, env: Optional[dict[str, str]] = None, strip: bool = True) -> str:
        return _run_git_command(args, cwd=self.repo_root, input=input, env=env, strip=strip)

    def git_bytes(self, args: list[str], input: Optional[bytes] = None) -> bytes:
        return _run_git_bytes(args, cwd=self.repo_root, input=input)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def head(self) -> Optional[str]:
        """Return the HEAD commit sha, or None in an unborn repository."""
        try:
            sha = self.git(["rev-parse", "--verify", "-q", "HEAD"])
        except GitError:
            return None
        return sha or None

    def base_revision(self) -> str:
        """Return HEAD, or the empty tree when nothing is committed yet."""
        return self.head() or EMPTY_TREE

    def git_dir(self) -> Path:
        """Return the absolute path of the repository's git directory."""
        git_dir = Path(self.git(["rev-parse", "--git-dir"]))
        if not git_dir.is_absolute():
            git_dir = self.repo_root / git_dir
        return git_dir

    def current_branch(self) -> str:
        """Get the current branch name.

        Returns:
            The current branch name, or 'HEAD (detached)' when detached.
        """
        branch = self.git(["branch", "--show-current"])
        if not branch:
            return "HEAD (detached)"
        return branch

    def log(self, count: int = 5) -> list[tuple[str, str]]:
        """Return (sha, subject) pairs for the most recent commits.

        Args:
            count: Number of commits to return.

        Returns:
            Newest first; empty in an unborn repository.
        """
        if self.head() is None:
            return []
        output = self.git(["log", f"-n{count}", "--pretty=%H%x00%s"])
        entries = []
        for line in output.splitlines():
            if "\x00" in line:
                sha, subject = line.split("\x00", 1)
                entries.append((sha, subject))
        return entries

    def recent_subjects(self, count: int = 5) -> list[str]:
        """Return the subjects of the most recent commits."""
        return [subject for _, subject in self.log(count)]

    def diff(self, scope: str, paths: Optional[list[str]] = None) -> str:
        """Return a zero-context diff for the requested scope.

        Args:
            scope: 'staged' (base vs index), 'unstaged' (index vs worktree)
                or 'all' (base vs worktree).
            paths: Optional pathspec limiting the diff.

        Returns:
            Raw unified diff text with -U0 hunks and rename detection.
        """
        args = ["diff", "-U0", "-M", "--full-index", "--no-color", "--no-ext-diff"]
        if scope == "staged":
            args += ["--cached", self.base_revision()]
        elif scope == "all":
            args.append(self.base_revision())
        elif scope != "unstaged":
            raise ValueError(f"Unknown scope: {scope}")
        if paths:
            args += ["--"] + list(paths)
        return self.git(args, strip=False)

    def staged_diff(self, paths: Optional[list[str]] = None) -> str:
        """Return the full-context diff of what is currently staged."""
        args = ["diff", "--cached", "--no-color", "--no-ext-diff", self.base_revision()]
        if paths:
            args += ["--"] + list(paths)
        return self.git(args, strip=False)

    def staged_files(self) -> list[str]:
        """Return paths that differ between the index and the base revision."""
        output = self.git(["diff", "--cached", "--name-only", self.base_revision()])
        return [line for line in output.splitlines() if line]

    def has_staged_changes(self) -> bool:
        return bool(self.staged_files())

    def untracked_files(self, paths: Optional[list[str]] = None) -> list[str]:
        """Return untracked, non-ignored files."""
        args = ["ls-files", "--others", "--exclude-standard", "-z"]
        if paths:
            args += ["--"] + list(paths)
        output = self.git(args, strip=False)
        return sorted(p for p in output.split("\x00") if p)

    def changed_paths(self) -> list[str]:
        """Return every path with staged, unstaged or untracked changes."""
        output = self.git(["status", "--porcelain=v1", "-z", "--untracked-files=all"], strip=False)
        paths: list[str] = []
        entries = output.split("\x00")
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue
            paths.append(entry[3:])
            # Renames and copies are followed by their source path
            if entry[0] in ("R", "C"):
                i += 1
        return paths

    def show_file(self, revision: str, path: str) -> Optional[bytes]:
        """Read a file at a revision (use "" for the index).

        Returns:
            File bytes, or None when the path does not exist there.
        """
        if revision == EMPTY_TREE:
            return None
        try:
            return self.git_bytes(["cat-file", "blob", f"{revision}:{path}"])
        except GitError:
            return None

    def read_worktree(self, path: str) -> Optional[bytes]:
        """Read a file from the working tree, None if it does not exist."""
        full_path = self.repo_root / path
        if not full_path.is_file():
            return None
        return full_path.read_bytes()

    def blob_sha(self, revision: str, path: str) -> Optional[str]:
        try:
            return self.git(["rev-parse", "--verify", "-q", f"{revision}:{path}"]) or None
        except GitError:
            return None

    def unpushed_count(self) -> int:
        """Count commits on HEAD that are not on its upstream branch.

        Without an upstream every commit counts as unpushed.
        """
        if self.head() is None:
            return 0
        try:
            return int(self.git(["rev-list", "--count", "@{upstream}..HEAD"]))
        except GitError:
            return int(self.git(["rev-list", "--count", "HEAD"]))

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def hash_content(self, data: bytes) -> str:
        """Write bytes into the object database and return the blob sha."""
        try:
            return self.git_bytes(["hash-object", "-w", "--stdin"], input=data).decode().strip()
        except GitError as e:
            raise BackendError(str(e))

    def hash_worktree_file(self, path: str) -> str:
        try:
            return self.git(["hash-object", "-w", "--", path])
        except GitError as e:
            raise BackendError(str(e))

    def stage_blob(self, path: str, sha: str, mode: str = "100644") -> None:
        """Point the index entry for path at an existing blob."""
        try:
            self.git(["update-index", "--add", "--cacheinfo", f"{mode},{sha},{path}"])
        except GitError as e:
            raise BackendError(f"Failed to stage {path}: {e}")

    def stage_content(self, path: str, data: bytes, mode: str = "100644") -> str:
        """Stage exact file content for path without touching the worktree.

        Returns:
            The sha of the staged blob.
        """
        sha = self.hash_content(data)
        self.stage_blob(path, sha, mode)
        return sha

    def remove_from_index(self, path: str) -> None:
        try:
            self.git(["update-index", "--force-remove", "--", path])
        except GitError as e:
            raise BackendError(f"Failed to unstage {path}: {e}")

    def unstage_all(self) -> None:
        """Reset the index to HEAD (or to empty in an unborn repository)."""
        try:
            if self.head() is None:
                self.git(["read-tree", "--empty"])
            else:
                self.git(["reset", "-q"])
        except GitError as e:
            raise BackendError(f"Failed to reset index: {e}")

    def write_tree(self) -> str:
        """Snapshot the current index as a tree object."""
        return self.git(["write-tree"])

    def read_tree(self, tree: str) -> None:
        """Replace the index with a previously written tree."""
        self.git(["read-tree", tree])

    def commit(self, message: str, author_time: datetime, committer_time: datetime) -> str:
        """Commit the index with explicit author and committer dates.

        Args:
            message: Full commit message.
            author_time: Author date.
            committer_time: Committer date.

        Returns:
            The new commit sha.

        Raises:
            BackendError: If git refuses to commit.
        """
        env = {
            "GIT_AUTHOR_DATE": format_git_date(author_time),
            "GIT_COMMITTER_DATE": format_git_date(committer_time),
        }
        args = ["commit", "-q", "--allow-empty-message", "-F", "-"]
        if not self.run_hooks:
            args.append("--no-verify")
        try:
            self.git(args, input=message, env=env)
            return self.git(["rev-parse", "HEAD"])
        except GitError as e:
            raise BackendError(f"Failed to commit: {e}")

    def reset_soft(self, count: int) -> Optional[str]:
        """Move HEAD back by count commits, keeping index and worktree.

        Returns:
            The new HEAD sha, or None when the branch became unborn again.
        """
        target = None
        try:
            target = self.git(["rev-parse", "--verify", "-q", f"HEAD~{count}"]) or None
        except GitError:
            target = None

        if target is None:
            total = int(self.git(["rev-list", "--count", "HEAD"]))
            if total != count:
                raise BackendError(f"Cannot move HEAD back {count} commits")
            # Removing the root commit leaves the branch unborn
            self.git(["update-ref", "-d", "HEAD"])
            return None

        self.git(["reset", "-q", "--soft", target])
        return target

    def reset_paths(self, revision: Optional[str], paths: list[str]) -> None:
        """Reset index entries for paths to a revision (or drop them)."""
        if not paths:
            return
        if revision is None:
            self.git(["rm", "-q", "--cached", "--ignore-unmatch", "--"] + paths)
        else:
            self.git(["reset", "-q", revision, "--"] + paths)

    def push(
        self,
        remote: str = "origin",
        branch: Optional[str] = None,
        force: bool = False,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 16.0,
    ) -> None:
        """Push to a remote, retrying transient failures with backoff.

        Args:
            remote: Remote name.
            branch: Branch to push (defaults to the current branch).
            force: Use --force-with-lease.
            max_retries: Retries after the first attempt.
            base_delay: First backoff delay in seconds.
            max_delay: Upper bound for the backoff delay.

        Raises:
            BackendError: If the push keeps failing or fails permanently.
        """
        branch = branch or self.git(["branch", "--show-current"])
        if not branch:
            raise BackendError("Cannot push a detached HEAD")

        args = ["push", "--set-upstream", remote, branch]
        if force:
            args.insert(1, "--force-with-lease")

        delay = base_delay
        last_error = ""
        for attempt in range(max_retries + 1):
            if attempt > 0:
                logger.info("Retrying push (attempt %d/%d)", attempt + 1, max_retries + 1)
                time.sleep(delay)
                delay = min(delay * 2, max_delay)
            try:
                self.git(args)
                return
            except GitError as e:
                last_error = str(e)
                if any(marker in last_error.lower() for marker in _PERMANENT_PUSH_ERRORS):
                    raise BackendError(f"Push failed: {last_error}")

        raise BackendError(f"Push failed after {max_retries + 1} attempts: {last_error}")
