"""Git command runner and repository utilities.

Contains:
- _run_git_command: Run a git command and return its decoded output
- _run_git_bytes: Run a git command and return its raw output bytes
- get_repo_root: Get the root directory of the current git repository
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from gitbahn.git.exceptions import GitError

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

# Keep paths unquoted and output uncoloured regardless of user config.
_BASE_ARGS = ["git", "-c", "core.quotepath=false", "-c", "color.ui=false"]


def _run(
    args: list[str],
    cwd: Optional[Path],
    input: Optional[bytes],
    env: Optional[dict[str, str]],
) -> subprocess.CompletedProcess:
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    logger.debug("git %s", " ".join(args))
    try:
        return subprocess.run(
            _BASE_ARGS + args,
            capture_output=True,
            check=True,
            cwd=cwd,
            input=input,
            env=full_env,
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
        raise GitError(f"Git command failed: git {' '.join(args)}\n{stderr.strip()}")
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")


def _run_git_command(
    args: list[str],
    cwd: Optional[Path] = None,
    input: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
    strip: bool = True,
) -> str:
    """Run a git command and return its output.

    Args:
        args: List of arguments to pass to git.
        cwd: Directory to run the command in (defaults to the process cwd).
        input: Optional text piped to the command's stdin.
        env: Extra environment variables for the command.
        strip: Whether to strip surrounding whitespace from the output.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails.
    """
    data = input.encode("utf-8", errors="surrogateescape") if input is not None else None
    result = _run(args, cwd, data, env)
    output = result.stdout.decode("utf-8", errors="surrogateescape")
    return output.strip() if strip else output


def _run_git_bytes(
    args: list[str],
    cwd: Optional[Path] = None,
    input: Optional[bytes] = None,
) -> bytes:
    """Run a git command and return its raw stdout.

    Args:
        args: List of arguments to pass to git.
        cwd: Directory to run the command in.
        input: Optional bytes piped to the command's stdin.

    Returns:
        The raw stdout bytes.

    Raises:
        GitError: If the command fails.
    """
    return _run(args, cwd, input, None).stdout


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Get the root directory of the current git repository.

    Returns:
        Path to the repository root.

    Raises:
        GitError: If not in a git repository.
    """
    try:
        root = _run_git_command(["rev-parse", "--show-toplevel"], cwd=cwd)
        return Path(root)
    except GitError:
        raise GitError("Not in a git repository. Please run this command from within a git repo.")
