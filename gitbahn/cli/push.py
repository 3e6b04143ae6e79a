"""CLI command for pushing the paced history to a remote."""

from typing import Optional

import typer

from gitbahn.git.exceptions import GitError
from gitbahn.user_config import get_split_config
from gitbahn.cli.utils import open_backend, setup_logging


def push_command(
    remote: Optional[str] = typer.Option(
        None,
        "--remote",
        "-r",
        help="Remote to push to (default from config, usually origin)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Push with --force-with-lease (needed after undoing pushed commits)",
    ),
    retries: int = typer.Option(
        3,
        "--retries",
        help="Retries for transient push failures",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log git commands to stderr",
    ),
) -> None:
    """Push the current branch, retrying transient failures with backoff."""
    setup_logging(debug)

    try:
        repo_root, backend = open_backend()
        target = remote or get_split_config(repo_root).remote
        branch = backend.current_branch()
        pending = backend.unpushed_count()

        typer.echo(f"Pushing {branch} to {target} ({pending} unpushed commit(s))...", err=True)
        backend.push(remote=target, force=force, max_retries=retries)
        typer.echo(f"✓ Pushed {branch} to {target}")

    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)
