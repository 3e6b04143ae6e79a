"""CLI command for showing what gitbahn would work on."""

import typer

from gitbahn.git.exceptions import GitError, NoChangesError
from gitbahn.split import RepoLock, Scope, ingest_changeset
from gitbahn.cli.utils import open_backend, scope_option


def status_command(
    scope: str = typer.Option(
        "all",
        "--scope",
        "-s",
        help="Which changes to summarize: staged, unstaged or all",
    ),
) -> None:
    """Show the branch, unpushed commits and the pending changeset."""
    selected_scope = scope_option(scope)

    try:
        _, backend = open_backend()

        typer.echo(f"On branch {backend.current_branch()}")
        typer.echo(f"Unpushed commits: {backend.unpushed_count()}")

        holder = RepoLock(backend.git_dir()).holder()
        if holder is not None:
            typer.echo(f"Locked by gitbahn process {holder}")

        try:
            changeset = ingest_changeset(backend, selected_scope)
        except NoChangesError:
            typer.echo(f"No {selected_scope.value} changes.")
            return

        typer.echo("")
        typer.echo(
            f"Pending {selected_scope.value} changes: {len(changeset.files)} file(s), "
            f"{len(changeset.hunks)} hunk(s)"
        )
        for file_change in changeset.files:
            detail = f"{len(file_change.hunks)} hunk(s)"
            if file_change.old_path and file_change.old_path != file_change.path:
                detail = f"from {file_change.old_path}, {detail}"
            typer.echo(f"  {file_change.status.value:<8} {file_change.path} ({detail})")

        if selected_scope == Scope.STAGED and backend.untracked_files():
            typer.echo("")
            typer.echo("Untracked files are not included; use --scope all to see them.")

    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)
