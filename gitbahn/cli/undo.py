"""CLI command for undoing recently created commits."""

import typer

from gitbahn.git.exceptions import GitError, LockError
from gitbahn.split import CommitSession, RepoLock, UndoManager, UndoRangeError
from gitbahn.cli.utils import confirm, open_backend, render_records, setup_logging


def undo_command(
    count: int = typer.Argument(
        1,
        help="Number of commits to undo",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Allow undoing commits that were already pushed",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log git commands to stderr",
    ),
) -> None:
    """Undo the last N commits, keeping their changes in the working tree.

    Only unpushed commits can be undone unless --force is given. HEAD moves
    back with a soft reset, so the undone changes stay staged.
    """
    setup_logging(debug)

    try:
        _, backend = open_backend()

        with RepoLock(backend.git_dir()):
            eligible = count if force else min(count, backend.unpushed_count())
            session = CommitSession.from_history(backend, eligible)
            manager = UndoManager(backend, session)

            try:
                manager.check(count)
            except UndoRangeError as e:
                typer.echo(f"Error: {e}", err=True)
                if not force and len(session) < count:
                    typer.echo(
                        f"Only {len(session)} unpushed commit(s) can be undone. Use --force to include pushed commits.",
                        err=True,
                    )
                raise typer.Exit(1)

            typer.echo(f"Commits to undo ({count}):")
            typer.echo(render_records(list(reversed(session.records[len(session) - count:]))))

            if not yes:
                typer.echo("")
                if not confirm(f"Undo {count} commit(s)?"):
                    typer.echo("Cancelled.", err=True)
                    raise typer.Exit(0)

            removed = manager.undo(count)

        typer.echo(f"Undid {len(removed)} commit(s). Changes are kept in the index.")

    except LockError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)
