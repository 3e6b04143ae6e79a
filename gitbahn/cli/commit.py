"""CLI command for decomposing pending changes into a paced commit history."""

import json
import random
from typing import Optional

import typer

from gitbahn.git.exceptions import GitError, LockError, NoChangesError
from gitbahn.split import (
    CommitOrchestrator,
    CommitSession,
    InvariantViolationError,
    RepoLock,
    SplitError,
    ingest_changeset,
    plan_split,
)
from gitbahn.split.executor import RunReport
from gitbahn.user_config import get_ignore_patterns, get_split_config
from gitbahn.cli.utils import (
    build_message_generator,
    build_split_options,
    confirm,
    echo_warnings,
    open_backend,
    render_plan,
    render_records,
    scope_option,
    setup_logging,
)


def report_run(report: RunReport) -> None:
    """Print the outcome of an orchestrated run; exit 1 on partial failure."""
    echo_warnings(report.warnings)
    if report.records:
        typer.echo("")
        typer.echo(f"Created {len(report.records)} commit(s):")
        typer.echo(render_records(report.records))

    if report.error is not None:
        typer.echo("", err=True)
        typer.echo(f"Error during execution: {report.error}", err=True)
        typer.echo(f"Completed: {len(report.records)} commit(s); pending: {len(report.pending)} group(s)", err=True)
        for commit in report.pending:
            typer.echo(f"  - {commit.index}. {commit.label}", err=True)
        typer.echo("Pending changes were left in the working tree.", err=True)
        raise typer.Exit(1)


def commit_command(
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Granularity: whole-file, logical-chunk or hunk (default from config)",
    ),
    commits: Optional[int] = typer.Option(
        None,
        "--commits",
        "-n",
        help="Exact number of commits to create",
    ),
    spread: Optional[str] = typer.Option(
        None,
        "--spread",
        help="Length of the commit window, e.g. 4h, 90m, 1h30m (default: random 2-4h)",
    ),
    start: Optional[str] = typer.Option(
        None,
        "--start",
        help="Start of the window, e.g. '2025-01-05 09:00' (default: now)",
    ),
    scope: str = typer.Option(
        "staged",
        "--scope",
        "-s",
        help="Which changes to decompose: staged, unstaged or all",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible timestamps",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show the plan without creating commits",
    ),
    show_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Print the plan as JSON",
    ),
    no_ai: bool = typer.Option(
        False,
        "--no-ai",
        help="Use generated labels instead of LLM commit messages",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log git commands and engine decisions to stderr",
    ),
) -> None:
    """Split pending changes into a sequence of commits spread over time.

    Shows the proposed commits with their files, line ranges and timestamps,
    asks for confirmation, then creates the commits one by one.
    """
    setup_logging(debug)
    selected_scope = scope_option(scope)

    try:
        repo_root, backend = open_backend()
        split_config = get_split_config(repo_root)
        backend.run_hooks = split_config.run_hooks
        options = build_split_options(split_config, mode, commits, spread, start)
        rng = random.Random(seed)

        with RepoLock(backend.git_dir()):
            changeset = ingest_changeset(backend, selected_scope)
            plan = plan_split(changeset, options, rng)

            if show_json:
                typer.echo(json.dumps(plan.to_dict(), indent=2))
            else:
                typer.echo(render_plan(plan))
            echo_warnings(plan.warnings)

            if dry_run:
                typer.echo("")
                typer.echo("Dry run - no commits created.", err=True)
                raise typer.Exit(0)

            if not yes:
                typer.echo("")
                if not confirm(f"Create these {len(plan.commits)} commits?"):
                    typer.echo("Cancelled.", err=True)
                    raise typer.Exit(0)

            generator = build_message_generator(backend, no_ai)
            orchestrator = CommitOrchestrator(
                backend,
                message_generator=generator,
                session=CommitSession(scope=changeset.scope),
                ignore_patterns=get_ignore_patterns(repo_root),
            )

            def progress(scheduled, record):
                typer.echo(f"  [{scheduled.index}/{len(plan.commits)}] {record.sha[:10]} {record.subject}", err=True)

            typer.echo("Creating commits...", err=True)
            report = orchestrator.run(plan, on_commit=progress)

        report_run(report)

    except NoChangesError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(0)
    except LockError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except InvariantViolationError as e:
        typer.echo(f"Internal error: {e}", err=True)
        raise typer.Exit(1)
    except SplitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)
