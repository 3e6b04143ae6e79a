"""CLI command for watching the working tree and committing in batches.

Contains:
- ChangeEventHandler: watchdog handler that records activity in the repository
- WatchLoop: Feeds changed paths into a BatchSession and flushes it when due
- watch_command: The `gitbahn watch` command
"""

import logging
import queue
import random
import time
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

import typer
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from gitbahn.git.backend import GitBackend
from gitbahn.git.exceptions import BackendError, GitError, LockError, NoChangesError
from gitbahn.split import (
    BatchSession,
    CommitOrchestrator,
    CommitSession,
    RepoLock,
    Scope,
    SplitError,
    SplitOptions,
    ingest_changeset,
    plan_split,
)
from gitbahn.split.executor import RunReport
from gitbahn.split.schedule import parse_duration
from gitbahn.user_config import get_ignore_patterns, get_split_config
from gitbahn.cli.utils import (
    build_message_generator,
    build_split_options,
    echo_warnings,
    open_backend,
    render_records,
    setup_logging,
)

logger = logging.getLogger(__name__)


class ChangeEventHandler(FileSystemEventHandler):
    """Pushes the repository-relative path of every file event onto a queue.

    Events run on the observer thread; the queue is the only shared state.
    Anything under the git directory is dropped.
    """

    def __init__(self, repo_root: Path, events: "queue.Queue[str]"):
        super().__init__()
        self.repo_root = repo_root
        self.events = events

    def _relative(self, path) -> Optional[str]:
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        try:
            relative = Path(path).resolve().relative_to(self.repo_root.resolve())
        except ValueError:
            return None
        if not relative.parts or relative.parts[0] == ".git":
            return None
        return relative.as_posix()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for path in (event.src_path, getattr(event, "dest_path", None)):
            if not path:
                continue
            relative = self._relative(path)
            if relative is not None:
                self.events.put(relative)


class WatchLoop:
    """One polling loop over a BatchSession.

    File events only mark the tree as dirty; `git status` decides which
    paths are actually pending, so ignored and unchanged files never reach
    the batch.
    """

    def __init__(
        self,
        backend: GitBackend,
        batch: BatchSession,
        pipeline: Callable[[list[str]], RunReport],
        events: "queue.Queue[str]",
        flush_every: timedelta,
        max_flushes: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.backend = backend
        self.batch = batch
        self.pipeline = pipeline
        self.events = events
        self.flush_every = flush_every
        self.max_flushes = max_flushes
        self.clock = clock
        self.flushes = 0
        self._dirty = True

    def _drain(self) -> bool:
        seen = False
        while True:
            try:
                self.events.get_nowait()
            except queue.Empty:
                return seen
            seen = True

    @property
    def finished(self) -> bool:
        return self.max_flushes is not None and self.flushes >= self.max_flushes

    def collect(self) -> int:
        """Move changed paths into the batch; returns how many were new."""
        if self._drain():
            self._dirty = True
        if not self._dirty:
            return 0
        self._dirty = False
        return self.batch.append(self.backend.changed_paths(), self.clock())

    def flush(self) -> Optional[RunReport]:
        """Run the pipeline over the batch, keeping it if the run fails."""
        report = self.batch.flush(self.pipeline)
        if report is not None:
            self.flushes += 1
        return report

    def tick(self) -> Optional[RunReport]:
        """Collect changes and flush when the oldest one is due."""
        added = self.collect()
        if added:
            logger.debug("Batch now holds %d path(s)", len(self.batch.pending))
        if self.batch.is_due(self.clock(), self.flush_every):
            return self.flush()
        return None


def _make_pipeline(
    backend: GitBackend,
    options: SplitOptions,
    ignore_patterns: list[str],
    no_ai: bool,
    seed: Optional[int],
) -> Callable[[list[str]], RunReport]:
    rng = random.Random(seed)
    state = {"start": options.start}

    def pipeline(paths: list[str]) -> RunReport:
        changeset = ingest_changeset(backend, Scope.ALL, paths)
        plan = plan_split(changeset, replace(options, start=state["start"]), rng)
        echo_warnings(plan.warnings)

        typer.echo(f"Flushing {len(paths)} path(s) into {len(plan.commits)} commit(s)...", err=True)
        orchestrator = CommitOrchestrator(
            backend,
            message_generator=build_message_generator(backend, no_ai),
            session=CommitSession(scope=changeset.scope),
            ignore_patterns=ignore_patterns,
        )
        report = orchestrator.run(plan)
        echo_warnings(report.warnings)
        if report.records:
            # Only the first flush uses an explicit --start; later ones start now
            state["start"] = None
            typer.echo(render_records(report.records))
        if report.error is not None:
            raise BackendError(
                f"{report.error} ({len(report.records)} committed, {len(report.pending)} pending)"
            )
        return report

    return pipeline


def _final_flush(loop: WatchLoop) -> None:
    loop.collect()
    if not loop.batch.pending:
        return
    typer.echo("Flushing pending changes before exit...", err=True)
    try:
        loop.flush()
    except NoChangesError:
        loop.batch.cancel()
    except (SplitError, GitError) as e:
        dropped = loop.batch.cancel()
        typer.echo(f"Final flush failed: {e}", err=True)
        typer.echo(f"{len(dropped)} path(s) left uncommitted in the working tree.", err=True)


def watch_command(
    interval: float = typer.Option(
        30.0,
        "--interval",
        help="Seconds between checks for changes",
    ),
    flush_every: str = typer.Option(
        "30m",
        "--flush-every",
        help="Commit a batch once its oldest change is this old, e.g. 30m, 2h",
    ),
    spread: Optional[str] = typer.Option(
        None,
        "--spread",
        help="Length of each batch's commit window (default: random 2-4h)",
    ),
    start: Optional[str] = typer.Option(
        None,
        "--start",
        help="Start of the first batch's window (default: now)",
    ),
    commits: Optional[int] = typer.Option(
        None,
        "--commits",
        "-n",
        help="Exact number of commits per batch",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Granularity: whole-file, logical-chunk or hunk",
    ),
    max_flushes: Optional[int] = typer.Option(
        None,
        "--max-flushes",
        help="Stop after this many batches",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible timestamps",
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
    """Watch the working tree and commit accumulated changes in batches.

    Each batch goes through the full pipeline (ingest, plan, commit). Press
    Ctrl+C to stop; pending changes are flushed before exiting.
    """
    setup_logging(debug)

    if interval <= 0:
        typer.echo("--interval must be positive", err=True)
        raise typer.Exit(1)

    try:
        repo_root, backend = open_backend()
        split_config = get_split_config(repo_root)
        backend.run_hooks = split_config.run_hooks
        options = build_split_options(split_config, mode, commits, spread, start)
        flush_delay = parse_duration(flush_every)

        with RepoLock(backend.git_dir()):
            events: "queue.Queue[str]" = queue.Queue()
            batch = BatchSession()
            batch.start()
            loop = WatchLoop(
                backend,
                batch,
                _make_pipeline(backend, options, get_ignore_patterns(repo_root), no_ai, seed),
                events,
                flush_every=flush_delay,
                max_flushes=max_flushes,
            )

            observer = Observer()
            observer.schedule(ChangeEventHandler(repo_root, events), str(repo_root), recursive=True)
            observer.start()
            typer.echo(f"Watching {repo_root} (flush every {flush_every}). Press Ctrl+C to stop.", err=True)

            try:
                while not loop.finished:
                    try:
                        loop.tick()
                    except NoChangesError:
                        batch.cancel()
                        batch.start()
                    except (SplitError, GitError) as e:
                        typer.echo(f"Flush failed, keeping batch: {e}", err=True)
                    if not loop.finished:
                        time.sleep(interval)
            except KeyboardInterrupt:
                typer.echo("", err=True)
                typer.echo("Stopping watch...", err=True)
            finally:
                observer.stop()
                observer.join()

            if not loop.finished:
                _final_flush(loop)

        typer.echo(f"Watch finished after {loop.flushes} batch(es).", err=True)

    except LockError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except SplitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)
