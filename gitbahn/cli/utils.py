"""Shared utility functions for CLI commands."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from gitbahn.git.backend import GitBackend
from gitbahn.git.runner import get_repo_root
from gitbahn.llm import LLMMessageGenerator, MessageGenerator, MissingAPIKeyError, get_provider
from gitbahn.split.models import CommitRecord, Scope, SplitMode
from gitbahn.split.planner import SplitOptions, SplitPlan
from gitbahn.split.schedule import format_duration, parse_duration, parse_start_time
from gitbahn.user_config import SplitConfig


def setup_logging(debug: bool) -> None:
    """Send gitbahn's debug logging to stderr when --debug is given."""
    if not debug:
        return
    logger = logging.getLogger("gitbahn")
    if any(getattr(h, "_gitbahn_cli", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler._gitbahn_cli = True
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def open_backend() -> tuple[Path, GitBackend]:
    """Locate the repository and return its root and backend.

    Raises:
        GitError: If not inside a git repository.
    """
    repo_root = get_repo_root()
    return repo_root, GitBackend(repo_root)


def echo_warnings(warnings) -> None:
    for warning in warnings:
        typer.echo(f"Warning: {warning}", err=True)


def parse_choice(value: str, enum_type, option: str):
    """Convert an option value to an enum member or exit with an error."""
    try:
        return enum_type(value.lower())
    except ValueError:
        valid = ", ".join(member.value for member in enum_type)
        typer.echo(f"Invalid {option}: {value}", err=True)
        typer.echo(f"Valid values: {valid}", err=True)
        raise typer.Exit(1)


def build_split_options(
    split_config: SplitConfig,
    mode: Optional[str] = None,
    commits: Optional[int] = None,
    spread: Optional[str] = None,
    start: Optional[str] = None,
) -> SplitOptions:
    """Merge command-line flags over the repository's split config.

    Raises:
        InvalidScheduleError: If a duration or start time is malformed.
        typer.Exit: If the mode or commit count is invalid.
    """
    split_mode = parse_choice(mode or split_config.mode, SplitMode, "mode")
    target = commits if commits is not None else split_config.target_commits
    if target is not None and target < 1:
        typer.echo("--commits must be at least 1", err=True)
        raise typer.Exit(1)

    spread_text = spread or split_config.spread
    return SplitOptions(
        mode=split_mode,
        target_commits=target,
        spread=parse_duration(spread_text) if spread_text else None,
        start=parse_start_time(start) if start else None,
        min_gap=parse_duration(split_config.min_gap) if split_config.min_gap else None,
        max_gap=parse_duration(split_config.max_gap) if split_config.max_gap else None,
        merge_threshold=split_config.merge_threshold,
    )


def build_message_generator(backend: GitBackend, no_ai: bool = False) -> Optional[MessageGenerator]:
    """Create the LLM-backed message generator, or None to use labels.

    A missing API key is reported once and the run continues with labels.
    """
    if no_ai:
        return None

    from gitbahn.config import load_config
    load_config()

    provider = get_provider()
    try:
        provider.get_api_key()
    except MissingAPIKeyError as e:
        typer.echo(f"Warning: {e}", err=True)
        typer.echo("Continuing with generated labels as commit messages.", err=True)
        return None

    return LLMMessageGenerator(
        provider,
        branch=backend.current_branch(),
        recent_subjects=backend.recent_subjects(5),
    )


def render_plan(plan: SplitPlan) -> str:
    """Human-readable preview of a plan."""
    changeset = plan.changeset
    lines = [
        "=" * 60,
        f"Proposed history ({len(plan.commits)} commits, {plan.mode.value} mode, "
        f"{changeset.scope.value} changes)",
        "=" * 60,
    ]
    for commit in plan.commits:
        lines.append("")
        lines.append(f"  {commit.index}. [{commit.timestamp.strftime('%Y-%m-%d %H:%M:%S %z')}] {commit.label}")
        for path, ranges in commit.group.line_ranges().items():
            spans = ", ".join(f"{a}-{b}" if a != b else str(a) for a, b in ranges)
            lines.append(f"       {path}: lines {spans}")
    lines.append("")
    lines.append(f"Window: {plan.start.strftime('%Y-%m-%d %H:%M:%S %z')} + {format_duration(plan.spread)}")
    lines.append("=" * 60)
    return "\n".join(lines)


def render_records(records: list[CommitRecord]) -> str:
    lines = []
    for record in records:
        lines.append(f"  {record.sha[:10]}  {record.timestamp.strftime('%Y-%m-%d %H:%M:%S')}  {record.subject}")
    return "\n".join(lines)


def confirm(question: str) -> bool:
    """Ask a [y/N] question."""
    answer = typer.prompt(f"{question} [y/N]", default="n", show_default=False)
    return answer.strip().lower() in ("y", "yes")


def scope_option(value: str) -> Scope:
    return parse_choice(value, Scope, "scope")

