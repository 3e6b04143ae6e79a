"""CLI entry point for gitbahn.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from gitbahn.cli.config import config_app
from gitbahn.cli.init import init_config
from gitbahn.cli.commit import commit_command
from gitbahn.cli.undo import undo_command
from gitbahn.cli.watch import watch_command
from gitbahn.cli.push import push_command
from gitbahn.cli.status import status_command
from gitbahn.cli.main import main_command

# Main application
app = typer.Typer(
    name="gitbahn",
    help="gitbahn: turn one big change into a paced commit history",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(config_app, name="config")

# Add individual commands
app.command("init")(init_config)
app.command("commit")(commit_command)
app.command("undo")(undo_command)
app.command("watch")(watch_command)
app.command("push")(push_command)
app.command("status")(status_command)

# Set the main callback for default behavior (includes --version flag)
app.callback(invoke_without_command=True)(main_command)


__all__ = [
    "app",
    "config_app",
    "init_config",
    "commit_command",
    "undo_command",
    "watch_command",
    "push_command",
    "status_command",
    "main_command",
]
