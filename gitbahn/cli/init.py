"""CLI command for initializing gitbahn configuration."""

import typer

from gitbahn import global_config
from gitbahn.git.exceptions import GitError
from gitbahn.user_config import get_config_file, initialize_repo_config
from gitbahn.cli.utils import open_backend


def init_config() -> None:
    """Write the default repository config and global defaults.

    Creates .gitbahn/config.yaml in the repository (ignore patterns and split
    defaults) and ~/.gitbahn/config.yaml if neither exists yet. Existing
    files are left untouched.
    """
    try:
        repo_root, _ = open_backend()
    except GitError as e:
        typer.echo(f"Git error: {e}", err=True)
        raise typer.Exit(1)

    try:
        created = initialize_repo_config(repo_root)
        config_file = get_config_file(repo_root)
        if created:
            typer.echo(f"✓ Created {config_file}")
        else:
            typer.echo(f"Repository config already exists at {config_file}")

        if not global_config.is_configured():
            global_config.ensure_global_config_dir()
            global_config.initialize_default_config()
            typer.echo(f"✓ Created {global_config.get_config_file_path()}")
            typer.echo("Run 'gitbahn config set-key <provider>' to add an API key.")

    except (OSError, global_config.GlobalConfigError) as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        raise typer.Exit(1)
