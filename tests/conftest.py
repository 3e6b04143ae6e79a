"""Shared test fixtures and configuration."""

import subprocess
import tempfile
from pathlib import Path

import pytest

from gitbahn.split.models import FileChange, FileStatus, Hunk


def git(repo: Path, *args: str) -> str:
    """Run git in a test repository and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def make_file_change(
    path: str,
    new_text: str,
    old_text: str = None,
    hunks: list = None,
    status: FileStatus = None,
) -> FileChange:
    """Build a FileChange; without explicit hunks the file is one insertion or replacement."""
    new_count = len(new_text.splitlines()) if new_text else 0
    old_count = len(old_text.splitlines()) if old_text else 0
    if hunks is None:
        hunks = [Hunk(
            id=f"{path}#1",
            file_path=path,
            old_start=1 if old_count else 0,
            old_len=old_count,
            new_start=1 if new_count else 0,
            new_len=new_count,
        )]
    if status is None:
        status = FileStatus.ADDED if old_text is None else FileStatus.MODIFIED
    return FileChange(
        path=path,
        status=status,
        hunks=tuple(hunks),
        new_mode="100644",
        old_text=old_text,
        new_text=new_text,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_repo(tmp_path):
    """Create a temporary git repository with one initial commit."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    git(repo_dir, "init", "-q")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "commit.gpgsign", "false")

    (repo_dir / "README.md").write_text("# Test Repo\n")
    git(repo_dir, "add", "README.md")
    git(repo_dir, "commit", "-q", "-m", "Initial commit")

    return repo_dir


@pytest.fixture
def empty_repo(tmp_path):
    """Create a temporary git repository without commits."""
    repo_dir = tmp_path / "empty_repo"
    repo_dir.mkdir()
    git(repo_dir, "init", "-q")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "commit.gpgsign", "false")
    return repo_dir


@pytest.fixture
def global_config_dir(tmp_path, monkeypatch):
    """Point ~/.gitbahn at a temporary directory."""
    config_dir = tmp_path / "home" / ".gitbahn"
    monkeypatch.setattr("gitbahn.global_config._CONFIG_DIR", config_dir)
    return config_dir


@pytest.fixture
def utils_strings_source():
    """A Python module with imports and three equally sized functions."""
    return (
        "import re\n"
        "import string\n"
        "\n"
        "\n"
        "def slugify(text):\n"
        "    return re.sub(r'\\W+', '-', text).lower()\n"
        "\n"
        "\n"
        "def shout(text):\n"
        "    return text.upper() + '!'\n"
        "\n"
        "\n"
        "def letters(text):\n"
        "    return [c for c in text if c in string.ascii_letters]\n"
    )
