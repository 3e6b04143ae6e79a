"""Repository configuration management for gitbahn.

Handles reading and writing the .gitbahn/config.yaml file in each repository:
- ignore: files excluded from the diff sent to the message generator
- split: defaults for the commit decomposition (mode, pacing, remote)
"""

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml


# Default configuration values
DEFAULT_CONFIG = {
    "ignore": [
        # Lock files (auto-generated dependency files)
        "poetry.lock",
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "Cargo.lock",
        "Gemfile.lock",
        "composer.lock",
        "go.sum",
        # Build artifacts
        "*.min.js",
        "*.min.css",
        "*.map",
    ],
    "split": {
        "mode": "logical-chunk",
        "target_commits": None,
        "spread": None,
        "min_gap": None,
        "max_gap": None,
        "merge_threshold": 3,
        "run_hooks": False,
        "remote": "origin",
    },
}


@dataclass
class SplitConfig:
    """Repository defaults for a decomposition run.

    Durations are kept as the strings written in the config file and parsed
    by the scheduler, so a bad value surfaces as a schedule error.
    """

    mode: str = "logical-chunk"
    target_commits: Optional[int] = None
    spread: Optional[str] = None
    min_gap: Optional[str] = None
    max_gap: Optional[str] = None
    merge_threshold: int = 3
    run_hooks: bool = False
    remote: str = "origin"


def get_config_dir(repo_root: Path) -> Path:
    return repo_root / ".gitbahn"


def get_config_file(repo_root: Path) -> Path:
    """Return path to the config.yaml file.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        Path to .gitbahn/config.yaml.
    """
    return get_config_dir(repo_root) / "config.yaml"


def load_config(repo_root: Path) -> dict:
    """Load the gitbahn configuration from config.yaml.

    Missing keys are filled from the defaults; a missing or corrupted file
    yields the defaults. The file is never written here.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        Configuration dictionary.
    """
    config_file = get_config_file(repo_root)

    if not config_file.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(config, dict):
        return copy.deepcopy(DEFAULT_CONFIG)

    for key, value in DEFAULT_CONFIG.items():
        if key not in config or config[key] is None:
            config[key] = copy.deepcopy(value)
    return config


def save_config(repo_root: Path, config: dict) -> None:
    """Save the configuration to config.yaml.

    Args:
        repo_root: The root directory of the git repository.
        config: Configuration dictionary to save.
    """
    config_file = get_config_file(repo_root)
    config_file.parent.mkdir(exist_ok=True)

    with open(config_file, "w") as f:
        yaml.dump(
            config,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


def initialize_repo_config(repo_root: Path) -> bool:
    """Write the default config.yaml if the repository has none.

    Returns:
        True if the file was created, False if it already existed.
    """
    if get_config_file(repo_root).exists():
        return False
    save_config(repo_root, copy.deepcopy(DEFAULT_CONFIG))
    return True


def get_ignore_patterns(repo_root: Path) -> list[str]:
    """Get the list of ignore patterns from config.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        List of file patterns excluded from message diffs.
    """
    config = load_config(repo_root)
    return list(config.get("ignore") or [])


def get_split_config(repo_root: Path) -> SplitConfig:
    """Read the split section into a SplitConfig.

    Unknown keys are ignored and values of the wrong type fall back to the
    field default.

    Args:
        repo_root: The root directory of the git repository.

    Returns:
        SplitConfig with repository defaults applied.
    """
    section = load_config(repo_root).get("split") or {}
    if not isinstance(section, dict):
        return SplitConfig()

    defaults = SplitConfig()
    values = {}

    mode = section.get("mode")
    values["mode"] = mode if isinstance(mode, str) else defaults.mode

    target = section.get("target_commits")
    values["target_commits"] = target if isinstance(target, int) and not isinstance(target, bool) and target >= 1 else None

    for key in ("spread", "min_gap", "max_gap"):
        value = section.get(key)
        values[key] = str(value) if value is not None else None

    threshold = section.get("merge_threshold")
    values["merge_threshold"] = threshold if isinstance(threshold, int) and threshold >= 0 else defaults.merge_threshold

    values["run_hooks"] = bool(section.get("run_hooks", defaults.run_hooks))

    remote = section.get("remote")
    values["remote"] = remote if isinstance(remote, str) and remote else defaults.remote

    return SplitConfig(**values)
