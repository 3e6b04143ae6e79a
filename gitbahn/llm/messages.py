"""Commit message generation for decomposed commits.

Contains:
- MessageGenerator: Protocol the commit orchestrator asks for messages
- LLMMessageGenerator: MessageGenerator backed by a configured LLM provider
- build_context_bundle: Git context sent to the provider for one commit
- summarize_file_changes: NEW/MODIFIED/DELETED/RENAMED summary of a diff
"""

import logging
import re
from typing import Optional, Protocol, runtime_checkable

from gitbahn.formatters import render_commit_message
from gitbahn.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")


@runtime_checkable
class MessageGenerator(Protocol):
    """Produces a commit message for the staged diff of one commit."""

    def generate(self, diff_text: str) -> str:
        ...


def summarize_file_changes(diff_text: str) -> str:
    """Summarize which files a diff creates, modifies, deletes or renames.

    Args:
        diff_text: Unified diff text.

    Returns:
        Human-readable summary of file changes.
    """
    new_files: list[str] = []
    modified_files: list[str] = []
    deleted_files: list[str] = []
    renamed_files: list[str] = []

    current: Optional[str] = None
    kind = "modified"
    rename_from: Optional[str] = None

    def flush() -> None:
        if current is None:
            return
        if kind == "new":
            new_files.append(current)
        elif kind == "deleted":
            deleted_files.append(current)
        elif kind == "renamed":
            renamed_files.append(f"{rename_from} -> {current}")
        else:
            modified_files.append(current)

    for line in diff_text.splitlines():
        match = _DIFF_HEADER_RE.match(line)
        if match:
            flush()
            current, kind, rename_from = match.group(2), "modified", None
        elif line.startswith("new file mode"):
            kind = "new"
        elif line.startswith("deleted file mode"):
            kind = "deleted"
        elif line.startswith("rename from "):
            kind, rename_from = "renamed", line[len("rename from "):]
    flush()

    lines = []
    if new_files:
        lines.append("New files (did not exist before this commit):")
        lines.extend(f"  + {f}" for f in new_files)
    if modified_files:
        lines.append("Modified files (already existed, now changed):")
        lines.extend(f"  ~ {f}" for f in modified_files)
    if deleted_files:
        lines.append("Deleted files:")
        lines.extend(f"  - {f}" for f in deleted_files)
    if renamed_files:
        lines.append("Renamed files:")
        lines.extend(f"  > {f}" for f in renamed_files)

    return "\n".join(lines) if lines else "(no files)"


def build_context_bundle(
    diff_text: str,
    branch: Optional[str] = None,
    recent_subjects: Optional[list[str]] = None,
) -> str:
    """Build the git context bundle for one commit.

    Args:
        diff_text: Staged diff of the commit.
        branch: Current branch name.
        recent_subjects: Subjects of recent commits, newest first.

    Returns:
        A formatted string with [BRANCH], [FILE_CHANGES], [RECENT_COMMITS]
        and [STAGED_DIFF] sections.
    """
    commits = "\n".join(f"- {s}" for s in recent_subjects) if recent_subjects else "- (no commits yet)"
    return f"""[BRANCH]
{branch or "(unknown)"}

[FILE_CHANGES]
{summarize_file_changes(diff_text)}

[RECENT_COMMITS]
{commits}

[STAGED_DIFF]
{diff_text}"""


class LLMMessageGenerator:
    """Generates commit messages with an LLM provider.

    Subjects of commits made during the run are added to the style context,
    so later messages read like a continuation of earlier ones.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        branch: Optional[str] = None,
        recent_subjects: Optional[list[str]] = None,
        history: int = 5,
    ):
        self.provider = provider
        self.branch = branch
        self.recent_subjects = list(recent_subjects or [])
        self.history = history
        self.input_tokens = 0
        self.output_tokens = 0

    def generate(self, diff_text: str) -> str:
        """Generate a message for a staged diff.

        Raises:
            LLMError: If the provider fails; callers fall back to the label.
        """
        bundle = build_context_bundle(diff_text, self.branch, self.recent_subjects[: self.history])
        result = self.provider.generate(bundle)
        self.input_tokens += result.input_tokens
        self.output_tokens += result.output_tokens
        logger.debug("%s used %d input / %d output tokens", result.model, result.input_tokens, result.output_tokens)

        message = render_commit_message(result.commit_json)
        self.recent_subjects.insert(0, message.split("\n", 1)[0])
        return message
