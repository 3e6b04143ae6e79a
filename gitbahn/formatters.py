"""Commit message formatting and rendering."""

from pydantic import BaseModel, field_validator


class CommitMessageJSON(BaseModel):
    """Pydantic model for structured commit message data.

    Attributes:
        title: The commit message title (imperative mood, max 72 chars recommended).
        body_bullets: Bullet points describing the changes (may be empty for
            small commits).
    """

    title: str
    body_bullets: list[str] = []

    @field_validator("title")
    @classmethod
    def title_must_not_be_empty(cls, v: str) -> str:
        """Ensure title is not empty."""
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("body_bullets")
    @classmethod
    def strip_bullets(cls, v: list[str]) -> list[str]:
        """Drop empty bullets and strip whitespace."""
        return [bullet.strip() for bullet in v if bullet and bullet.strip()]


def sanitize_title(title: str, max_length: int = 72) -> str:
    """Sanitize and truncate the commit title to max_length characters.

    Args:
        title: The raw title string.
        max_length: Maximum allowed length (default 72 for git best practices).

    Returns:
        A sanitized single-line title, truncated if necessary.
    """
    title = title.strip().split("\n")[0].strip()

    if len(title) > max_length:
        title = title[: max_length - 3].rstrip() + "..."

    return title


def render_commit_message(data: CommitMessageJSON) -> str:
    """Render a CommitMessageJSON into a commit message string.

    Args:
        data: The structured commit message data.

    Returns:
        The title, and when there are bullets a blank line and "- " items.

    Example output:
        Add slug helper for article URLs

        - Lower-case and hyphenate titles
        - Strip characters outside [a-z0-9-]
    """
    title = sanitize_title(data.title)
    if not data.body_bullets:
        return title

    bullets = "\n".join(f"- {bullet}" for bullet in data.body_bullets)
    return f"{title}\n\n{bullets}"
