"""Tests for gitbahn.formatters module."""

import pytest
from pydantic import ValidationError

from gitbahn.formatters import CommitMessageJSON, render_commit_message, sanitize_title


class TestCommitMessageJSON:
    """Tests for CommitMessageJSON Pydantic model."""

    def test_valid_commit_message(self):
        """Test creating a valid commit message."""
        msg = CommitMessageJSON(
            title="Add new feature",
            body_bullets=["Add user authentication", "Update database schema"],
        )
        assert msg.title == "Add new feature"
        assert len(msg.body_bullets) == 2

    def test_title_stripped(self):
        """Test that title whitespace is stripped."""
        msg = CommitMessageJSON(title="  Add feature  ")
        assert msg.title == "Add feature"

    def test_empty_title_raises_error(self):
        """Test that empty title raises validation error."""
        with pytest.raises(ValidationError) as exc_info:
            CommitMessageJSON(title="", body_bullets=["Change"])
        assert "Title cannot be empty" in str(exc_info.value)

    def test_whitespace_only_title_raises_error(self):
        """Test that whitespace-only title raises validation error."""
        with pytest.raises(ValidationError):
            CommitMessageJSON(title="   ")

    def test_body_bullets_default_empty(self):
        """Test that small commits need no bullets."""
        assert CommitMessageJSON(title="Fix typo").body_bullets == []

    def test_body_bullets_filters_empty_strings(self):
        """Test that empty strings are filtered from body_bullets."""
        msg = CommitMessageJSON(
            title="Add feature",
            body_bullets=["Valid bullet", "", "  ", " Another valid "],
        )
        assert msg.body_bullets == ["Valid bullet", "Another valid"]


class TestSanitizeTitle:
    """Tests for sanitize_title function."""

    def test_short_title_unchanged(self):
        """Test that short titles pass through."""
        assert sanitize_title("Add parser") == "Add parser"

    def test_long_title_truncated(self):
        """Test truncation to 72 characters with an ellipsis."""
        result = sanitize_title("A" * 100)

        assert len(result) == 72
        assert result.endswith("...")

    def test_only_first_line_kept(self):
        """Test that multi-line titles keep their first line."""
        assert sanitize_title("Add parser\nand more") == "Add parser"

    def test_custom_max_length(self):
        """Test a custom maximum length."""
        assert sanitize_title("Add a parser for quoted paths", max_length=10) == "Add a p..."


class TestRenderCommitMessage:
    """Tests for render_commit_message function."""

    def test_title_and_bullets(self):
        """Test rendering with bullets."""
        msg = CommitMessageJSON(title="Add slug helper", body_bullets=["Lower-case", "Hyphenate"])

        assert render_commit_message(msg) == "Add slug helper\n\n- Lower-case\n- Hyphenate"

    def test_title_only(self):
        """Test rendering without bullets."""
        assert render_commit_message(CommitMessageJSON(title="Fix typo")) == "Fix typo"
