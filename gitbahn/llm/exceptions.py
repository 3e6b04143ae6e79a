"""LLM-related exception classes.

Contains:
- LLMError: Base exception for message generation errors
- MissingAPIKeyError: No API key in the environment, .env or credentials file
- JSONParseError: The provider's reply is not the expected JSON

None of these abort a commit run; the commit falls back to its label.
"""


class LLMError(Exception):
    """Base exception for message generation errors."""

    pass


class MissingAPIKeyError(LLMError):
    """Raised when the provider's API key cannot be found."""

    pass


class JSONParseError(LLMError):
    """Raised when a provider reply cannot be parsed or validated."""

    pass
