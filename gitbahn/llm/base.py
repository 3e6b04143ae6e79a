"""Base classes and shared utilities for LLM providers.

Contains:
- LLMResult: A generated message plus token usage
- SYSTEM_PROMPT, USER_PROMPT_TEMPLATE: Prompts shared by every provider
- parse_json_response: Lenient JSON extraction from a provider reply
- validate_commit_json: Validate parsed JSON as CommitMessageJSON
- BaseLLMProvider: Abstract provider with API-key lookup and the generate flow
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from pydantic import ValidationError

from gitbahn.config import API_KEY_ENV_VARS, LLMProvider
from gitbahn.formatters import CommitMessageJSON
from gitbahn.llm.exceptions import JSONParseError, LLMError, MissingAPIKeyError


@dataclass
class LLMResult:
    """Result from an LLM generation call, including token usage."""

    commit_json: CommitMessageJSON
    model: str
    input_tokens: int
    output_tokens: int
    raw_response: str = ""


# System prompt for the LLM (shared across all providers)
SYSTEM_PROMPT = """You are an expert software engineer writing git commit messages.
Each commit is one small step of a larger change, so describe only this step.
Be precise: only describe changes actually shown in the diff."""

USER_PROMPT_TEMPLATE = """Given the following git context, produce a JSON object with exactly these keys:
- "title": string (imperative mood, <=72 chars)
- "body_bullets": array of 0-4 strings (each concise; leave empty for trivial changes)

Rules:
- Output ONLY valid JSON. No markdown fences. No extra keys. No commentary.
- Title in imperative mood (e.g., "Add parser" not "Added parser").
- Only describe changes shown in the diff. Do not infer or assume other changes.
- Match the tone of [RECENT_COMMITS] where it is consistent.
- [FILE_CHANGES] tells you which files are NEW, MODIFIED, DELETED or RENAMED.

GIT CONTEXT:
{context_bundle}"""


def parse_json_response(raw_response: str) -> dict:
    """Parse the LLM response as JSON.

    Args:
        raw_response: The raw text response from the LLM.

    Returns:
        The parsed JSON as a dictionary.

    Raises:
        JSONParseError: If parsing fails.
    """
    if raw_response is None:
        raise JSONParseError("LLM returned an empty response")

    cleaned = raw_response.strip()

    # Remove markdown code fences if the model included them despite instructions
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    # Keep only the outermost object when the model added chatter around it
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise JSONParseError(
            f"Failed to parse LLM response as JSON.\n"
            f"Error: {e}\n"
            f"Raw response:\n{raw_response}"
        )
    if not isinstance(parsed, dict):
        raise JSONParseError(f"Expected a JSON object, got: {raw_response}")
    return parsed


def validate_commit_json(parsed: dict, raw_response: str) -> CommitMessageJSON:
    """Validate parsed JSON against the CommitMessageJSON schema.

    Args:
        parsed: The parsed JSON dictionary.
        raw_response: The original raw response (for error messages).

    Returns:
        A validated CommitMessageJSON object.

    Raises:
        JSONParseError: If validation fails.
    """
    try:
        return CommitMessageJSON(**parsed)
    except (ValidationError, TypeError) as e:
        raise JSONParseError(
            f"LLM response does not match expected schema.\n"
            f"Error: {e}\n"
            f"Raw response: {raw_response}"
        )


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers.

    Subclasses name their provider and implement `_complete`, one chat
    round-trip against their SDK. Key lookup, prompt building and reply
    validation are shared.
    """

    provider: LLMProvider
    label: str
    default_model: str

    def __init__(self, model: str | None = None):
        self.model = model or self.default_model

    @property
    def api_key_env_var(self) -> str:
        return API_KEY_ENV_VARS[self.provider]

    @abstractmethod
    def _complete(self, api_key: str, user_prompt: str) -> tuple[str, int, int]:
        """Send one request and return (reply text, input tokens, output tokens)."""

    def generate(self, context_bundle: str) -> LLMResult:
        """Generate a commit message from the git context bundle.

        Args:
            context_bundle: The formatted git context string.

        Returns:
            An LLMResult containing the commit message and metadata.

        Raises:
            MissingAPIKeyError: If the API key is not set.
            JSONParseError: If the response cannot be parsed.
            LLMError: For other LLM-related errors.
        """
        api_key = self.get_api_key()
        try:
            raw_response, input_tokens, output_tokens = self._complete(
                api_key, self.build_user_prompt(context_bundle)
            )
        except Exception as e:
            raise LLMError(f"{self.label} API call failed: {e}") from e

        parsed = parse_json_response(raw_response)
        return LLMResult(
            commit_json=validate_commit_json(parsed, raw_response),
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            raw_response=raw_response,
        )

    def get_api_key(self) -> str:
        """Get the API key from environment or credentials file.

        Checks in order:
        1. Environment variable (a repo-level .env is loaded into it)
        2. ~/.gitbahn/credentials file

        Raises:
            MissingAPIKeyError: If the API key is not found.
        """
        env_var_name = self.api_key_env_var
        api_key = os.getenv(env_var_name)
        if api_key:
            return api_key

        from gitbahn.global_config import GlobalConfigError, get_credential

        try:
            api_key = get_credential(env_var_name)
        except GlobalConfigError:
            api_key = None
        if api_key:
            return api_key

        raise MissingAPIKeyError(
            f"{self.label} API key not found. Set it using:\n"
            f"  1. Environment variable: export {env_var_name}=your_key_here\n"
            f"  2. Run: gitbahn config set-key {self.provider.value}\n"
            f"  3. Manually add to ~/.gitbahn/credentials"
        )

    def build_user_prompt(self, context_bundle: str) -> str:
        """Build the user prompt from the context bundle."""
        return USER_PROMPT_TEMPLATE.format(context_bundle=context_bundle)
