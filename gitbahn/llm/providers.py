"""Concrete LLM providers.

Anthropic talks to its own SDK. OpenAI and OpenRouter share the OpenAI
chat completions client; OpenRouter only changes the endpoint.
"""

from anthropic import Anthropic
from openai import OpenAI

from gitbahn import config
from gitbahn.config import LLMProvider
from gitbahn.llm.base import SYSTEM_PROMPT, BaseLLMProvider

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude LLM provider."""

    provider = LLMProvider.ANTHROPIC
    label = "Anthropic"
    default_model = config.DEFAULT_MODEL

    def _complete(self, api_key: str, user_prompt: str) -> tuple[str, int, int]:
        message = Anthropic(api_key=api_key).messages.create(
            model=self.model,
            max_tokens=config.MAX_TOKENS,
            temperature=config.TEMPERATURE,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return message.content[0].text, message.usage.input_tokens, message.usage.output_tokens


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT LLM provider."""

    provider = LLMProvider.OPENAI
    label = "OpenAI"
    default_model = "gpt-4o"

    def _client(self, api_key: str) -> OpenAI:
        return OpenAI(api_key=api_key)

    def _complete(self, api_key: str, user_prompt: str) -> tuple[str, int, int]:
        response = self._client(api_key).chat.completions.create(
            model=self.model,
            max_tokens=config.MAX_TOKENS,
            temperature=config.TEMPERATURE,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        )
        usage = response.usage
        return (
            response.choices[0].message.content,
            usage.prompt_tokens if usage else 0,
            usage.completion_tokens if usage else 0,
        )


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter LLM provider.

    Models are named provider/model-name (e.g., openai/gpt-4o).
    """

    provider = LLMProvider.OPENROUTER
    label = "OpenRouter"
    default_model = "anthropic/claude-sonnet-4"

    def _client(self, api_key: str) -> OpenAI:
        return OpenAI(api_key=api_key, base_url=OPENROUTER_BASE_URL, default_headers={"X-Title": "gitbahn"})
