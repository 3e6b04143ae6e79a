"""LLM provider module for gitbahn.

This module provides a unified interface to the supported LLM providers.
The active provider is configured in ~/.gitbahn/config.yaml (see gitbahn.config).
"""

from dotenv import load_dotenv

from gitbahn import config
from gitbahn.config import LLMProvider
from gitbahn.llm.base import BaseLLMProvider, LLMResult
from gitbahn.llm.exceptions import JSONParseError, LLMError, MissingAPIKeyError
from gitbahn.llm.messages import LLMMessageGenerator, MessageGenerator

# Load environment variables from .env file
load_dotenv()


def get_provider(
    provider: LLMProvider | None = None,
    model: str | None = None,
) -> BaseLLMProvider:
    """Get an LLM provider instance.

    Args:
        provider: The provider to use. Defaults to the active provider from config.
        model: The model to use. Defaults to the active model from config.

    Returns:
        An instance of the appropriate LLM provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    provider = provider or config.ACTIVE_PROVIDER
    model = model or config.ACTIVE_MODEL

    from gitbahn.llm.providers import AnthropicProvider, OpenAIProvider, OpenRouterProvider

    for provider_class in (AnthropicProvider, OpenAIProvider, OpenRouterProvider):
        if provider == provider_class.provider:
            return provider_class(model=model)
    raise ValueError(f"Unsupported provider: {provider}")


__all__ = [
    "BaseLLMProvider",
    "LLMError",
    "MissingAPIKeyError",
    "JSONParseError",
    "LLMResult",
    "LLMMessageGenerator",
    "MessageGenerator",
    "get_provider",
]
