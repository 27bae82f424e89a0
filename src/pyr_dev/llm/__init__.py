"""LLM provider implementations."""

from .base import LLMMessage, LLMOptions, LLMProvider, LLMResponse, TokenUsage
from .litellm_provider import AzureOpenAIProvider, GeminiProvider, LiteLLMProvider
from .provider_manager import LLMProviderManager

__all__ = [
    "LLMMessage",
    "LLMOptions",
    "LLMProvider",
    "LLMResponse",
    "TokenUsage",
    "LiteLLMProvider",
    "AzureOpenAIProvider",
    "GeminiProvider",
    "LLMProviderManager",
]
