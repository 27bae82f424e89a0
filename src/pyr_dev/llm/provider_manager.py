"""Active-provider selection with a deterministic fallback order."""

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from .base import LLMMessage, LLMOptions, LLMProvider, LLMResponse
from .litellm_provider import AzureOpenAIProvider, GeminiProvider
from ..core.config import PyrDevConfig
from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

TEST_PROMPT = "Hello, this is a test message. Please respond with 'Test successful'."


class LLMProviderManager(LLMProvider):
    """Owns every concrete provider and routes calls to the active one.

    The default provider is used when configured; otherwise the other one.
    The manager is itself an ``LLMProvider`` so an agent can be built before
    any API key is set; the lookup happens per call.
    """

    def __init__(
        self,
        config: PyrDevConfig,
        providers: Optional[Dict[str, LLMProvider]] = None,
    ):
        self.config = config
        self.providers: Dict[str, LLMProvider] = providers or {
            "azure": AzureOpenAIProvider(config),
            "gemini": GeminiProvider(config),
        }

    @property
    def name(self) -> str:
        try:
            return self.get_active_provider().name
        except ConfigurationError:
            return "unconfigured"

    def is_configured(self) -> bool:
        return bool(self.get_configured_providers())

    def fallback_order(self) -> List[str]:
        default = self.config.default_provider
        return [default] + [key for key in self.providers if key != default]

    def get_active_provider(self) -> LLMProvider:
        for key in self.fallback_order():
            provider = self.providers.get(key)
            if provider is not None and provider.is_configured():
                if key != self.config.default_provider:
                    logger.info(
                        f"Default provider '{self.config.default_provider}' not configured, "
                        f"falling back to {provider.name}"
                    )
                return provider

        raise ConfigurationError(
            "No LLM provider is properly configured. Please check your API keys in settings."
        )

    def get_all_providers(self) -> List[LLMProvider]:
        return list(self.providers.values())

    def get_configured_providers(self) -> List[LLMProvider]:
        return [p for p in self.providers.values() if p.is_configured()]

    async def test_provider(self, provider_key: str) -> bool:
        """Send a canned probe; True only if the provider echoes it back."""
        provider = self.providers.get(provider_key)
        if provider is None or not provider.is_configured():
            return False

        try:
            response = await provider.generate(
                [LLMMessage(role="user", content=TEST_PROMPT)],
                LLMOptions(max_tokens=50),
            )
        except Exception as e:
            logger.error(f"Provider test failed for {provider_key}: {e}")
            return False

        return "test successful" in response.content.lower()

    async def generate(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> LLMResponse:
        return await self.get_active_provider().generate(messages, options)

    async def stream(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> AsyncIterator[str]:
        provider = self.get_active_provider()
        async for chunk in provider.stream(messages, options):
            yield chunk
