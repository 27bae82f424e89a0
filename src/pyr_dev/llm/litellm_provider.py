"""LiteLLM-backed providers (Azure OpenAI and Google Gemini).

Both providers speak to their backend through ``litellm.acompletion``; they
differ only in the model string and the credentials passed along.
"""

import asyncio
import logging
import time
from abc import abstractmethod
from typing import Any, AsyncIterator, Dict, Optional, Sequence

import litellm

from .base import LLMMessage, LLMOptions, LLMProvider, LLMResponse, TokenUsage, messages_to_dicts
from ..core.config import AzureOpenAIConfig, GeminiConfig, PyrDevConfig
from ..core.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


class LiteLLMProvider(LLMProvider):
    """Provider making direct API calls through litellm.

    Subclasses supply the model string and the credential kwargs.
    """

    provider_name = "LiteLLM"

    def __init__(self, config: PyrDevConfig):
        self.config = config
        self.timeout = config.assistant.request_timeout

    @property
    def name(self) -> str:
        return self.provider_name

    @abstractmethod
    def _model(self) -> str:
        """litellm model string, e.g. "azure/gpt-4"."""

    def _credentials(self) -> Dict[str, Any]:
        return {}

    def _request_kwargs(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions],
        stream: bool,
    ) -> Dict[str, Any]:
        if not self.is_configured():
            raise ConfigurationError(f"{self.name} is not configured")

        options = options or LLMOptions()
        assistant_cfg = self.config.assistant
        kwargs = {
            "model": self._model(),
            "messages": messages_to_dicts(messages),
            "max_tokens": options.max_tokens or self.config.max_tokens,
            "temperature": options.temperature if options.temperature is not None else assistant_cfg.temperature,
            "top_p": options.top_p if options.top_p is not None else assistant_cfg.top_p,
            "stream": stream,
        }
        kwargs.update(self._credentials())
        return kwargs

    async def generate(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> LLMResponse:
        """Send a completion request via litellm.acompletion()."""
        kwargs = self._request_kwargs(messages, options, stream=False)
        start_time = time.time()

        try:
            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(
                f"{self.name} Error: request timed out after {self.timeout} seconds",
                provider=self.name,
            )
        except Exception as e:
            logger.error(f"{self.name} API error: {e}")
            raise ProviderError(f"{self.name} Error: {str(e) or 'Unknown error'}", provider=self.name) from e

        latency_ms = (time.time() - start_time) * 1000
        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise ProviderError(
                f"No response content received from {self.name}", provider=self.name
            )

        usage = None
        if getattr(response, "usage", None):
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            logger.debug(
                f"{self.name} completion: {usage.total_tokens} tokens in {latency_ms:.0f}ms"
            )

        return LLMResponse(
            content=content,
            usage=usage,
            model_used=kwargs["model"],
            latency_ms=latency_ms,
        )

    async def stream(
        self,
        messages: Sequence[LLMMessage],
        options: Optional[LLMOptions] = None,
    ) -> AsyncIterator[str]:
        kwargs = self._request_kwargs(messages, options, stream=True)
        try:
            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs),
                timeout=self.timeout,
            )
            async for chunk in response:
                delta = chunk.choices[0].delta if chunk.choices else None
                content = getattr(delta, "content", None)
                if content:
                    yield content
        except asyncio.TimeoutError:
            raise ProviderError(
                f"{self.name} Stream Error: request timed out after {self.timeout} seconds",
                provider=self.name,
            )
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"{self.name} stream error: {e}")
            raise ProviderError(f"{self.name} Stream Error: {str(e) or 'Unknown error'}", provider=self.name) from e


class AzureOpenAIProvider(LiteLLMProvider):
    """Azure OpenAI chat deployments."""

    provider_name = "Azure OpenAI"

    @property
    def settings(self) -> AzureOpenAIConfig:
        return self.config.azure_openai

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _model(self) -> str:
        return f"azure/{self.settings.deployment_name}"

    def _credentials(self) -> Dict[str, Any]:
        return {
            "api_key": self.settings.api_key,
            "api_base": self.settings.endpoint,
            "api_version": self.settings.api_version,
        }


class GeminiProvider(LiteLLMProvider):
    """Google Gemini models."""

    provider_name = "Google Gemini"

    @property
    def settings(self) -> GeminiConfig:
        return self.config.gemini

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def _model(self) -> str:
        return f"gemini/{self.settings.model}"

    def _credentials(self) -> Dict[str, Any]:
        return {"api_key": self.settings.api_key}
