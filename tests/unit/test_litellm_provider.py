"""Tests for the litellm-backed Azure OpenAI and Gemini providers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from pyr_dev.core.config import PyrDevConfig
from pyr_dev.core.errors import ConfigurationError, ProviderError
from pyr_dev.llm.base import LLMMessage, LLMOptions
from pyr_dev.llm.litellm_provider import AzureOpenAIProvider, GeminiProvider

MESSAGES = [LLMMessage(role="system", content="sys"), LLMMessage(role="user", content="hi")]


def _config() -> PyrDevConfig:
    return PyrDevConfig(
        azure_openai={"api_key": "az-key", "endpoint": "https://example.openai.azure.com",
                      "deployment_name": "gpt-4o"},
        gemini={"api_key": "gm-key", "model": "gemini-1.5-pro"},
        max_tokens=2000,
    )


def _completion(content="Hello!", usage=True):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15) if usage else None,
    )


@pytest.mark.asyncio
async def test_azure_request_shape():
    provider = AzureOpenAIProvider(_config())

    with patch("pyr_dev.llm.litellm_provider.litellm.acompletion",
               new=AsyncMock(return_value=_completion())) as acompletion:
        response = await provider.generate(MESSAGES, LLMOptions(temperature=0.1))

    kwargs = acompletion.call_args.kwargs
    assert kwargs["model"] == "azure/gpt-4o"
    assert kwargs["api_base"] == "https://example.openai.azure.com"
    assert kwargs["api_version"] == "2024-02-15-preview"
    assert kwargs["max_tokens"] == 2000
    assert kwargs["temperature"] == 0.1
    assert kwargs["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]
    assert response.content == "Hello!"
    assert response.usage.total_tokens == 15
    assert response.model_used == "azure/gpt-4o"


@pytest.mark.asyncio
async def test_gemini_model_string():
    provider = GeminiProvider(_config())

    with patch("pyr_dev.llm.litellm_provider.litellm.acompletion",
               new=AsyncMock(return_value=_completion(usage=False))) as acompletion:
        response = await provider.generate(MESSAGES)

    assert acompletion.call_args.kwargs["model"] == "gemini/gemini-1.5-pro"
    assert acompletion.call_args.kwargs["api_key"] == "gm-key"
    assert response.usage is None


@pytest.mark.asyncio
async def test_empty_content_is_an_error():
    provider = AzureOpenAIProvider(_config())

    with patch("pyr_dev.llm.litellm_provider.litellm.acompletion",
               new=AsyncMock(return_value=_completion(content=""))):
        with pytest.raises(ProviderError, match="No response content received from Azure OpenAI"):
            await provider.generate(MESSAGES)


@pytest.mark.asyncio
async def test_backend_errors_are_wrapped():
    provider = GeminiProvider(_config())

    with patch("pyr_dev.llm.litellm_provider.litellm.acompletion",
               new=AsyncMock(side_effect=RuntimeError("quota exceeded"))):
        with pytest.raises(ProviderError, match="Google Gemini Error: quota exceeded") as exc_info:
            await provider.generate(MESSAGES)

    assert exc_info.value.provider == "Google Gemini"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_unconfigured_provider_refuses_requests():
    provider = AzureOpenAIProvider(PyrDevConfig())

    assert not provider.is_configured()
    with pytest.raises(ConfigurationError):
        await provider.generate(MESSAGES)


@pytest.mark.asyncio
async def test_stream_yields_delta_content():
    async def _chunks():
        for text in ["Hel", None, "lo"]:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

    provider = AzureOpenAIProvider(_config())
    with patch("pyr_dev.llm.litellm_provider.litellm.acompletion",
               new=AsyncMock(return_value=_chunks())) as acompletion:
        chunks = [c async for c in provider.stream(MESSAGES)]

    assert chunks == ["Hel", "lo"]
    assert acompletion.call_args.kwargs["stream"] is True
