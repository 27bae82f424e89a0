"""Tests for configuration loading and validation."""

import os
import re

import pytest
from pydantic import ValidationError

from pyr_dev.core.config import (
    PyrDevConfig,
    clear_config_cache,
    load_config,
    validate_configuration,
)
from pyr_dev.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_config_cache()
    yield
    clear_config_cache()


def test_missing_file_returns_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")

    assert config.default_provider == "azure"
    assert config.max_tokens == 4000
    assert config.assistant.request_timeout == 120
    assert config.configured_providers() == []


def test_yaml_with_env_expansion(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "secret-key")
    path = tmp_path / "pyr-dev.yaml"
    path.write_text(
        "default_provider: gemini\n"
        "max_tokens: 2048\n"
        "gemini:\n"
        "  api_key: ${TEST_GEMINI_KEY}\n"
        "assistant:\n"
        "  temperature: 0.2\n"
    )

    config = load_config(path)

    assert config.default_provider == "gemini"
    assert config.max_tokens == 2048
    assert config.gemini.api_key == "secret-key"
    assert config.assistant.temperature == 0.2
    assert config.configured_providers() == ["gemini"]


def test_unset_env_var_is_left_literal(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_MISSING_KEY", raising=False)
    path = tmp_path / "pyr-dev.yaml"
    path.write_text("gemini:\n  api_key: ${TEST_MISSING_KEY}\n")

    assert load_config(path).gemini.api_key == "${TEST_MISSING_KEY}"


def test_cache_reloads_when_file_changes(tmp_path):
    path = tmp_path / "pyr-dev.yaml"
    path.write_text("max_tokens: 1000\n")
    first = load_config(path)
    assert load_config(path) is first

    path.write_text("max_tokens: 3000\n")
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 10))

    assert load_config(path).max_tokens == 3000


@pytest.mark.parametrize("content", [
    "max_tokens: 50\n",
    "log_level: chatty\n",
    "max_tokens: [unclosed\n",
    "- just\n- a list\n",
])
def test_invalid_file_raises_configuration_error(tmp_path, content):
    path = tmp_path / "pyr-dev.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationError, match=re.escape(str(path))):
        load_config(path)


@pytest.mark.parametrize("value", [50, 64000])
def test_max_tokens_bounds(value):
    with pytest.raises(ValidationError):
        PyrDevConfig(max_tokens=value)


def test_log_level_normalized():
    assert PyrDevConfig(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        PyrDevConfig(log_level="chatty")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PYR_DEV_DEFAULT_PROVIDER", "gemini")
    monkeypatch.setenv("PYR_DEV_GEMINI__API_KEY", "from-env")

    config = PyrDevConfig()

    assert config.default_provider == "gemini"
    assert config.gemini.api_key == "from-env"


class TestValidateConfiguration:
    def test_nothing_configured(self):
        errors = validate_configuration(PyrDevConfig())
        assert errors == [
            "No LLM providers are configured. Please add API keys for Azure OpenAI or Google Gemini."
        ]

    def test_partial_azure_settings(self):
        config = PyrDevConfig(gemini={"api_key": "k"}, azure_openai={"endpoint": "http://insecure"})
        errors = validate_configuration(config)

        assert "Azure OpenAI API key is missing" in errors
        assert "Azure OpenAI endpoint must be a valid HTTPS URL" in errors

    def test_valid(self):
        config = PyrDevConfig(azure_openai={"api_key": "k", "endpoint": "https://x.openai.azure.com"})
        assert validate_configuration(config) == []
