"""Configuration loading and validation."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ProviderName = Literal["azure", "gemini"]


class AzureOpenAIConfig(BaseModel):
    """Azure OpenAI deployment settings."""
    api_key: str = ""
    endpoint: str = ""
    deployment_name: str = "gpt-4"
    api_version: str = "2024-02-15-preview"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.endpoint)


class GeminiConfig(BaseModel):
    """Google Gemini settings."""
    api_key: str = ""
    model: str = "gemini-pro"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class AssistantConfig(BaseModel):
    """Behaviour of the agent itself."""
    auto_suggest: bool = True
    # Provider-side request timeout (seconds); the chain engine imposes none.
    request_timeout: int = 120
    temperature: float = 0.7
    top_p: float = 1.0


class PyrDevConfig(BaseSettings):
    """Main configuration, passed explicitly into providers and agents."""

    model_config = SettingsConfigDict(
        env_prefix="PYR_DEV_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    azure_openai: AzureOpenAIConfig = Field(default_factory=AzureOpenAIConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    default_provider: ProviderName = "azure"
    max_tokens: int = 4000
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    log_level: str = "INFO"

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v < 100 or v > 32000:
            raise ValueError(f"max_tokens must be between 100 and 32000, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level '{v}'")
        return level

    def configured_providers(self) -> List[ProviderName]:
        providers: List[ProviderName] = []
        if self.azure_openai.is_configured:
            providers.append("azure")
        if self.gemini.is_configured:
            providers.append("gemini")
        return providers


def validate_configuration(config: PyrDevConfig) -> List[str]:
    """Return human-readable problems with a loaded config (empty list = valid)."""
    errors: List[str] = []

    if not config.configured_providers():
        errors.append(
            "No LLM providers are configured. Please add API keys for Azure OpenAI or Google Gemini."
        )

    azure = config.azure_openai
    if azure.api_key or azure.endpoint:
        if not azure.api_key:
            errors.append("Azure OpenAI API key is missing")
        if not azure.endpoint:
            errors.append("Azure OpenAI endpoint is missing")
        elif not azure.endpoint.startswith("https://"):
            errors.append("Azure OpenAI endpoint must be a valid HTTPS URL")

    return errors


# Module-level cache: resolved path -> (config, mtime)
_config_cache: Dict[str, tuple] = {}


def _get_cached_or_load(resolved_path: Path, loader):
    """Return cached config if file mtime unchanged, else reload."""
    key = str(resolved_path)
    try:
        current_mtime = resolved_path.stat().st_mtime
    except FileNotFoundError:
        _config_cache.pop(key, None)
        return None

    cached = _config_cache.get(key)
    if cached is not None:
        cached_result, cached_mtime = cached
        if cached_mtime == current_mtime:
            return cached_result

    result = loader(resolved_path)
    _config_cache[key] = (result, current_mtime)
    return result


def _load_config_from_file(config_path: Path) -> PyrDevConfig:
    """Internal loader (no caching)."""
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    data = _expand_env_vars(data)
    try:
        return PyrDevConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e


def load_config(config_path: Path = Path("pyr-dev.yaml")) -> PyrDevConfig:
    """Load configuration from a YAML file.

    Uses mtime-based caching: returns cached config if the file hasn't changed.
    """
    if not config_path.exists():
        logger.warning(
            f"Config file not found: {config_path}. Using default configuration "
            "(PYR_DEV_* environment variables still apply)."
        )
        return PyrDevConfig()

    result = _get_cached_or_load(config_path.resolve(), _load_config_from_file)
    return result if result is not None else PyrDevConfig()


def clear_config_cache() -> None:
    """Clear the module-level config cache. Useful for tests."""
    _config_cache.clear()


def _expand_env_vars(data: Any, _path: str = "") -> Any:
    """Recursively expand ${VAR} references in config data."""
    if isinstance(data, dict):
        return {k: _expand_env_vars(v, f"{_path}.{k}" if _path else k) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item, f"{_path}[{i}]") for i, item in enumerate(data)]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        env_var = data[2:-1]
        value = os.environ.get(env_var)
        if value is None:
            logger.warning(
                f"Environment variable '{env_var}' not set (referenced at config path: {_path or 'root'}). "
                f"The literal string '{data}' will be used, which may cause errors."
            )
            return data
        return value
    return data
