"""Configuration: frozen per-call model config and provider connection config."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Literal, get_args

from dotenv import load_dotenv

from chatwire.errors import ConfigurationError

load_dotenv()

ProviderName = Literal[
    "openai", "anthropic", "gemini", "grok", "openrouter", "custom_openai"
]
ThinkingLevel = Literal["off", "low", "medium", "high", "default"]

PROVIDERS: tuple[str, ...] = get_args(ProviderName)
THINKING_LEVELS: tuple[str, ...] = get_args(ThinkingLevel)

DEFAULT_MAX_OUTPUT_TOKENS = 8192
DEFAULT_MAX_RETRIES = 5
# Self-hosted OpenAI-compatible servers fail fast or not at all.
DEFAULT_COMPATIBLE_MAX_RETRIES = 3

# Provider-specific API key environment variable names
API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "grok": "XAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "custom_openai": "OPENAI_COMPATIBLE_API_KEY",
}


def resolve_api_key(provider: str, api_key: str | None) -> str | None:
    """Return *api_key*, or the provider's environment key when it is unset."""
    if api_key:
        return api_key
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var is None:
        return None
    return os.environ.get(env_var) or None


def default_max_retries(provider: str) -> int:
    """Retry budget used when a config does not set one."""
    if provider == "custom_openai":
        return DEFAULT_COMPATIBLE_MAX_RETRIES
    return DEFAULT_MAX_RETRIES


@dataclass(frozen=True)
class ModelConfig:
    """Immutable configuration for one model.

    ``temperature`` left as *None* means the vendor default; adapters never
    substitute their own.

    Example:
        config = ModelConfig(provider="anthropic", model_name="claude-sonnet-4-5")
        # API key is resolved from ANTHROPIC_API_KEY at call time
    """

    provider: ProviderName
    model_name: str
    api_key: str | None = None
    base_url: str | None = None
    temperature: float | None = None
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    web_search: bool = False
    #: Resolved to 5, or 3 for ``custom_openai``, when *None*.
    max_retries: int | None = None
    thinking_level: ThinkingLevel | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.provider not in PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}",
                hint=f"Supported providers: {', '.join(PROVIDERS)}",
            )
        if not self.model_name:
            raise ConfigurationError(
                "model_name must be a non-empty string",
                hint="Pass the vendor model identifier, e.g. 'gpt-4o'.",
            )
        if self.max_output_tokens < 1:
            raise ConfigurationError(
                f"max_output_tokens must be ≥ 1, got {self.max_output_tokens}",
            )
        if self.max_retries is not None and self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be ≥ 0, got {self.max_retries}",
                hint="Use 0 to disable retries.",
            )
        if self.thinking_level is not None and self.thinking_level not in THINKING_LEVELS:
            raise ConfigurationError(
                f"Unknown thinking level: {self.thinking_level!r}",
                hint=f"Use one of: {', '.join(THINKING_LEVELS)}",
            )

    @property
    def resolved_max_retries(self) -> int:
        """Retry budget after applying the provider default."""
        if self.max_retries is not None:
            return self.max_retries
        return default_max_retries(self.provider)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ModelConfig(provider={self.provider!r}, model_name={self.model_name!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"base_url={self.base_url!r}, web_search={self.web_search}, "
            f"thinking_level={self.thinking_level!r})"
        )

    __repr__ = __str__


@dataclass(frozen=True)
class ProviderConfig:
    """Connection details for one configured provider."""

    type: str
    api_key: str | None = None
    base_url: str | None = None
    name: str | None = None
    http_referer: str | None = None
    x_title: str | None = None

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ProviderConfig(type={self.type!r}, name={self.name!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"base_url={self.base_url!r})"
        )

    __repr__ = __str__
