"""Adapter factory: the single construction entry point."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from chatwire.config import PROVIDERS, default_max_retries
from chatwire.providers.anthropic import AnthropicChatModel
from chatwire.providers.compatible import CompatibleChatModel
from chatwire.providers.gemini import GeminiChatModel
from chatwire.providers.grok import GrokChatModel
from chatwire.providers.openai import OpenAIChatModel
from chatwire.providers.openrouter import OpenRouterChatModel

if TYPE_CHECKING:
    from chatwire.config import ModelConfig, ProviderConfig
    from chatwire.providers.base import BaseChatModel
    from chatwire.retry import RetryPolicy

log = logging.getLogger(__name__)

_ADAPTERS: dict[str, type[BaseChatModel]] = {
    "openai": OpenAIChatModel,
    "anthropic": AnthropicChatModel,
    "gemini": GeminiChatModel,
    "grok": GrokChatModel,
    "openrouter": OpenRouterChatModel,
    "custom_openai": CompatibleChatModel,
}


def create_chat_model(
    provider_config: ProviderConfig,
    model_config: ModelConfig,
    *,
    retry_policy: RetryPolicy | None = None,
) -> BaseChatModel:
    """Select and construct the adapter for *provider_config*.

    The provider config's API key and base URL win over the model config's.
    Unknown provider types are treated as generic OpenAI-compatible servers,
    which require a base URL; without one ``ConfigurationError`` is raised
    before any network activity.
    """
    provider = provider_config.type if provider_config.type in PROVIDERS else "custom_openai"
    if provider != provider_config.type:
        log.debug(
            "Unknown provider type %r; using the OpenAI-compatible adapter",
            provider_config.type,
        )

    resolved = dataclasses.replace(
        model_config,
        provider=provider,
        api_key=provider_config.api_key or model_config.api_key,
        base_url=provider_config.base_url or model_config.base_url,
        max_retries=(
            model_config.max_retries
            if model_config.max_retries is not None
            else default_max_retries(provider)
        ),
    )

    if provider == "openrouter":
        return OpenRouterChatModel(
            resolved,
            retry_policy=retry_policy,
            http_referer=provider_config.http_referer,
            x_title=provider_config.x_title,
        )
    adapter_cls = _ADAPTERS[provider]
    log.debug("Creating %s for model %s", adapter_cls.__name__, resolved.model_name)
    return adapter_cls(resolved, retry_policy=retry_policy)
