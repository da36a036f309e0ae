"""OpenRouter adapter (OpenAI-compatible Chat Completions with attribution)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from chatwire._http import OPENROUTER_BASE_URL, openrouter_headers
from chatwire.providers._chat_completions import ChatCompletionsModel
from chatwire.thinking import openrouter_reasoning

if TYPE_CHECKING:
    from chatwire.config import ModelConfig
    from chatwire.retry import RetryPolicy


class OpenRouterChatModel(ChatCompletionsModel):
    """OpenRouter routes ``vendor/model`` names to upstream providers.

    Every request carries ``HTTP-Referer`` and ``X-Title`` attribution headers.
    Reasoning params are passed through for OpenAI reasoning models and
    Gemini 2.5/3 models only.
    """

    provider_name = "openrouter"
    default_base_url = OPENROUTER_BASE_URL
    supports_web_search = False

    def __init__(
        self,
        config: ModelConfig,
        *,
        retry_policy: RetryPolicy | None = None,
        http_referer: str | None = None,
        x_title: str | None = None,
    ) -> None:
        """Bind a model config and optional attribution overrides."""
        super().__init__(config, retry_policy=retry_policy)
        self.headers = openrouter_headers(http_referer, x_title)

    def _default_headers(self) -> dict[str, str] | None:
        return dict(self.headers)

    def _extra_body(self) -> dict[str, Any]:
        return openrouter_reasoning(self.model_name, self.config.thinking_level)
