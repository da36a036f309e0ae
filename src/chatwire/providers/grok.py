"""xAI Grok adapter (OpenAI-compatible Chat Completions)."""

from __future__ import annotations

from typing import Any

from chatwire._http import GROK_BASE_URL
from chatwire.providers._chat_completions import ChatCompletionsModel
from chatwire.thinking import grok_reasoning


class GrokChatModel(ChatCompletionsModel):
    """Grok via ``https://api.x.ai/v1`` with optional Live Search."""

    provider_name = "grok"
    default_base_url = GROK_BASE_URL

    def _vendor_params(self) -> dict[str, Any]:
        return grok_reasoning(self.model_name, self.config.thinking_level)

    def _extra_body(self) -> dict[str, Any]:
        if self.config.web_search:
            return {"search_parameters": {"mode": "auto"}}
        return {}
