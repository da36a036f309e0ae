"""Generic OpenAI-compatible adapter (LM Studio, Ollama, vLLM, Groq, ...)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chatwire.errors import ConfigurationError
from chatwire.providers._chat_completions import ChatCompletionsModel
from chatwire.retry import RetryPolicy

if TYPE_CHECKING:
    from chatwire.config import ModelConfig

# Local servers ignore the key but the SDK refuses to start without one.
PLACEHOLDER_API_KEY = "not-needed"


class CompatibleChatModel(ChatCompletionsModel):
    """Plain Chat Completions against a caller-supplied base URL.

    No vendor-specific features: no web search, no thinking mapping. Retries
    use exponential backoff since local servers recover quickly.
    """

    provider_name = "custom_openai"
    supports_web_search = False
    requires_api_key = False

    def __init__(
        self,
        config: ModelConfig,
        *,
        retry_policy: RetryPolicy | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        """Bind a model config; ``config.base_url`` is required."""
        if not config.base_url:
            raise ConfigurationError(
                "Base URL is required for OpenAI-compatible providers",
                hint="Pass base_url='http://localhost:11434/v1' or your server's URL.",
            )
        super().__init__(config, retry_policy=retry_policy)
        self.headers = default_headers

    def _default_retry_policy(self) -> RetryPolicy:
        return RetryPolicy.exponential(self.config.resolved_max_retries)

    def _client_api_key(self) -> str | None:
        return self.api_key or PLACEHOLDER_API_KEY

    def _default_headers(self) -> dict[str, str] | None:
        return self.headers
