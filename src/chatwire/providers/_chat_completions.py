"""Base for vendors that speak the OpenAI Chat Completions API.

Grok, OpenRouter and generic compatible servers differ only in base URL,
headers, token-limit field names and a few vendor-specific body params; all of
that is expressed through the hooks below.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from chatwire.errors import ConfigurationError
from chatwire.providers._utils import (
    normalize_usage,
    parse_chat_tool_calls,
    to_chat_messages,
    to_strict_schema,
)
from chatwire.providers.base import BaseChatModel
from chatwire.streaming import StreamEvent
from chatwire.structured import AttemptResult, ensure_json_instruction
from chatwire.types import ModelResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatwire.structured import ResolvedSchema, StructuredStrategy
    from chatwire.types import Message

log = logging.getLogger(__name__)


class ChatCompletionsModel(BaseChatModel):
    """Shared Chat Completions request shaping and response parsing."""

    default_base_url: ClassVar[str | None] = None

    def _base_url(self) -> str | None:
        return self.config.base_url or self.default_base_url

    def _default_headers(self) -> dict[str, str] | None:
        return None

    def _client_api_key(self) -> str | None:
        return self.api_key

    def _create_client(self) -> Any:
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise ConfigurationError(
                "openai package not installed",
                hint="pip install openai",
            ) from e
        return AsyncOpenAI(
            api_key=self._client_api_key(),
            base_url=self._base_url(),
            default_headers=self._default_headers(),
            max_retries=0,
        )

    # --- Request shaping hooks ---

    def _token_limit_params(self, *, stream: bool) -> dict[str, Any]:
        _ = stream
        return {"max_tokens": self.config.max_output_tokens}

    def _sampling_params(self) -> dict[str, Any]:
        if self.config.temperature is None:
            return {}
        return {"temperature": self.config.temperature}

    def _vendor_params(self) -> dict[str, Any]:
        """Typed SDK keyword arguments specific to the vendor."""
        return {}

    def _extra_body(self) -> dict[str, Any]:
        """Body fields the SDK does not model, sent via ``extra_body``."""
        return {}

    def _build_body(
        self, messages: list[Message], *, stream: bool = False
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": to_chat_messages(messages),
            **self._token_limit_params(stream=stream),
            **self._sampling_params(),
            **self._vendor_params(),
        }
        extra_body = self._extra_body()
        if extra_body:
            body["extra_body"] = extra_body
        return body

    def _response_format(
        self, schema: ResolvedSchema, strategy: StructuredStrategy
    ) -> dict[str, Any] | None:
        if strategy == "json_schema":
            return {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.name,
                    "schema": to_strict_schema(schema.schema),
                    "strict": True,
                },
            }
        if strategy == "json_object":
            return {"type": "json_object"}
        return None

    # --- Calls ---

    async def _create(self, body: dict[str, Any]) -> Any:
        client = self._get_client()
        return await client.chat.completions.create(**body)

    @staticmethod
    def _parse_completion(response: Any) -> ModelResponse:
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) or ""
        return ModelResponse(
            content=content if isinstance(content, str) else "",
            tool_calls=parse_chat_tool_calls(getattr(message, "tool_calls", None)),
            usage=normalize_usage(getattr(response, "usage", None)),
        )

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        response = await self._create(self._build_body(messages))
        return self._parse_completion(response)

    async def _generate_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        strategy: StructuredStrategy,
    ) -> AttemptResult:
        if strategy == "json_object":
            messages = ensure_json_instruction(messages)
        body = self._build_body(messages)
        response_format = self._response_format(schema, strategy)
        if response_format is not None:
            body["response_format"] = response_format
        log.debug("%s structured request (strategy=%s)", self.provider, strategy)
        parsed = self._parse_completion(await self._create(body))
        return AttemptResult(text=parsed.content, usage=parsed.usage)

    async def _stream_events(self, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        body = self._build_body(messages, stream=True)
        body["stream"] = True
        body["stream_options"] = {"include_usage": True}
        stream = await self._create(body)
        async with stream:
            async for chunk in stream:
                choices = getattr(chunk, "choices", None) or []
                delta = getattr(choices[0], "delta", None) if choices else None
                text = getattr(delta, "content", None)
                yield StreamEvent(
                    text=text if isinstance(text, str) else None,
                    usage=normalize_usage(getattr(chunk, "usage", None)),
                )
