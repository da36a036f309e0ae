"""Anthropic Messages API adapter."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chatwire.errors import ConfigurationError
from chatwire.providers.base import BaseChatModel
from chatwire.streaming import StreamEvent
from chatwire.structured import AttemptResult, ensure_json_instruction
from chatwire.thinking import (
    anthropic_max_tokens,
    anthropic_thinking,
    anthropic_thinking_budget,
)
from chatwire.types import ImagePart, ModelResponse, TextPart, ToolCall, split_system

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatwire.config import ModelConfig
    from chatwire.retry import RetryPolicy
    from chatwire.structured import ResolvedSchema, StructuredStrategy
    from chatwire.types import Message

log = logging.getLogger(__name__)

WEB_SEARCH_TOOL: dict[str, Any] = {
    "type": "web_search_20250305",
    "name": "web_search",
    "max_uses": 5,
}


def _content_blocks(message: Message) -> list[dict[str, Any]]:
    """Non-empty text and image blocks; remote image URLs degrade to text."""
    blocks: list[dict[str, Any]] = []
    for part in message.parts:
        if isinstance(part, TextPart) and part.text:
            blocks.append({"type": "text", "text": part.text})
        elif isinstance(part, ImagePart):
            if part.is_data_url:
                media_type, data = part.data_url_parts()
                blocks.append(
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type,
                            "data": data,
                        },
                    }
                )
            else:
                blocks.append({"type": "text", "text": f"Image: {part.url}"})
    return blocks


def _append_message(messages: list[dict[str, Any]], msg: dict[str, Any]) -> None:
    """Append *msg*, merging into the previous message when roles match.

    Anthropic requires strict user/assistant alternation, so consecutive
    same-role turns (e.g. a tool result followed by a user prompt) are merged
    into one message.
    """
    if messages and messages[-1]["role"] == msg["role"]:
        messages[-1]["content"] = messages[-1]["content"] + msg["content"]
    else:
        messages.append(msg)


def to_anthropic_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Translate non-system messages into Anthropic turns."""
    out: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "system":
            continue
        if message.role == "tool":
            _append_message(
                out,
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": message.tool_call_id or "",
                            "content": message.text(),
                        }
                    ],
                },
            )
        elif message.role == "assistant":
            blocks = _content_blocks(message)
            for tc in message.tool_calls or ():
                try:
                    args = json.loads(tc.arguments)
                except ValueError:
                    args = {}
                blocks.append(
                    {"type": "tool_use", "id": tc.id, "name": tc.name, "input": args}
                )
            if not blocks:
                blocks.append({"type": "text", "text": ""})
            _append_message(out, {"role": "assistant", "content": blocks})
        else:
            blocks = _content_blocks(message) or [{"type": "text", "text": ""}]
            _append_message(out, {"role": "user", "content": blocks})
    return out


def _usage(raw: Any) -> dict[str, int] | None:
    if raw is None:
        return None
    input_tokens = getattr(raw, "input_tokens", None)
    output_tokens = getattr(raw, "output_tokens", None)
    if not isinstance(input_tokens, int) or not isinstance(output_tokens, int):
        return None
    usage = {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
    }
    server_tool_use = getattr(raw, "server_tool_use", None)
    searches = getattr(server_tool_use, "web_search_requests", None)
    if isinstance(searches, int) and searches:
        usage["web_search_count"] = searches
    return usage


def _parse_response(response: Any) -> ModelResponse:
    """Parse an Anthropic Message into a ``ModelResponse``."""
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text = getattr(block, "text", "")
            if isinstance(text, str):
                text_parts.append(text)
        elif block_type == "tool_use":
            tool_calls.append(
                ToolCall(
                    id=getattr(block, "id", ""),
                    name=getattr(block, "name", ""),
                    arguments=json.dumps(getattr(block, "input", {}) or {}),
                )
            )
    # Web search answers arrive as many citation-bearing text blocks.
    return ModelResponse(
        content="".join(text_parts),
        tool_calls=tool_calls or None,
        usage=_usage(getattr(response, "usage", None)),
    )


class AnthropicChatModel(BaseChatModel):
    """Claude models with optional extended thinking and web search."""

    provider_name = "anthropic"

    def __init__(
        self,
        config: ModelConfig,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Bind a model config and derive the thinking budget."""
        super().__init__(config, retry_policy=retry_policy)
        self.thinking_budget = anthropic_thinking_budget(
            self.model_name, config.thinking_level
        )
        self.max_tokens = anthropic_max_tokens(
            config.max_output_tokens, self.thinking_budget
        )

    def _create_client(self) -> Any:
        try:
            from anthropic import AsyncAnthropic
        except ImportError as e:
            raise ConfigurationError(
                "anthropic package not installed",
                hint="pip install anthropic",
            ) from e
        return AsyncAnthropic(
            api_key=self.api_key,
            base_url=self.config.base_url,
            max_retries=0,
        )

    def _structured_strategies(self) -> list[StructuredStrategy]:
        return ["text"]

    def _build_kwargs(
        self, messages: list[Message], *, with_tools: bool = True
    ) -> dict[str, Any]:
        system, rest = split_system(messages)
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": self.max_tokens,
            "messages": to_anthropic_messages(rest),
        }
        thinking = anthropic_thinking(self.model_name, self.config.thinking_level)
        if thinking:
            # Temperature must be omitted while thinking is enabled.
            kwargs.update(thinking)
        elif self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        if system:
            kwargs["system"] = system
        if with_tools and self.config.web_search:
            kwargs["tools"] = [dict(WEB_SEARCH_TOOL)]
        return kwargs

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        client = self._get_client()
        response = await client.messages.create(**self._build_kwargs(messages))
        return _parse_response(response)

    async def _generate_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        strategy: StructuredStrategy,
    ) -> AttemptResult:
        _ = schema, strategy
        client = self._get_client()
        # No native JSON mode; structured calls run without the search tool.
        kwargs = self._build_kwargs(ensure_json_instruction(messages), with_tools=False)
        parsed = _parse_response(await client.messages.create(**kwargs))
        return AttemptResult(text=parsed.content, usage=parsed.usage)

    async def _stream_events(self, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        client = self._get_client()
        async with client.messages.stream(**self._build_kwargs(messages)) as stream:
            async for event in stream:
                if getattr(event, "type", None) != "content_block_delta":
                    continue
                delta = getattr(event, "delta", None)
                if getattr(delta, "type", None) == "text_delta":
                    yield StreamEvent(text=getattr(delta, "text", None))
            final = await stream.get_final_message()
        yield StreamEvent(usage=_usage(getattr(final, "usage", None)))
