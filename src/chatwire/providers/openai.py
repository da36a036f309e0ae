"""OpenAI adapter.

Three request paths, chosen by model name:
- o-series and gpt-5 models use the Responses API;
- ``*-search-preview`` models use Chat Completions with ``web_search_options``
  and never receive sampling params or structured-output hints;
- everything else uses plain Chat Completions.
Streaming always goes through Chat Completions.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from chatwire.providers._chat_completions import ChatCompletionsModel
from chatwire.providers._utils import normalize_usage, to_strict_schema
from chatwire.structured import AttemptResult
from chatwire.thinking import openai_reasoning
from chatwire.types import ImagePart, ModelResponse, TextPart, ToolCall, split_system

if TYPE_CHECKING:
    from chatwire.structured import ResolvedSchema, StructuredStrategy
    from chatwire.types import Message

log = logging.getLogger(__name__)

RESPONSES_MODEL_RE = re.compile(r"^o\d|^o-|^gpt-5")


def uses_responses_api(model: str) -> bool:
    """o-series and gpt-5 models are served through the Responses API."""
    return bool(RESPONSES_MODEL_RE.match(model))


def is_search_preview(model: str) -> bool:
    """Search-preview models only accept Chat Completions with web search options."""
    return "search-preview" in model


def to_responses_input(messages: list[Message]) -> list[dict[str, Any]]:
    """Translate non-system messages into Responses API ``input`` items."""
    items: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "tool":
            items.append(
                {
                    "type": "function_call_output",
                    "call_id": message.tool_call_id or "",
                    "output": message.text(),
                }
            )
            continue

        text_type = "output_text" if message.role == "assistant" else "input_text"
        content: list[dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, TextPart):
                content.append({"type": text_type, "text": part.text})
            elif isinstance(part, ImagePart) and message.role != "assistant":
                content.append({"type": "input_image", "image_url": part.url})
        if not content:
            content.append({"type": text_type, "text": ""})
        items.append({"role": message.role, "content": content})

        if message.role == "assistant" and message.tool_calls:
            items.extend(
                {
                    "type": "function_call",
                    "call_id": tc.id,
                    "name": tc.name,
                    "arguments": tc.arguments,
                }
                for tc in message.tool_calls
            )
    return items


def _responses_text(response: Any) -> str:
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text:
        return output_text
    for item in getattr(response, "output", None) or []:
        for block in getattr(item, "content", None) or []:
            text = getattr(block, "text", None)
            if isinstance(text, str):
                return text
    return ""


def _parse_responses(response: Any) -> ModelResponse:
    tool_calls: list[ToolCall] = []
    search_calls = 0
    for item in getattr(response, "output", None) or []:
        item_type = getattr(item, "type", None)
        if item_type == "function_call":
            tool_calls.append(
                ToolCall(
                    id=str(getattr(item, "call_id", "") or getattr(item, "id", "")),
                    name=str(getattr(item, "name", "")),
                    arguments=getattr(item, "arguments", None) or "{}",
                )
            )
        elif item_type == "web_search_call":
            search_calls += 1

    usage = normalize_usage(getattr(response, "usage", None))
    if usage is not None and search_calls:
        usage["web_search_count"] = search_calls
    return ModelResponse(
        content=_responses_text(response),
        tool_calls=tool_calls or None,
        usage=usage,
    )


class OpenAIChatModel(ChatCompletionsModel):
    """OpenAI models via the Responses API or Chat Completions."""

    provider_name = "openai"

    @property
    def uses_responses_api(self) -> bool:
        """Whether invoke and structured calls go through the Responses API."""
        return uses_responses_api(self.model_name)

    @property
    def is_search_preview(self) -> bool:
        """Whether this is a Chat Completions search-preview model."""
        return is_search_preview(self.model_name)

    # --- Chat Completions hooks ---

    def _token_limit_params(self, *, stream: bool) -> dict[str, Any]:
        if stream:
            return {"max_completion_tokens": self.config.max_output_tokens}
        return {"max_tokens": self.config.max_output_tokens}

    def _sampling_params(self) -> dict[str, Any]:
        # Reasoning and search-preview models reject sampling params.
        if self.uses_responses_api or self.is_search_preview:
            return {}
        return super()._sampling_params()

    def _vendor_params(self) -> dict[str, Any]:
        if self.is_search_preview:
            return {"web_search_options": {}}
        return {}

    def _structured_strategies(self) -> list[StructuredStrategy]:
        if self.uses_responses_api:
            return ["json_schema", "text"]
        if self.is_search_preview:
            return ["text"]
        return super()._structured_strategies()

    # --- Responses API ---

    def _build_responses_body(self, messages: list[Message]) -> dict[str, Any]:
        system, rest = split_system(messages)
        body: dict[str, Any] = {
            "model": self.model_name,
            "input": to_responses_input(rest),
            "max_output_tokens": self.config.max_output_tokens,
            **openai_reasoning(self.model_name, self.config.thinking_level),
        }
        if system:
            body["instructions"] = system
        if self.config.web_search or self.is_search_preview:
            body["tools"] = [{"type": "web_search"}]
        return body

    async def _create_response(self, body: dict[str, Any]) -> ModelResponse:
        client = self._get_client()
        response = await client.responses.create(**body)
        return _parse_responses(response)

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        if self.uses_responses_api:
            return await self._create_response(self._build_responses_body(messages))
        return await super()._generate(messages)

    async def _generate_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        strategy: StructuredStrategy,
    ) -> AttemptResult:
        if not self.uses_responses_api:
            return await super()._generate_structured(messages, schema, strategy)

        body = self._build_responses_body(messages)
        if strategy == "json_schema":
            body["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema.name,
                    "schema": to_strict_schema(schema.schema),
                    "strict": True,
                }
            }
        log.debug("openai responses structured request (strategy=%s)", strategy)
        parsed = await self._create_response(body)
        return AttemptResult(text=parsed.content, usage=parsed.usage)
