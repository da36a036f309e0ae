"""Google Gemini adapter (google-genai SDK)."""

from __future__ import annotations

import base64
from contextlib import aclosing
import json
import logging
from typing import TYPE_CHECKING, Any
import uuid

from chatwire.errors import ChatwireError, ConfigurationError
from chatwire.providers.base import BaseChatModel
from chatwire.streaming import StreamEvent
from chatwire.structured import AttemptResult, ensure_json_instruction
from chatwire.thinking import gemini_thinking
from chatwire.types import ImagePart, ModelResponse, TextPart, ToolCall, split_system

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatwire.structured import ResolvedSchema, StructuredStrategy
    from chatwire.types import Message

log = logging.getLogger(__name__)

_OK_FINISH_REASONS = frozenset({"STOP", "MAX_TOKENS"})


def _finish_reason_name(reason: Any) -> str | None:
    if reason is None:
        return None
    name = getattr(reason, "name", None)
    return name if isinstance(name, str) else str(reason)


def to_gemini_contents(messages: list[Message]) -> list[Any]:
    """Translate non-system messages into ``types.Content`` turns.

    Assistant turns use the ``model`` role. Data-URL images are sent inline;
    remote image URLs become a text reference.
    """
    from google.genai import types

    contents: list[Any] = []
    call_id_to_name: dict[str, str] = {}
    for message in messages:
        if message.role == "system":
            continue
        if message.role == "tool":
            name = call_id_to_name.get(message.tool_call_id or "", "tool")
            contents.append(
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_function_response(
                            name=name, response={"result": message.text()}
                        )
                    ],
                )
            )
            continue

        parts: list[Any] = []
        for part in message.parts:
            if isinstance(part, TextPart) and part.text:
                parts.append(types.Part(text=part.text))
            elif isinstance(part, ImagePart):
                if part.is_data_url:
                    mime_type, data = part.data_url_parts()
                    parts.append(
                        types.Part.from_bytes(
                            data=base64.b64decode(data), mime_type=mime_type
                        )
                    )
                else:
                    parts.append(types.Part(text=f"Image: {part.url}"))
        for tc in message.tool_calls or ():
            call_id_to_name[tc.id] = tc.name
            try:
                args = json.loads(tc.arguments)
            except ValueError:
                args = {}
            parts.append(types.Part.from_function_call(name=tc.name, args=args))
        if not parts:
            parts.append(types.Part(text=""))
        role = "model" if message.role == "assistant" else "user"
        contents.append(types.Content(role=role, parts=parts))
    return contents


def _usage(response: Any) -> dict[str, int] | None:
    um = getattr(response, "usage_metadata", None)
    if um is None:
        return None
    input_tokens = getattr(um, "prompt_token_count", None)
    output_tokens = getattr(um, "candidates_token_count", None)
    if not isinstance(input_tokens, int) and not isinstance(output_tokens, int):
        return None
    input_tokens = input_tokens if isinstance(input_tokens, int) else 0
    output_tokens = output_tokens if isinstance(output_tokens, int) else 0
    total = getattr(um, "total_token_count", None)
    usage = {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total if isinstance(total, int) else input_tokens + output_tokens,
    }
    candidates = getattr(response, "candidates", None) or []
    grounding = getattr(candidates[0], "grounding_metadata", None) if candidates else None
    queries = getattr(grounding, "web_search_queries", None)
    if isinstance(queries, list) and queries:
        usage["web_search_count"] = len(queries)
    return usage


def _parse_response(response: Any) -> ModelResponse:
    """Parse a Gemini response into a ``ModelResponse``."""
    text = getattr(response, "text", None)
    tool_calls: list[ToolCall] = []
    for fc in getattr(response, "function_calls", None) or []:
        call_id = getattr(fc, "id", None) or f"call_{uuid.uuid4().hex[:8]}"
        tool_calls.append(
            ToolCall(
                id=str(call_id),
                name=str(fc.name),
                # Gemini args are Optional[dict]; default to an empty object.
                arguments=json.dumps(fc.args or {}),
            )
        )
    return ModelResponse(
        content=text if isinstance(text, str) else "",
        tool_calls=tool_calls or None,
        usage=_usage(response),
    )


class GeminiChatModel(BaseChatModel):
    """Gemini models with optional Google Search grounding."""

    provider_name = "gemini"

    def _create_client(self) -> Any:
        try:
            from google import genai
            from google.genai import types
        except ImportError as e:
            raise ConfigurationError(
                "google-genai package not installed",
                hint="pip install google-genai",
            ) from e
        http_options = (
            types.HttpOptions(base_url=self.config.base_url)
            if self.config.base_url
            else None
        )
        return genai.Client(api_key=self.api_key, http_options=http_options)

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.aio.aclose()

    def _structured_strategies(self) -> list[StructuredStrategy]:
        # Grounded requests reject response MIME type hints.
        if self.config.web_search:
            return ["text"]
        return ["json_schema", "json_object", "text"]

    def _build_config(self, system: str | None, **extra: Any) -> Any:
        from google.genai import types

        config_kwargs: dict[str, Any] = {
            "max_output_tokens": self.config.max_output_tokens,
            **extra,
        }
        if system:
            config_kwargs["system_instruction"] = system
        if self.config.temperature is not None:
            config_kwargs["temperature"] = self.config.temperature
        thinking = gemini_thinking(self.model_name, self.config.thinking_level)
        if thinking:
            config_kwargs["thinking_config"] = types.ThinkingConfig(**thinking)
        if self.config.web_search:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        return types.GenerateContentConfig(**config_kwargs)

    async def _generate_content(
        self, messages: list[Message], **extra: Any
    ) -> ModelResponse:
        client = self._get_client()
        system, rest = split_system(messages)
        response = await client.aio.models.generate_content(
            model=self.model_name,
            contents=to_gemini_contents(rest),
            config=self._build_config(system, **extra),
        )
        return _parse_response(response)

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        return await self._generate_content(messages)

    async def _generate_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        strategy: StructuredStrategy,
    ) -> AttemptResult:
        extra: dict[str, Any] = {}
        if strategy == "json_schema":
            extra["response_mime_type"] = "application/json"
            extra["response_json_schema"] = schema.schema
        elif strategy == "json_object":
            extra["response_mime_type"] = "application/json"
            messages = ensure_json_instruction(messages)
        log.debug("gemini structured request (strategy=%s)", strategy)
        parsed = await self._generate_content(messages, **extra)
        return AttemptResult(text=parsed.content, usage=parsed.usage)

    async def _stream_events(self, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        client = self._get_client()
        system, rest = split_system(messages)
        stream = await client.aio.models.generate_content_stream(
            model=self.model_name,
            contents=to_gemini_contents(rest),
            config=self._build_config(system),
        )
        last_finish_reason: str | None = None
        async with aclosing(stream):
            async for chunk in stream:
                candidates = getattr(chunk, "candidates", None) or []
                if candidates:
                    reason = _finish_reason_name(
                        getattr(candidates[0], "finish_reason", None)
                    )
                    if reason:
                        last_finish_reason = reason
                text = getattr(chunk, "text", None)
                yield StreamEvent(
                    text=text if isinstance(text, str) else None,
                    usage=_usage(chunk),
                )
        if last_finish_reason and last_finish_reason not in _OK_FINISH_REASONS:
            raise ChatwireError(f"Gemini stream ended with finish reason {last_finish_reason}")
