"""Shared utilities for adapter implementations."""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any

from chatwire.errors import ConfigurationError
from chatwire.types import ImagePart, TextPart, ToolCall

if TYPE_CHECKING:
    from chatwire.types import Message


def to_strict_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Normalize a JSON schema for strict structured-output requirements.

    Ensures that for all 'object' types:
    1. additionalProperties is False
    2. All defined properties are listed in 'required'
    """
    normalized = deepcopy(schema)

    def walk(node: Any) -> Any:
        if isinstance(node, list):
            return [walk(item) for item in node]
        if not isinstance(node, dict):
            return node

        updated: dict[str, Any] = {}
        for key, value in node.items():
            updated[key] = walk(value)

        if updated.get("type") == "object" or "properties" in updated:
            properties = updated.get("properties", {})
            if isinstance(properties, dict):
                updated["additionalProperties"] = False
                updated["required"] = list(properties.keys())

        return updated

    result = walk(normalized)
    if not isinstance(result, dict):
        raise ConfigurationError("Invalid schema: expected an object schema")
    return result


# --- Chat Completions wire shape ---


def to_chat_content(message: Message) -> str | list[dict[str, Any]]:
    """Message content as a string or a list of Chat Completions parts."""
    if isinstance(message.content, str):
        return message.content
    parts: list[dict[str, Any]] = []
    for part in message.content:
        if isinstance(part, TextPart):
            parts.append({"type": "text", "text": part.text})
        elif isinstance(part, ImagePart):
            parts.append({"type": "image_url", "image_url": {"url": part.url}})
    return parts


def to_chat_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Translate neutral messages to Chat Completions ``messages``.

    Roles pass through unchanged; tool results keep their ``tool_call_id`` and
    assistant tool calls are re-emitted in function-call form.
    """
    out: list[dict[str, Any]] = []
    for message in messages:
        item: dict[str, Any] = {
            "role": message.role,
            "content": to_chat_content(message),
        }
        if message.role == "tool" and message.tool_call_id:
            item["tool_call_id"] = message.tool_call_id
        if message.role == "assistant" and message.tool_calls:
            item["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": tc.arguments},
                }
                for tc in message.tool_calls
            ]
        out.append(item)
    return out


def parse_chat_tool_calls(raw_calls: Any) -> list[ToolCall] | None:
    """Extract tool calls from a Chat Completions assistant message."""
    if not raw_calls:
        return None
    calls: list[ToolCall] = []
    for raw in raw_calls:
        function = getattr(raw, "function", None)
        if function is None:
            continue
        calls.append(
            ToolCall(
                id=str(getattr(raw, "id", "") or ""),
                name=str(getattr(function, "name", "") or ""),
                arguments=getattr(function, "arguments", None) or "{}",
            )
        )
    return calls or None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def normalize_usage(raw: Any) -> dict[str, int] | None:
    """Map OpenAI-style usage (chat or Responses) to provider-agnostic keys."""
    if raw is None:
        return None
    input_tokens = _as_int(getattr(raw, "prompt_tokens", None))
    if input_tokens is None:
        input_tokens = _as_int(getattr(raw, "input_tokens", None))
    output_tokens = _as_int(getattr(raw, "completion_tokens", None))
    if output_tokens is None:
        output_tokens = _as_int(getattr(raw, "output_tokens", None))
    if input_tokens is None and output_tokens is None:
        return None
    input_tokens = input_tokens or 0
    output_tokens = output_tokens or 0
    total = _as_int(getattr(raw, "total_tokens", None))
    usage = {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total if total is not None else input_tokens + output_tokens,
    }
    web_search_count = _as_int(getattr(raw, "num_search_queries", None))
    if web_search_count is None:
        web_search_count = _as_int(getattr(raw, "num_sources_used", None))
    if web_search_count:
        usage["web_search_count"] = web_search_count
    return usage
