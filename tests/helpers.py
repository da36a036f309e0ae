"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: vendor SDK objects are faked with
``SimpleNamespace`` shapes that match the attributes adapters read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

# =============================================================================
# Errors
# =============================================================================


class StatusError(Exception):
    """An SDK-style exception carrying an HTTP status code."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


RATE_LIMIT_MESSAGE = (
    "Rate limit reached for gpt-4o in organization org-abc on tokens per min "
    "(TPM): Limit 30000, Used 29400, Requested 1400. Please try again in 1.6s."
)


# =============================================================================
# Scripted async callables
# =============================================================================


@dataclass
class ScriptedCall:
    """Async callable returning a scripted sequence of results/exceptions.

    Every call's keyword arguments are recorded. Once the script is exhausted
    the ``default`` result is returned.
    """

    script: list[Any] = field(default_factory=list)
    default: Any = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def last_kwargs(self) -> dict[str, Any]:
        return self.calls[-1]


# =============================================================================
# OpenAI-style (Chat Completions / Responses)
# =============================================================================


def chat_usage(prompt: int = 3, completion: int = 5, **extra: Any) -> SimpleNamespace:
    return SimpleNamespace(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=prompt + completion,
        **extra,
    )


def completion(
    content: str | None = "ok",
    *,
    tool_calls: list[Any] | None = None,
    usage: Any = None,
) -> SimpleNamespace:
    """A Chat Completions response with one choice."""
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def chat_tool_call(call_id: str, name: str, arguments: str) -> SimpleNamespace:
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def chat_chunk(text: str | None = None, *, usage: Any = None) -> SimpleNamespace:
    """A streamed Chat Completions chunk; usage-only chunks have no choices."""
    choices = [] if text is None else [SimpleNamespace(delta=SimpleNamespace(content=text))]
    return SimpleNamespace(choices=choices, usage=usage)


class FakeChatStream:
    """Async-iterable, async-context-managed stream like ``AsyncStream``."""

    def __init__(self, chunks: list[Any], *, error: BaseException | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    async def __aenter__(self) -> FakeChatStream:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    def __aiter__(self) -> FakeChatStream:
        return self

    async def __anext__(self) -> Any:
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        raise StopAsyncIteration


def responses_result(
    text: str = "ok",
    *,
    output: list[Any] | None = None,
    usage: Any = None,
) -> SimpleNamespace:
    return SimpleNamespace(output_text=text, output=output or [], usage=usage)


def fake_openai_client(
    create: ScriptedCall | None = None,
    responses_create: ScriptedCall | None = None,
) -> SimpleNamespace:
    """An ``AsyncOpenAI`` stand-in exposing the two endpoints adapters call."""

    async def close() -> None:
        client.closed = True

    client = SimpleNamespace(
        chat=SimpleNamespace(
            completions=SimpleNamespace(create=create or ScriptedCall(default=completion()))
        ),
        responses=SimpleNamespace(
            create=responses_create or ScriptedCall(default=responses_result())
        ),
        close=close,
        closed=False,
    )
    return client


# =============================================================================
# Anthropic
# =============================================================================


def anthropic_message(
    *blocks: Any, input_tokens: int = 4, output_tokens: int = 6, searches: int = 0
) -> SimpleNamespace:
    usage = SimpleNamespace(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        server_tool_use=SimpleNamespace(web_search_requests=searches) if searches else None,
    )
    return SimpleNamespace(content=list(blocks), usage=usage)


def text_block(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="text", text=text)


def text_delta(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=text)
    )


class FakeAnthropicStream:
    """``client.messages.stream(...)`` result: an async context manager of events."""

    def __init__(self, events: list[Any], final: Any) -> None:
        self.events = list(events)
        self.final = final

    async def __aenter__(self) -> FakeAnthropicStream:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    def __aiter__(self) -> FakeAnthropicStream:
        return self

    async def __anext__(self) -> Any:
        if not self.events:
            raise StopAsyncIteration
        return self.events.pop(0)

    async def get_final_message(self) -> Any:
        return self.final


def fake_anthropic_client(
    create: ScriptedCall | None = None, stream: FakeAnthropicStream | None = None
) -> SimpleNamespace:
    stream_calls: list[dict[str, Any]] = []

    def open_stream(**kwargs: Any) -> FakeAnthropicStream:
        stream_calls.append(kwargs)
        assert stream is not None
        return stream

    async def close() -> None:
        return None

    return SimpleNamespace(
        messages=SimpleNamespace(
            create=create or ScriptedCall(default=anthropic_message(text_block("ok"))),
            stream=open_stream,
            stream_calls=stream_calls,
        ),
        close=close,
    )


# =============================================================================
# Gemini
# =============================================================================


def gemini_response(
    text: str | None = "ok",
    *,
    prompt_tokens: int = 2,
    output_tokens: int = 3,
    finish_reason: str | None = "STOP",
    function_calls: list[Any] | None = None,
    search_queries: list[str] | None = None,
) -> SimpleNamespace:
    usage = SimpleNamespace(
        prompt_token_count=prompt_tokens,
        candidates_token_count=output_tokens,
        total_token_count=prompt_tokens + output_tokens,
    )
    grounding = (
        SimpleNamespace(web_search_queries=search_queries) if search_queries else None
    )
    candidate = SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason) if finish_reason else None,
        grounding_metadata=grounding,
    )
    return SimpleNamespace(
        text=text,
        function_calls=function_calls,
        usage_metadata=usage,
        candidates=[candidate],
    )


async def agen(items: list[Any]):
    """Async generator over *items*; exceptions in the list are raised."""
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item
