"""Vendor-neutral message and response types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, get_args

from chatwire.errors import ConfigurationError

Role = Literal["system", "user", "assistant", "tool"]

_ROLES: frozenset[str] = frozenset(get_args(Role))


@dataclass(frozen=True)
class TextPart:
    """A text content part."""

    text: str


@dataclass(frozen=True)
class ImagePart:
    """An image content part referenced by URL.

    ``url`` is either a remote ``http(s)`` URL or a base64 ``data:`` URL.
    """

    url: str

    @property
    def is_data_url(self) -> bool:
        """Whether the image is inlined as a ``data:image/...`` URL."""
        return self.url.startswith("data:image/")

    def data_url_parts(self) -> tuple[str, str]:
        """Split a data URL into ``(media_type, base64_data)``."""
        if not self.is_data_url:
            raise ValueError("ImagePart is not a data URL")
        meta, _, data = self.url.partition(",")
        media_type = meta.removeprefix("data:").removesuffix(";base64")
        return media_type, data


ContentPart = TextPart | ImagePart


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    arguments: str = "{}"


@dataclass(frozen=True)
class Message:
    """A conversation turn with an explicit role."""

    role: Role
    content: str | tuple[ContentPart, ...] = ""
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None

    def __post_init__(self) -> None:
        """Reject unknown roles and normalize list content to a tuple."""
        if self.role not in _ROLES:
            raise ConfigurationError(
                f"Unknown message role: {self.role!r}",
                hint="Use one of: system, user, assistant, tool.",
            )
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))
        if isinstance(self.tool_calls, list):
            object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @classmethod
    def system(cls, content: str | tuple[ContentPart, ...] | list[ContentPart]) -> Message:
        """Build a system message."""
        return cls(role="system", content=content)  # type: ignore[arg-type]

    @classmethod
    def user(cls, content: str | tuple[ContentPart, ...] | list[ContentPart]) -> Message:
        """Build a user message."""
        return cls(role="user", content=content)  # type: ignore[arg-type]

    @classmethod
    def assistant(
        cls,
        content: str | tuple[ContentPart, ...] | list[ContentPart] = "",
        *,
        tool_calls: list[ToolCall] | tuple[ToolCall, ...] | None = None,
    ) -> Message:
        """Build an assistant message, optionally carrying tool calls."""
        return cls(role="assistant", content=content, tool_calls=tool_calls)  # type: ignore[arg-type]

    @classmethod
    def tool(cls, content: str, *, tool_call_id: str) -> Message:
        """Build a tool result message."""
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @property
    def parts(self) -> tuple[ContentPart, ...]:
        """Content as parts; plain text becomes a single ``TextPart``."""
        if isinstance(self.content, str):
            return (TextPart(self.content),)
        return self.content

    def text(self) -> str:
        """Flatten content to text, joining text parts with newlines."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart) and p.text)


def split_system(messages: list[Message]) -> tuple[str | None, list[Message]]:
    """Merge all system messages into one instruction and return the rest.

    System texts are joined with a newline in conversation order.
    """
    system: str | None = None
    rest: list[Message] = []
    for message in messages:
        if message.role == "system":
            text = message.text()
            system = f"{system}\n{text}" if system is not None else text
        else:
            rest.append(message)
    return system, rest


@dataclass
class ModelResponse:
    """A normalized non-streaming model reply."""

    content: str
    tool_calls: list[ToolCall] | None = None
    usage: dict[str, int] | None = None


@dataclass
class StructuredResponse:
    """A structured-output reply.

    ``parsed`` always holds at least ``response`` (str), ``done`` (bool) and
    ``search_queries`` (list).
    """

    parsed: dict[str, Any]
    raw: dict[str, str]
    response_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamChunk:
    """One item of a normalized stream.

    Exactly one chunk per stream has ``done=True``; it is the last one and the
    only one that may carry usage.
    """

    text: str
    done: bool = False
    usage: dict[str, int] | None = None
