"""Exception hierarchy for chatwire."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collections.abc import Iterator

ModelErrorKind = Literal[
    "auth_invalid_key",
    "auth_missing_key",
    "auth_forbidden",
    "rate_limit",
    "timeout",
    "network",
    "provider",
    "unknown",
]


class ChatwireError(Exception):
    """Base exception for all chatwire errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ChatwireError):
    """Configuration validation or adapter construction failed."""


class EmptyResponseError(ChatwireError):
    """A vendor call succeeded but returned no usable text.

    Always classified into a retryable ``TypedModelError`` before it can reach
    a caller.
    """


class TypedModelError(ChatwireError):
    """A classified model failure.

    Adapters raise this for every failure except cancellation. Instances are
    built once by ``normalize_model_error`` and never reclassified.
    """

    def __init__(
        self,
        *,
        kind: ModelErrorKind,
        provider: str,
        model: str,
        retryable: bool,
        user_message: str,
        raw_message: str,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(user_message, hint=hint)
        self.kind: ModelErrorKind = kind
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.retryable = retryable
        self.user_message = user_message
        self.raw_message = raw_message

    @property
    def is_auth_error(self) -> bool:
        """Whether this failure is one of the ``auth_*`` kinds."""
        return self.kind.startswith("auth_")

    def to_payload(self) -> dict[str, Any]:
        """Return a UI-safe representation of the error."""
        return {
            "message": self.user_message,
            "error": {
                "kind": self.kind,
                "provider": self.provider,
                "model": self.model,
                "statusCode": self.status_code,
                "retryable": self.retryable,
                "userMessage": self.user_message,
                "rawMessage": self.raw_message,
            },
        }

    def __repr__(self) -> str:
        return (
            f"TypedModelError(kind={self.kind!r}, provider={self.provider!r}, "
            f"model={self.model!r}, status_code={self.status_code!r}, "
            f"retryable={self.retryable!r})"
        )


def error_payload(exc: BaseException, fallback: str = "Request failed") -> dict[str, Any]:
    """Return a UI-safe payload for any exception."""
    if isinstance(exc, TypedModelError):
        return exc.to_payload()
    message = str(exc) or fallback
    return {
        "message": message,
        "error": {
            "kind": "unknown",
            "retryable": False,
            "userMessage": message,
            "rawMessage": message,
        },
    }


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
