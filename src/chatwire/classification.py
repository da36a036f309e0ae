"""Vendor-agnostic error classification.

Every adapter funnels raw SDK failures through ``normalize_model_error`` so
callers only ever see ``TypedModelError`` (or cancellation, which is never
classified).
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from chatwire.errors import (
    EmptyResponseError,
    ModelErrorKind,
    TypedModelError,
    _walk_exception_chain,
)

INVALID_KEY_MARKERS: tuple[str, ...] = (
    "invalid api key",
    "invalid_api_key",
    "incorrect api key",
    "api key is invalid",
    "api key not valid",  # Gemini
    "bad api key",
    "authentication_error",
)

_MISSING_KEY_MARKERS: tuple[str, ...] = (
    "missing",
    "not found",
    "required",
    "must be provided",
    "must be set",
    "not provided",
)

_NETWORK_MARKERS: tuple[str, ...] = (
    "network",
    "econn",
    "enotfound",
    "fetch failed",
    "connection",
)

_FORMAT_REJECTION_MARKERS: tuple[str, ...] = (
    "response_format",
    "json_schema",
    "json_object",
)

_TRANSIENT_KINDS: frozenset[str] = frozenset({"rate_limit", "timeout", "network"})

_USER_MESSAGES: dict[ModelErrorKind, str] = {
    "auth_invalid_key": "The API key was rejected. Check the key in your provider settings.",
    "auth_missing_key": "No API key is configured for this provider.",
    "auth_forbidden": "The API key does not have permission to use this model.",
    "rate_limit": "The provider is rate limiting requests. Try again shortly.",
    "timeout": "The request to the provider timed out.",
    "network": "Could not reach the provider. Check your network connection.",
    "provider": "The provider returned a server error.",
    "unknown": "The model request failed.",
}

_RETRYABLE_KINDS: frozenset[str] = frozenset(
    {"rate_limit", "timeout", "network", "provider"}
)


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if 100 <= value <= 599:
        return value
    return None


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status", "code"):
            status = _as_status(getattr(e, attr, None))
            if status is not None:
                return status
        response = getattr(e, "response", None)
        for attr in ("status_code", "status"):
            status = _as_status(getattr(response, attr, None))
            if status is not None:
                return status
        error = getattr(e, "error", None)
        status = _as_status(getattr(error, "status", None))
        if status is not None:
            return status
    return None


def _raw_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__ or "Unknown error"


def _is_missing_key(message: str) -> bool:
    if "api key" not in message and "api_key" not in message:
        return False
    return any(marker in message for marker in _MISSING_KEY_MARKERS)


def _chain_has(exc: BaseException, types: tuple[type[BaseException], ...]) -> bool:
    return any(isinstance(e, types) for e in _walk_exception_chain(exc))


def _classify(exc: BaseException, message: str, status: int | None) -> ModelErrorKind:
    if status == 401 or any(marker in message for marker in INVALID_KEY_MARKERS):
        return "auth_invalid_key"
    if status == 403 or "forbidden" in message or "permission" in message:
        return "auth_forbidden"
    if _is_missing_key(message):
        return "auth_missing_key"
    if status == 429 or "rate limit" in message or "too many requests" in message:
        return "rate_limit"
    if (
        "timed out" in message
        or "timeout" in message
        or _chain_has(exc, (httpx.TimeoutException, TimeoutError))
    ):
        return "timeout"
    if any(marker in message for marker in _NETWORK_MARKERS) or _chain_has(
        exc, (httpx.RequestError,)
    ):
        return "network"
    if (status is not None and status >= 500) or (
        "server error" in message or "internal" in message
    ):
        return "provider"
    if _chain_has(exc, (EmptyResponseError,)):
        return "provider"
    return "unknown"


def normalize_model_error(
    exc: BaseException, provider: str, model: str
) -> TypedModelError:
    """Classify *exc* into a ``TypedModelError``.

    Already-classified errors are returned unchanged. Cancellation is
    re-raised rather than classified.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc
    if isinstance(exc, TypedModelError):
        return exc

    raw_message = _raw_message(exc)
    status = extract_status_code(exc)
    kind = _classify(exc, raw_message.lower(), status)
    return TypedModelError(
        kind=kind,
        provider=provider,
        model=model,
        status_code=status,
        retryable=kind in _RETRYABLE_KINDS,
        user_message=f"{provider}: {_USER_MESSAGES[kind]}",
        raw_message=raw_message,
    )


def is_non_retryable_error(exc: BaseException) -> bool:
    """Return True when *exc* must not be retried.

    Works on raw errors too, so a retry loop can short-circuit auth failures
    without building a full ``TypedModelError``.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc
    if isinstance(exc, TypedModelError):
        return not exc.retryable

    message = _raw_message(exc).lower()
    status = extract_status_code(exc)
    if status in (401, 403):
        return True
    if any(marker in message for marker in INVALID_KEY_MARKERS):
        return True
    return "forbidden" in message or "permission" in message


def is_format_rejection(exc: BaseException) -> bool:
    """Whether the vendor rejected the request shape rather than failing transiently."""
    if isinstance(exc, TypedModelError):
        kind: str = exc.kind
        status = exc.status_code
        message = exc.raw_message.lower()
    else:
        status = extract_status_code(exc)
        message = _raw_message(exc).lower()
        kind = _classify(exc, message, status)
    if kind in _TRANSIENT_KINDS:
        return False
    if status is not None and (status == 429 or status >= 500):
        return False
    if status == 400:
        return True
    return any(marker in message for marker in _FORMAT_REJECTION_MARKERS)
