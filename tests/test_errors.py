"""Error classification and UI payload tests."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import pytest

from chatwire.classification import (
    extract_status_code,
    is_format_rejection,
    is_non_retryable_error,
    normalize_model_error,
)
from chatwire.errors import (
    ChatwireError,
    EmptyResponseError,
    TypedModelError,
    error_payload,
)
from tests.helpers import RATE_LIMIT_MESSAGE, StatusError

pytestmark = pytest.mark.unit


def _classify(exc: BaseException) -> TypedModelError:
    return normalize_model_error(exc, "openai", "gpt-4o")


# =============================================================================
# Classification
# =============================================================================


@pytest.mark.parametrize(
    ("exc", "kind", "retryable"),
    [
        (StatusError("Unauthorized", 401), "auth_invalid_key", False),
        (Exception("Incorrect API key provided: sk-..."), "auth_invalid_key", False),
        (Exception("API key not valid. Please pass a valid API key."), "auth_invalid_key", False),
        (StatusError("Forbidden", 403), "auth_forbidden", False),
        (Exception("You do not have permission to use this model"), "auth_forbidden", False),
        (ChatwireError("openai API key is missing"), "auth_missing_key", False),
        (StatusError("slow down", 429), "rate_limit", True),
        (Exception("Too Many Requests"), "rate_limit", True),
        (httpx.ConnectTimeout("boom"), "timeout", True),
        (Exception("Request timed out."), "timeout", True),
        (httpx.ConnectError("boom"), "network", True),
        (Exception("ECONNRESET"), "network", True),
        (StatusError("bad gateway", 502), "provider", True),
        (Exception("Internal error encountered"), "provider", True),
        (EmptyResponseError("Empty response text from openai"), "provider", True),
        (StatusError("model not found", 404), "unknown", False),
        (Exception("something odd"), "unknown", False),
    ],
)
def test_normalize_model_error_classifies_common_failures(
    exc: BaseException, kind: str, retryable: bool
) -> None:
    """Each failure family maps to one kind with a fixed retryability."""
    error = _classify(exc)

    assert error.kind == kind
    assert error.retryable is retryable
    assert error.provider == "openai"
    assert error.model == "gpt-4o"


def test_auth_status_wins_over_rate_limit_wording() -> None:
    """A 401 whose message mentions rate limits is still an invalid key."""
    error = _classify(StatusError("rate limit exceeded", 401))

    assert error.kind == "auth_invalid_key"
    assert error.status_code == 401


def test_status_code_is_found_on_the_exception_chain() -> None:
    """Wrapped SDK errors still contribute their status code."""
    outer = RuntimeError("wrapped")
    outer.__cause__ = StatusError("inner", 429)

    error = _classify(outer)

    assert error.kind == "rate_limit"
    assert error.status_code == 429


def test_status_code_is_read_from_response_attribute() -> None:
    exc = Exception("upstream")
    exc.response = SimpleNamespace(status_code=503)  # type: ignore[attr-defined]

    assert extract_status_code(exc) == 503
    assert _classify(exc).kind == "provider"


def test_status_code_ignores_booleans_and_out_of_range_values() -> None:
    exc = Exception("odd")
    exc.status = True  # type: ignore[attr-defined]
    exc.code = 42  # type: ignore[attr-defined]

    assert extract_status_code(exc) is None


def test_exception_chain_cycles_do_not_hang() -> None:
    a = RuntimeError("a")
    b = RuntimeError("b")
    a.__context__ = b
    b.__context__ = a

    assert extract_status_code(a) is None


def test_normalize_model_error_is_idempotent() -> None:
    """Already-classified errors pass through unchanged."""
    first = _classify(StatusError("slow down", 429))

    assert normalize_model_error(first, "anthropic", "claude") is first


def test_normalize_model_error_reraises_cancellation() -> None:
    with pytest.raises(asyncio.CancelledError):
        _classify(asyncio.CancelledError())


def test_user_message_is_prefixed_with_provider_and_raw_message_kept() -> None:
    error = normalize_model_error(StatusError("boom", 500), "gemini", "gemini-2.5-pro")

    assert error.user_message.startswith("gemini: ")
    assert error.raw_message == "boom"
    assert str(error) == error.user_message


def test_empty_exception_message_falls_back_to_type_name() -> None:
    error = _classify(ValueError())

    assert error.raw_message == "ValueError"


# =============================================================================
# Retryability and format rejection
# =============================================================================


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (StatusError("nope", 401), True),
        (StatusError("nope", 403), True),
        (Exception("invalid_api_key"), True),
        (Exception("permission denied"), True),
        (StatusError("server error", 500), False),
        (StatusError("slow down", 429), False),
        (Exception("connection reset"), False),
    ],
)
def test_is_non_retryable_error_on_raw_exceptions(
    exc: BaseException, expected: bool
) -> None:
    assert is_non_retryable_error(exc) is expected


def test_is_non_retryable_error_uses_typed_retryable_flag() -> None:
    assert is_non_retryable_error(_classify(StatusError("x", 500))) is False
    assert is_non_retryable_error(_classify(StatusError("x", 401))) is True


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (StatusError("Bad request", 400), True),
        (Exception("response_format is not supported for this model"), True),
        (Exception("Invalid json_schema"), True),
        (StatusError("server error", 500), False),
        (Exception("Request timed out"), False),
        (StatusError(RATE_LIMIT_MESSAGE, 429), False),
        (StatusError("json_schema validation backend unavailable", 503), False),
        (Exception("Rate limit reached for response_format requests"), False),
        (Exception("Unsupported parameter: 400 tokens"), False),
    ],
)
def test_is_format_rejection(exc: BaseException, expected: bool) -> None:
    assert is_format_rejection(exc) is expected
    assert is_format_rejection(_classify(exc)) is expected


# =============================================================================
# Payloads
# =============================================================================


def test_typed_error_payload_shape() -> None:
    """The payload exposes the same fields a UI needs to render the failure."""
    error = _classify(StatusError("slow down", 429))

    payload = error.to_payload()

    assert payload["message"] == error.user_message
    assert payload["error"] == {
        "kind": "rate_limit",
        "provider": "openai",
        "model": "gpt-4o",
        "statusCode": 429,
        "retryable": True,
        "userMessage": error.user_message,
        "rawMessage": "slow down",
    }
    assert error_payload(error) == payload


def test_error_payload_for_unclassified_exception() -> None:
    payload = error_payload(RuntimeError("kaboom"))

    assert payload["message"] == "kaboom"
    assert payload["error"]["kind"] == "unknown"
    assert payload["error"]["retryable"] is False


def test_error_payload_uses_fallback_for_empty_message() -> None:
    assert error_payload(RuntimeError())["message"] == "Request failed"
    assert error_payload(RuntimeError(), fallback="Stream failed")["message"] == (
        "Stream failed"
    )


def test_typed_error_repr_and_auth_flag() -> None:
    error = _classify(StatusError("nope", 403))

    assert error.is_auth_error is True
    assert "auth_forbidden" in repr(error)
    assert _classify(StatusError("x", 500)).is_auth_error is False
