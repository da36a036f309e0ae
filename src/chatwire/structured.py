"""Structured output: schema resolution, JSON recovery, and the strategy ladder.

Vendors disagree on how (or whether) they honor a requested output schema, and
models regularly wrap JSON in prose or markdown fences. Everything here is
vendor-independent; adapters only decide which ladder rungs they offer and
how each rung shapes a request.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from chatwire.errors import ConfigurationError, EmptyResponseError, TypedModelError
from chatwire.retry import retry_async
from chatwire.types import Message, StructuredResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from chatwire.cancellation import CancellationToken
    from chatwire.retry import RetryPolicy

log = logging.getLogger(__name__)

StructuredStrategy = Literal["json_schema", "json_object", "text"]
SchemaInput = type[BaseModel] | dict[str, Any]

JSON_INSTRUCTION = "Respond with valid JSON only."
DEFAULT_SCHEMA_NAME = "ModelOutput"

_JSON_FENCE_RE = re.compile(r"```json[\s\S]*?```", re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```[\s\S]*?```")
_JSON_FENCE_OPEN_RE = re.compile(r"```json", re.IGNORECASE)


# --- Schema resolution ---


@dataclass(frozen=True)
class ResolvedSchema:
    """A JSON schema dict plus the name vendors label it with."""

    name: str
    schema: dict[str, Any]


def resolve_schema(schema: SchemaInput, name: str | None = None) -> ResolvedSchema:
    """Normalize a pydantic model class or JSON-schema dict.

    The name comes from *name*, then the schema ``title``, then the model class
    name, then ``"ModelOutput"``.
    """
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        json_schema = schema.model_json_schema()
        fallback = schema.__name__
    elif isinstance(schema, dict):
        json_schema = schema
        fallback = DEFAULT_SCHEMA_NAME
    else:
        raise ConfigurationError(
            "schema must be a Pydantic model class or JSON schema dict",
            hint="Pass a BaseModel subclass or a dict following JSON Schema.",
        )
    title = json_schema.get("title")
    resolved_name = name or (title if isinstance(title, str) and title else fallback)
    return ResolvedSchema(name=resolved_name, schema=json_schema)


# --- JSON recovery ---


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Best-effort recovery of a JSON object embedded in model text.

    Prefers a ```json fence, then any fence, then the raw text; within the
    candidate, the span from the first ``{`` to the last ``}`` is parsed.
    Returns None when nothing parses to an object.
    """
    fence = _JSON_FENCE_RE.search(text) or _ANY_FENCE_RE.search(text)
    candidate = fence.group(0) if fence else text
    candidate = _JSON_FENCE_OPEN_RE.sub("", candidate, count=1).replace("```", "").strip()

    first = candidate.find("{")
    last = candidate.rfind("}")
    if first != -1 and last > first:
        candidate = candidate[first : last + 1]
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_structured_text(text: str) -> dict[str, Any]:
    """Parse model text into a dict, never failing.

    Order: strict parse, embedded-object extraction, then ``{"response": text}``.
    """
    try:
        value = json.loads(text)
    except ValueError:
        value = None
    if isinstance(value, dict):
        return value
    extracted = extract_json_object(text)
    if extracted is not None:
        return extracted
    return {"response": text}


def _unwrap_nested(parsed: dict[str, Any]) -> dict[str, Any]:
    # Some models answer with the whole JSON object serialized inside "response".
    inner_text = parsed.get("response")
    if not isinstance(inner_text, str) or "{" not in inner_text:
        return parsed
    inner = extract_json_object(inner_text)
    if inner is not None and isinstance(inner.get("response"), str):
        return inner
    return parsed


def normalize_structured(parsed: dict[str, Any], raw_text: str) -> dict[str, Any]:
    """Guarantee ``response`` (str), ``done`` (bool) and ``search_queries`` (list).

    Applying it twice gives the same result as applying it once.
    """
    result = dict(_unwrap_nested(parsed))
    if not isinstance(result.get("response"), str):
        result["response"] = raw_text
    if not isinstance(result.get("done"), bool):
        result["done"] = True
    if not isinstance(result.get("search_queries"), list):
        result["search_queries"] = []
    return result


def build_structured_response(
    text: str, usage: dict[str, int] | None = None
) -> StructuredResponse:
    """Parse and normalize *text* into a ``StructuredResponse``."""
    parsed = normalize_structured(parse_structured_text(text), text)
    return StructuredResponse(
        parsed=parsed,
        raw={"content": text},
        response_metadata={"usage": usage},
    )


# --- JSON-mode instruction ---


def has_json_instruction(messages: Sequence[Message]) -> bool:
    """Whether any text already asks for JSON output."""
    for message in messages:
        text = message.text().lower()
        if "json" in text or "respond with" in text:
            return True
    return False


def ensure_json_instruction(messages: Sequence[Message]) -> list[Message]:
    """Return *messages* with a JSON-only instruction in the system prompt.

    The instruction is appended to the first system message, or a new system
    message is prepended. Conversations that already mention JSON are returned
    unchanged.
    """
    out = list(messages)
    if not out or has_json_instruction(out):
        return out
    for index, message in enumerate(out):
        if message.role == "system" and isinstance(message.content, str):
            out[index] = Message.system(f"{message.content}\n\n{JSON_INSTRUCTION}")
            return out
    return [Message.system(JSON_INSTRUCTION), *out]


# --- Strategy ladder ---


@dataclass(frozen=True)
class AttemptResult:
    """Text and usage produced by one successful vendor call."""

    text: str
    usage: dict[str, int] | None = None


@dataclass(frozen=True)
class StrategyOutcome:
    """The result of one ladder rung: either text or a classified error."""

    strategy: StructuredStrategy
    result: AttemptResult | None = None
    error: TypedModelError | None = None

    @property
    def ok(self) -> bool:
        """Whether the rung produced text."""
        return self.result is not None


async def _run_rung(
    strategy: StructuredStrategy,
    attempt: Callable[[StructuredStrategy], Awaitable[AttemptResult]],
    *,
    policy: RetryPolicy,
    provider: str,
    model: str,
    signal: CancellationToken | None,
) -> StrategyOutcome:
    async def call() -> AttemptResult:
        result = await attempt(strategy)
        if not result.text.strip():
            raise EmptyResponseError(f"Empty response text from {provider}")
        return result

    try:
        result = await retry_async(
            call, policy=policy, provider=provider, model=model, signal=signal
        )
    except TypedModelError as error:
        return StrategyOutcome(strategy=strategy, error=error)
    return StrategyOutcome(strategy=strategy, result=result)


async def run_strategy_ladder(
    strategies: Sequence[StructuredStrategy],
    attempt: Callable[[StructuredStrategy], Awaitable[AttemptResult]],
    *,
    policy: RetryPolicy,
    provider: str,
    model: str,
    signal: CancellationToken | None = None,
) -> AttemptResult:
    """Try each strategy in order until one yields non-empty text.

    Each rung gets its own retry budget. Auth failures end the ladder at once;
    any other failure falls through to the next rung. When every rung fails
    the last error is raised.
    """
    if not strategies:
        raise ConfigurationError("At least one structured-output strategy is required")

    last: StrategyOutcome | None = None
    for strategy in strategies:
        outcome = await _run_rung(
            strategy,
            attempt,
            policy=policy,
            provider=provider,
            model=model,
            signal=signal,
        )
        if outcome.result is not None:
            return outcome.result
        last = outcome
        if outcome.error is not None and outcome.error.is_auth_error:
            raise outcome.error
        log.debug(
            "%s structured strategy %s failed (%s); falling back",
            provider,
            strategy,
            outcome.error.kind if outcome.error else "empty",
        )

    # Non-empty strategies means at least one rung ran and failed.
    raise last.error  # type: ignore[union-attr,misc]
