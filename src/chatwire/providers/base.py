"""Adapter contract and the shared adapter base.

Concrete adapters only translate messages to and from one vendor's wire shape.
Retry, empty-reply detection, structured-output fallback and stream
normalization live here so they behave the same for every vendor.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Protocol,
    runtime_checkable,
)

from chatwire.config import API_KEY_ENV_VARS, resolve_api_key
from chatwire.errors import ChatwireError, EmptyResponseError
from chatwire.retry import RetryPolicy, retry_async
from chatwire.streaming import normalize_stream
from chatwire.structured import (
    build_structured_response,
    resolve_schema,
    run_strategy_ladder,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from chatwire.cancellation import CancellationToken
    from chatwire.config import ModelConfig
    from chatwire.streaming import StreamEvent
    from chatwire.structured import (
        AttemptResult,
        ResolvedSchema,
        SchemaInput,
        StructuredStrategy,
    )
    from chatwire.types import Message, ModelResponse, StreamChunk, StructuredResponse

log = logging.getLogger(__name__)


@runtime_checkable
class StructuredModel(Protocol):
    """A model bound to one output schema."""

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        signal: CancellationToken | None = None,
    ) -> StructuredResponse:
        """Return a normalized structured reply."""
        ...


@runtime_checkable
class ChatModel(Protocol):
    """Uniform async contract every vendor adapter satisfies."""

    @property
    def model_name(self) -> str:
        """Vendor model identifier."""
        ...

    @property
    def provider(self) -> str:
        """Provider name used in errors and logs."""
        ...

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        signal: CancellationToken | None = None,
    ) -> ModelResponse:
        """Send a conversation and return the full reply."""
        ...

    def invoke_streaming(
        self,
        messages: Sequence[Message],
        signal: CancellationToken | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream the reply as text deltas followed by one terminal chunk."""
        ...

    def with_structured_output(
        self, schema: SchemaInput, *, name: str | None = None
    ) -> StructuredModel:
        """Bind an output schema."""
        ...

    async def aclose(self) -> None:
        """Release the vendor client."""
        ...


class StructuredInvoker:
    """``with_structured_output`` result: an adapter plus a resolved schema."""

    def __init__(self, model: BaseChatModel, schema: ResolvedSchema) -> None:
        self._model = model
        self.schema = schema

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        signal: CancellationToken | None = None,
    ) -> StructuredResponse:
        """Run the adapter's strategy ladder and normalize the parsed object."""
        return await self._model._invoke_structured(
            list(messages), self.schema, signal=signal
        )

    def __repr__(self) -> str:
        return f"StructuredInvoker(model={self._model.model_name!r}, schema={self.schema.name!r})"


class BaseChatModel:
    """Shared adapter machinery.

    Subclasses implement ``_create_client``, ``_generate``, ``_stream_events``,
    ``_generate_structured`` and ``_structured_strategies``.
    """

    provider_name: ClassVar[str] = ""
    supports_web_search: ClassVar[bool] = True
    requires_api_key: ClassVar[bool] = True

    def __init__(
        self,
        config: ModelConfig,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Bind a model config; the vendor client is created on first use."""
        if config.web_search and not self.supports_web_search:
            log.debug(
                "%s has no web search support; ignoring web_search for %s",
                self.provider_name or config.provider,
                config.model_name,
            )
            config = dataclasses.replace(config, web_search=False)
        self.config = config
        self.api_key = resolve_api_key(config.provider, config.api_key)
        self.retry_policy = retry_policy or self._default_retry_policy()
        self._client: Any = None

    @property
    def model_name(self) -> str:
        """Vendor model identifier."""
        return self.config.model_name

    @property
    def provider(self) -> str:
        """Provider name used in errors and logs."""
        return self.provider_name or self.config.provider

    def _default_retry_policy(self) -> RetryPolicy:
        return RetryPolicy.fixed(self.config.resolved_max_retries)

    # --- Client lifecycle ---

    def _create_client(self) -> Any:
        raise NotImplementedError

    def _get_client(self) -> Any:
        """Lazily initialize and return the vendor client.

        A missing key surfaces on the first call (as ``auth_missing_key``), not
        at construction.
        """
        if self._client is None:
            if self.requires_api_key and not self.api_key:
                env_var = API_KEY_ENV_VARS.get(self.config.provider, "the API key")
                raise ChatwireError(
                    f"{self.provider} API key is missing",
                    hint=f"Set {env_var} or pass api_key=...",
                )
            self._client = self._create_client()
        return self._client

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()

    # --- Vendor hooks ---

    async def _generate(self, messages: list[Message]) -> ModelResponse:
        raise NotImplementedError

    def _stream_events(self, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        raise NotImplementedError

    async def _generate_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        strategy: StructuredStrategy,
    ) -> AttemptResult:
        raise NotImplementedError

    def _structured_strategies(self) -> list[StructuredStrategy]:
        return ["json_schema", "json_object", "text"]

    # --- Public contract ---

    async def invoke(
        self,
        messages: Sequence[Message],
        *,
        signal: CancellationToken | None = None,
    ) -> ModelResponse:
        """Send a conversation and return the full reply.

        Empty replies (no text and no tool calls) are retried like transient
        vendor failures. Every failure except cancellation leaves as
        ``TypedModelError``.
        """
        payload = list(messages)

        async def call() -> ModelResponse:
            response = await self._generate(payload)
            if not response.content.strip() and not response.tool_calls:
                raise EmptyResponseError(f"Empty response text from {self.provider}")
            return response

        return await retry_async(
            call,
            policy=self.retry_policy,
            provider=self.provider,
            model=self.model_name,
            signal=signal,
        )

    async def invoke_streaming(
        self,
        messages: Sequence[Message],
        signal: CancellationToken | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream the reply as text deltas followed by one terminal chunk.

        Streams are not retried and cannot be restarted.
        """
        if signal is not None:
            signal.raise_if_cancelled()
        events = self._stream_events(list(messages))
        async for chunk in normalize_stream(
            events, provider=self.provider, model=self.model_name, signal=signal
        ):
            yield chunk

    def with_structured_output(
        self, schema: SchemaInput, *, name: str | None = None
    ) -> StructuredInvoker:
        """Bind an output schema (JSON-schema dict or pydantic model class)."""
        return StructuredInvoker(self, resolve_schema(schema, name))

    async def _invoke_structured(
        self,
        messages: list[Message],
        schema: ResolvedSchema,
        *,
        signal: CancellationToken | None,
    ) -> StructuredResponse:
        strategies = self._structured_strategies()
        log.debug(
            "%s structured call for %s with strategies %s",
            self.provider,
            schema.name,
            strategies,
        )

        async def attempt(strategy: StructuredStrategy) -> AttemptResult:
            return await self._generate_structured(messages, schema, strategy)

        result = await run_strategy_ladder(
            strategies,
            attempt,
            policy=self.retry_policy,
            provider=self.provider,
            model=self.model_name,
            signal=signal,
        )
        return build_structured_response(result.text, result.usage)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model_name!r})"

