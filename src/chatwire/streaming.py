"""Streaming normalization shared by every adapter.

Adapters turn vendor stream items into ``StreamEvent``s; ``normalize_stream``
turns those into the public ``StreamChunk`` sequence.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import inspect
import logging
from typing import TYPE_CHECKING, Any

from chatwire.cancellation import run_cancellable
from chatwire.classification import normalize_model_error
from chatwire.types import StreamChunk

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chatwire.cancellation import CancellationToken

log = logging.getLogger(__name__)

_END = object()


@dataclass(frozen=True)
class StreamEvent:
    """One vendor stream item reduced to a text delta and optional usage."""

    text: str | None = None
    usage: dict[str, int] | None = None


async def _next(iterator: Any) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


async def _close(events: Any) -> None:
    closer = getattr(events, "aclose", None)
    if closer is None:
        return
    result = closer()
    if inspect.isawaitable(result):
        await result


async def normalize_stream(
    events: AsyncIterator[StreamEvent],
    *,
    provider: str,
    model: str,
    signal: CancellationToken | None = None,
) -> AsyncIterator[StreamChunk]:
    """Yield non-empty text deltas, then exactly one terminal chunk.

    The terminal chunk carries the last usage any event reported. Failures are
    classified; cancellation passes through untouched. *events* is closed on
    every exit path.
    """
    usage: dict[str, int] | None = None
    try:
        iterator = aiter(events)
        while True:
            event = await run_cancellable(_next(iterator), signal)
            if event is _END:
                break
            if event.usage:
                usage = event.usage
            if event.text:
                yield StreamChunk(text=event.text)
        if signal is not None:
            signal.raise_if_cancelled()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        error = normalize_model_error(exc, provider, model)
        log.debug("%s stream failed: kind=%s", provider, error.kind)
        if error is exc:
            raise
        raise error from exc
    finally:
        await _close(events)

    yield StreamChunk(text="", done=True, usage=usage)
