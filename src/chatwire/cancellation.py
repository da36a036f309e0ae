"""Cooperative cancellation for adapter calls.

A ``CancellationToken`` is the caller-supplied signal passed as ``signal=`` to
adapter operations. Firing it aborts the in-flight vendor request and raises
``asyncio.CancelledError``, the same exception native task cancellation
produces, so callers can tell "user cancelled" apart from "call failed".
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
import inspect
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


class CancellationToken:
    """A cooperative cancellation signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason supplied at cancel time, if any."""
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Later calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise ``asyncio.CancelledError`` if the token has fired."""
        if self._event.is_set():
            raise asyncio.CancelledError(self._reason or "operation cancelled")

    async def wait(self) -> None:
        """Block until the token fires."""
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, reason={self._reason!r})"


async def run_cancellable(
    awaitable: Awaitable[T], signal: CancellationToken | None
) -> T:
    """Await *awaitable*, aborting it when *signal* fires.

    The awaitable runs as its own task so firing the token cancels the
    underlying request instead of just discarding its result.
    """
    if signal is None:
        return await awaitable
    if signal.cancelled:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        signal.raise_if_cancelled()

    call = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        raise
    finally:
        waiter.cancel()

    if call.done():
        return call.result()

    call.cancel()
    with suppress(asyncio.CancelledError, Exception):
        await call
    signal.raise_if_cancelled()
    raise asyncio.CancelledError("operation cancelled")  # pragma: no cover


async def cancellable_sleep(delay: float, signal: CancellationToken | None) -> None:
    """Sleep for *delay* seconds unless *signal* fires first."""
    if delay <= 0:
        if signal is not None:
            signal.raise_if_cancelled()
        return
    await run_cancellable(asyncio.sleep(delay), signal)
