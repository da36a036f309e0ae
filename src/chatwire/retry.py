"""Bounded async retry shared by every adapter.

Design goals:
- One loop for every vendor, so retry semantics cannot drift between adapters
- Classify each failure once; the classification decides retryability
- Cancellation is never caught, counted, or classified
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import TYPE_CHECKING, Literal, TypeVar

from chatwire.cancellation import cancellable_sleep, run_cancellable
from chatwire.classification import is_format_rejection, normalize_model_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chatwire.cancellation import CancellationToken
    from chatwire.errors import TypedModelError

T = TypeVar("T")

log = logging.getLogger(__name__)

BackoffShape = Literal["fixed", "exponential"]

# Hosted vendors mostly rate limit per minute, so a generous flat gap works
# better than a fast exponential ramp.
DEFAULT_FIXED_DELAY_S = 5.0
DEFAULT_MAX_RETRIES = 5


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff shape for one vendor call."""

    max_retries: int = DEFAULT_MAX_RETRIES
    backoff: BackoffShape = "fixed"
    delay_s: float = DEFAULT_FIXED_DELAY_S
    max_delay_s: float = 10.0
    jitter_s: float = 1.0

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_retries < 0:
            raise ValueError("RetryPolicy.max_retries must be >= 0")
        if self.backoff not in ("fixed", "exponential"):
            raise ValueError("RetryPolicy.backoff must be 'fixed' or 'exponential'")
        if self.delay_s < 0:
            raise ValueError("RetryPolicy.delay_s must be >= 0")
        if self.max_delay_s < 0:
            raise ValueError("RetryPolicy.max_delay_s must be >= 0")
        if self.jitter_s < 0:
            raise ValueError("RetryPolicy.jitter_s must be >= 0")

    @classmethod
    def fixed(cls, max_retries: int, delay_s: float = DEFAULT_FIXED_DELAY_S) -> RetryPolicy:
        """Flat delay between attempts."""
        return cls(max_retries=max_retries, backoff="fixed", delay_s=delay_s)

    @classmethod
    def exponential(
        cls,
        max_retries: int,
        *,
        base_delay_s: float = 1.0,
        max_delay_s: float = 10.0,
        jitter_s: float = 1.0,
    ) -> RetryPolicy:
        """Doubling delay with jitter, capped at *max_delay_s*."""
        return cls(
            max_retries=max_retries,
            backoff="exponential",
            delay_s=base_delay_s,
            max_delay_s=max_delay_s,
            jitter_s=jitter_s,
        )

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first one."""
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after failed *attempt* (0-indexed)."""
        if self.backoff == "fixed":
            return self.delay_s
        jitter = random.random() * self.jitter_s  # noqa: S311
        return min(self.delay_s * (2**attempt) + jitter, self.max_delay_s)


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    provider: str,
    model: str,
    signal: CancellationToken | None = None,
) -> T:
    """Run an async factory with bounded retries.

    Contract:
    - The token is checked before each attempt and while sleeping.
    - Non-retryable failures raise on first occurrence.
    - Format rejections raise immediately so callers can fall back to a
      simpler request shape instead of burning attempts.
    - After the budget is spent the last classified error is raised.
    """
    last_error: TypedModelError | None = None

    for attempt in range(policy.max_attempts):
        if signal is not None:
            signal.raise_if_cancelled()
        try:
            return await run_cancellable(factory(), signal)
        except Exception as exc:
            error = normalize_model_error(exc, provider, model)
            last_error = error
            if (
                not error.retryable
                or is_format_rejection(error)
                or attempt + 1 >= policy.max_attempts
            ):
                if error is exc:
                    raise
                raise error from exc

            delay = policy.delay_for(attempt)
            log.warning(
                "%s call failed (attempt %d/%d, kind=%s); retrying in %.1fs: %s",
                provider,
                attempt + 1,
                policy.max_attempts,
                error.kind,
                delay,
                error.raw_message,
            )
        await cancellable_sleep(delay, signal)

    # Unreachable: the loop always returns or raises.
    if last_error is None:  # pragma: no cover
        raise RuntimeError("retry_async exhausted without an error")
    raise last_error
