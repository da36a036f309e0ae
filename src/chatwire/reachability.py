"""Out-of-band provider liveness probe.

Not part of the adapter contract: it issues one GET against the vendor's model
listing endpoint and reports what happened. Any answer below 500 (including
401) counts as reachable.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import TYPE_CHECKING

import httpx

from chatwire._http import (
    ANTHROPIC_VERSION,
    DEFAULT_BASE_URLS,
    GEMINI_BASE_URL,
    OPENAI_BASE_URL,
    openrouter_headers,
)

if TYPE_CHECKING:
    from chatwire.config import ProviderConfig

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 8.0


@dataclass(frozen=True)
class ReachabilityResult:
    """Outcome of one probe. Failures are reported here, never raised."""

    ok: bool
    latency_ms: int | None = None
    status: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProbeRequest:
    """The URL and headers a probe will use."""

    url: str
    headers: dict[str, str]


def build_probe_request(config: ProviderConfig) -> ProbeRequest:
    """Pick the listing endpoint and auth headers for *config*.

    Raises ValueError when a compatible provider has no base URL.
    """
    provider = (config.type or "").lower()
    base_url = (config.base_url or "").rstrip("/")
    headers: dict[str, str] = {}

    if provider == "gemini":
        url = f"{GEMINI_BASE_URL}/models"
        # Gemini takes the key as a query param; httpx encodes it.
        return ProbeRequest(url=url, headers=headers)

    if provider == "custom_openai":
        if not base_url:
            raise ValueError("Base URL is required for custom OpenAI-compatible providers")
        url = f"{base_url}/models"
    else:
        base = base_url or DEFAULT_BASE_URLS.get(provider, OPENAI_BASE_URL)
        url = f"{base.rstrip('/')}/models"
        if provider == "openrouter":
            headers.update(openrouter_headers(config.http_referer, config.x_title))

    if not config.api_key:
        return ProbeRequest(url=url, headers=headers)
    if provider == "anthropic":
        headers["x-api-key"] = config.api_key
        headers["anthropic-version"] = ANTHROPIC_VERSION
    else:
        headers["Authorization"] = f"Bearer {config.api_key}"
    return ProbeRequest(url=url, headers=headers)


async def check_provider(
    config: ProviderConfig,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    client: httpx.AsyncClient | None = None,
) -> ReachabilityResult:
    """Probe *config*'s endpoint and report reachability and latency."""
    start = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - start) * 1000)

    try:
        probe = build_probe_request(config)
    except ValueError as e:
        return ReachabilityResult(ok=False, error=str(e))

    params = (
        {"key": config.api_key}
        if (config.type or "").lower() == "gemini" and config.api_key
        else None
    )
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout_s) as owned:
                response = await owned.get(probe.url, headers=probe.headers, params=params)
        else:
            response = await client.get(
                probe.url, headers=probe.headers, params=params, timeout=timeout_s
            )
    except httpx.HTTPError as e:
        log.debug("Probe of %s failed: %s", config.type, e)
        return ReachabilityResult(
            ok=False, latency_ms=elapsed_ms(), error=str(e) or type(e).__name__
        )

    status = response.status_code
    return ReachabilityResult(
        ok=200 <= status < 500, latency_ms=elapsed_ms(), status=status
    )
