"""Provider reachability probe against a mocked HTTP transport."""

from __future__ import annotations

import httpx
import pytest

from chatwire.config import ProviderConfig
from chatwire.reachability import build_probe_request, check_provider

pytestmark = pytest.mark.unit


class Recorder:
    """MockTransport handler that records requests and replies with a status."""

    def __init__(self, status: int = 200, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, json={"data": []})


async def _probe(config: ProviderConfig, handler: Recorder):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        return await check_provider(config, client=client)


# =============================================================================
# Probe requests
# =============================================================================


def test_probe_uses_default_endpoints_and_bearer_auth() -> None:
    probe = build_probe_request(ProviderConfig(type="grok", api_key="xai-key"))

    assert probe.url == "https://api.x.ai/v1/models"
    assert probe.headers == {"Authorization": "Bearer xai-key"}


def test_probe_strips_trailing_slash_from_base_url() -> None:
    probe = build_probe_request(
        ProviderConfig(type="custom_openai", base_url="http://localhost:11434/v1/")
    )

    assert probe.url == "http://localhost:11434/v1/models"
    assert "Authorization" not in probe.headers


def test_probe_for_openrouter_carries_attribution() -> None:
    probe = build_probe_request(ProviderConfig(type="openrouter", api_key="k"))

    assert probe.url == "https://openrouter.ai/api/v1/models"
    assert probe.headers["HTTP-Referer"] == "https://warpsurf.ai"
    assert probe.headers["X-Title"] == "warpsurf"


def test_probe_for_anthropic_uses_api_key_header() -> None:
    probe = build_probe_request(ProviderConfig(type="anthropic", api_key="sk-ant"))

    assert probe.url == "https://api.anthropic.com/v1/models"
    assert probe.headers["x-api-key"] == "sk-ant"
    assert probe.headers["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in probe.headers


def test_probe_for_compatible_requires_base_url() -> None:
    with pytest.raises(ValueError, match="Base URL"):
        build_probe_request(ProviderConfig(type="custom_openai"))


# =============================================================================
# check_provider
# =============================================================================


@pytest.mark.asyncio
async def test_reachable_provider_reports_status_and_latency() -> None:
    handler = Recorder(200)

    result = await _probe(ProviderConfig(type="openai", api_key="sk-test"), handler)

    assert result.ok is True
    assert result.status == 200
    assert isinstance(result.latency_ms, int)
    assert result.error is None
    request = handler.requests[0]
    assert str(request.url) == "https://api.openai.com/v1/models"
    assert request.headers["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_gemini_key_travels_as_query_parameter() -> None:
    handler = Recorder(200)

    await _probe(ProviderConfig(type="gemini", api_key="g-key"), handler)

    request = handler.requests[0]
    assert request.url.path == "/v1beta/models"
    assert request.url.params["key"] == "g-key"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_auth_rejection_still_counts_as_reachable() -> None:
    result = await _probe(ProviderConfig(type="anthropic", api_key="bad"), Recorder(401))

    assert result.ok is True
    assert result.status == 401


@pytest.mark.asyncio
async def test_server_errors_are_unreachable() -> None:
    result = await _probe(ProviderConfig(type="openai", api_key="k"), Recorder(503))

    assert result.ok is False
    assert result.status == 503


@pytest.mark.asyncio
async def test_transport_errors_are_reported_not_raised() -> None:
    handler = Recorder(error=httpx.ConnectError("connection refused"))

    result = await _probe(ProviderConfig(type="openai", api_key="k"), handler)

    assert result.ok is False
    assert result.status is None
    assert result.error == "connection refused"


@pytest.mark.asyncio
async def test_missing_compatible_base_url_makes_no_request() -> None:
    handler = Recorder(200)

    result = await _probe(ProviderConfig(type="custom_openai"), handler)

    assert result.ok is False
    assert "Base URL" in (result.error or "")
    assert handler.requests == []
