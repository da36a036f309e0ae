"""Endpoint and header constants shared by adapters and the reachability probe."""

from __future__ import annotations

OPENAI_BASE_URL = "https://api.openai.com/v1"
ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GROK_BASE_URL = "https://api.x.ai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

OPENROUTER_DEFAULT_REFERER = "https://warpsurf.ai"
OPENROUTER_DEFAULT_TITLE = "warpsurf"

DEFAULT_BASE_URLS: dict[str, str] = {
    "openai": OPENAI_BASE_URL,
    "anthropic": ANTHROPIC_BASE_URL,
    "gemini": GEMINI_BASE_URL,
    "grok": GROK_BASE_URL,
    "openrouter": OPENROUTER_BASE_URL,
}

ANTHROPIC_VERSION = "2023-06-01"


def openrouter_headers(
    http_referer: str | None = None, x_title: str | None = None
) -> dict[str, str]:
    """Attribution headers OpenRouter expects on every request."""
    return {
        "HTTP-Referer": http_referer or OPENROUTER_DEFAULT_REFERER,
        "X-Title": x_title or OPENROUTER_DEFAULT_TITLE,
    }
