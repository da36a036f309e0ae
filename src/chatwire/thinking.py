"""Translate the abstract thinking level into vendor request parameters.

Each vendor exposes a different knob: a named effort tier, a token budget, or
nothing at all. Every function here returns a dict of extra request params;
``None``/``"default"`` and unsupported model families yield ``{}``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chatwire.config import ThinkingLevel

ANTHROPIC_THINKING_RE = re.compile(
    r"^claude-(opus-4|sonnet-4|sonnet-3-7|3-7-sonnet|haiku-4-5)"
)
ANTHROPIC_BUDGETS: dict[str, int] = {"low": 2048, "medium": 8192, "high": 32768}
ANTHROPIC_MAX_TOKENS_CAP = 65536

GEMINI_3_LEVELS: dict[str, str] = {
    "off": "minimal",
    "low": "low",
    "medium": "medium",
    "high": "high",
}
GEMINI_25_BUDGETS: dict[str, int] = {"off": 0, "low": 2048, "medium": 8192, "high": 24576}
# Pro models cannot disable thinking.
GEMINI_PRO_MIN_BUDGET = 128

OPENAI_REASONING_RE = re.compile(r"^(o1|o3|o4|gpt-5)")
OPENROUTER_GEMINI_RE = re.compile(r"^gemini-(2\.5|3-)")


def _is_default(level: ThinkingLevel | None) -> bool:
    return level is None or level == "default"


# --- Anthropic ---


def anthropic_thinking_budget(model: str, level: ThinkingLevel | None) -> int:
    """Budget tokens for *level*; 0 means thinking stays off."""
    if not ANTHROPIC_THINKING_RE.match(model.lower()):
        return 0
    return ANTHROPIC_BUDGETS.get(level or "", 0)


def anthropic_max_tokens(requested: int, budget: int) -> int:
    """``max_tokens`` must exceed the thinking budget."""
    floor = budget + 1024 if budget > 0 else 256
    return max(floor, min(ANTHROPIC_MAX_TOKENS_CAP, requested))


def anthropic_thinking(model: str, level: ThinkingLevel | None) -> dict[str, Any]:
    """``{"thinking": {...}}`` for capable Claude models, else ``{}``."""
    budget = anthropic_thinking_budget(model, level)
    if budget <= 0:
        return {}
    return {"thinking": {"type": "enabled", "budget_tokens": budget}}


# --- Gemini ---


def gemini_thinking(model: str, level: ThinkingLevel | None) -> dict[str, Any]:
    """``ThinkingConfig`` keyword arguments for Gemini 3 and 2.5 models."""
    if _is_default(level):
        return {}
    name = model.lower()
    if name.startswith("gemini-3"):
        return {"thinking_level": GEMINI_3_LEVELS.get(level or "", "high")}
    if name.startswith("gemini-2.5"):
        budget = GEMINI_25_BUDGETS.get(level or "", -1)
        if "pro" in name and budget < GEMINI_PRO_MIN_BUDGET:
            budget = GEMINI_PRO_MIN_BUDGET
        return {"thinking_budget": budget}
    return {}


# --- OpenAI-style ---


def grok_reasoning(model: str, level: ThinkingLevel | None) -> dict[str, Any]:
    """Only grok-3-mini accepts ``reasoning_effort``; grok-4 rejects it."""
    if _is_default(level) or not model.lower().startswith("grok-3-mini"):
        return {}
    return {"reasoning_effort": "low" if level in ("off", "low") else "high"}


def openai_reasoning(model: str, level: ThinkingLevel | None) -> dict[str, Any]:
    """Responses API ``reasoning`` block for o-series and gpt-5 models."""
    if _is_default(level) or not OPENAI_REASONING_RE.match(model.lower()):
        return {}
    return {"reasoning": {"effort": "low" if level == "off" else level}}


def openrouter_reasoning(model: str, level: ThinkingLevel | None) -> dict[str, Any]:
    """Pass-through reasoning params keyed on the routed model's vendor prefix."""
    if _is_default(level):
        return {}
    prefix, _, routed = model.partition("/")
    if prefix == "openai" and OPENAI_REASONING_RE.match(routed):
        return {"reasoning": {"effort": "low" if level == "off" else level}}
    if prefix == "google" and OPENROUTER_GEMINI_RE.match(routed):
        return {"reasoning": {"thinking_budget": GEMINI_25_BUDGETS.get(level or "", -1)}}
    return {}
