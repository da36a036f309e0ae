"""Vendor adapter implementations."""

from .anthropic import AnthropicChatModel
from .base import BaseChatModel, ChatModel, StructuredInvoker, StructuredModel
from .compatible import CompatibleChatModel
from .gemini import GeminiChatModel
from .grok import GrokChatModel
from .openai import OpenAIChatModel
from .openrouter import OpenRouterChatModel

__all__ = [
    "AnthropicChatModel",
    "BaseChatModel",
    "ChatModel",
    "CompatibleChatModel",
    "GeminiChatModel",
    "GrokChatModel",
    "OpenAIChatModel",
    "OpenRouterChatModel",
    "StructuredInvoker",
    "StructuredModel",
]
