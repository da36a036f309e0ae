"""chatwire: one async contract for chatting with many LLM vendors.

Public API:
    - create_chat_model(): Build the adapter for a provider/model pair
    - Message, TextPart, ImagePart: Vendor-neutral conversation input
    - ModelConfig, ProviderConfig: Configuration dataclasses
    - CancellationToken: Cooperative cancellation for in-flight calls
    - TypedModelError: The single failure type adapters raise
    - check_provider(): Out-of-band reachability probe
"""

from __future__ import annotations

import logging

from chatwire.cancellation import CancellationToken
from chatwire.classification import (
    is_format_rejection,
    is_non_retryable_error,
    normalize_model_error,
)
from chatwire.config import ModelConfig, ProviderConfig
from chatwire.errors import (
    ChatwireError,
    ConfigurationError,
    TypedModelError,
    error_payload,
)
from chatwire.factory import create_chat_model
from chatwire.providers.base import ChatModel
from chatwire.reachability import ReachabilityResult, check_provider
from chatwire.retry import RetryPolicy
from chatwire.structured import extract_json_object
from chatwire.types import (
    ImagePart,
    Message,
    ModelResponse,
    StreamChunk,
    StructuredResponse,
    TextPart,
    ToolCall,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("chatwire")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("chatwire").addHandler(logging.NullHandler())

__all__ = [
    "CancellationToken",
    "ChatModel",
    "ChatwireError",
    "ConfigurationError",
    "ImagePart",
    "Message",
    "ModelConfig",
    "ModelResponse",
    "ProviderConfig",
    "ReachabilityResult",
    "RetryPolicy",
    "StreamChunk",
    "StructuredResponse",
    "TextPart",
    "ToolCall",
    "TypedModelError",
    "__version__",
    "check_provider",
    "create_chat_model",
    "error_payload",
    "extract_json_object",
    "is_format_rejection",
    "is_non_retryable_error",
    "normalize_model_error",
]
