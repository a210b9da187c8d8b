"""Convenience exports for completion client implementations."""

from .http_client import HTTPCompletionClient
from .llm_client import (
    CompletionClient,
    CompletionOptions,
    LLMClientError,
    LLMResponseFormatError,
    LLMTransportError,
)

__all__ = [
    "CompletionClient",
    "CompletionOptions",
    "HTTPCompletionClient",
    "LLMClientError",
    "LLMResponseFormatError",
    "LLMTransportError",
]
