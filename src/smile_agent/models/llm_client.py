"""Completion client base class shared by all generative backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

__all__ = [
    "CompletionClient",
    "CompletionOptions",
    "LLMClientError",
    "LLMResponseFormatError",
    "LLMTransportError",
]

LOGGER = logging.getLogger(__name__)


class LLMClientError(RuntimeError):
    """Base error raised for completion client failures."""


class LLMTransportError(LLMClientError):
    """Raised when the underlying transport fails to return a response."""


class LLMResponseFormatError(LLMClientError):
    """Raised when the backend returns a payload without completion text."""


@dataclass(slots=True, frozen=True)
class CompletionOptions:
    """Sampling options forwarded to the backend for a single call."""

    temperature: float = 0.4
    max_tokens: int | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"temperature": self.temperature}
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


class CompletionClient:
    """Text-in, text-out client. Subclasses implement :meth:`_raw_complete`."""

    def __init__(self, model: str, *, system_prompt: str | None = None) -> None:
        self._model = model
        self._system_prompt = system_prompt

    @property
    def model(self) -> str:
        """Return the default model name configured for this client."""
        return self._model

    async def complete(self, prompt: str, options: CompletionOptions | None = None) -> str:
        """Return the completion text for ``prompt``."""
        options = options or CompletionOptions()
        LOGGER.debug(
            "Requesting completion from %s (temperature=%s, max_tokens=%s, %d prompt chars)",
            self._model,
            options.temperature,
            options.max_tokens,
            len(prompt),
        )
        text = await self._raw_complete(prompt, options)
        if not isinstance(text, str) or not text.strip():
            raise LLMResponseFormatError(f"Model {self._model} returned an empty completion.")
        return text

    async def _raw_complete(self, prompt: str, options: CompletionOptions) -> str:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_complete().")
