"""HTTP completion client for OpenAI-compatible and Ollama endpoints."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Callable, Dict, Optional

from .llm_client import CompletionClient, CompletionOptions, LLMResponseFormatError, LLMTransportError

__all__ = ["DEFAULT_SYSTEM_PROMPT", "HTTPCompletionClient", "Transport"]


Transport = Callable[[str, Dict[str, Any]], str]

DEFAULT_SYSTEM_PROMPT = (
    "You are an autonomous coding agent. You plan and carry out changes in the user's workspace. "
    "When you create or modify files, emit each file in its own fenced code block whose first line "
    "is the workspace-relative file path."
)

_PROVIDERS = {"openai", "ollama"}


class HTTPCompletionClient(CompletionClient):
    """Thin adapter around chat-completions style HTTP APIs."""

    def __init__(
        self,
        *,
        provider: str = "openai",
        base_url: str = "http://localhost:11434",
        model: str = "llama3",
        api_key: Optional[str] = None,
        api_key_env: str | None = "OPENAI_API_KEY",
        timeout: float = 30.0,
        system_prompt: str | None = DEFAULT_SYSTEM_PROMPT,
        transport: Optional[Transport] = None,
    ) -> None:
        super().__init__(model=model, system_prompt=system_prompt)
        provider_key = provider.strip().lower()
        if provider_key not in _PROVIDERS:
            raise ValueError(f"Unsupported provider '{provider}'. Expected one of: {sorted(_PROVIDERS)}")
        self._provider = provider_key
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key or (os.getenv(api_key_env) if api_key_env else None)
        timeout_override = os.getenv("SMILE_AGENT_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                pass
        self._timeout = timeout
        self._transport = transport or self._http_transport

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def endpoint(self) -> str:
        """Return the fully-qualified URL requests are posted to."""
        if self._provider == "ollama":
            return f"{self._base_url}/api/generate"
        if self._base_url.endswith("/v1"):
            return f"{self._base_url}/chat/completions"
        return f"{self._base_url}/v1/chat/completions"

    def build_payload(self, prompt: str, options: CompletionOptions) -> Dict[str, Any]:
        """Render a transport-ready payload for the configured provider."""
        if self._provider == "ollama":
            sampling: Dict[str, Any] = {"temperature": options.temperature}
            if options.max_tokens is not None:
                sampling["num_predict"] = options.max_tokens
            full_prompt = prompt
            if self._system_prompt:
                full_prompt = f"{self._system_prompt}\n\nUser: {prompt}\n\nAssistant:"
            return {
                "model": self._model,
                "prompt": full_prompt,
                "stream": False,
                "options": sampling,
            }

        messages: list[Dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": prompt})
        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": options.temperature,
        }
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        return payload

    async def _raw_complete(self, prompt: str, options: CompletionOptions) -> str:
        """Send the request over the configured transport without blocking the loop."""
        payload = self.build_payload(prompt, options)
        try:
            raw_response = await asyncio.to_thread(self._transport, self.endpoint, payload)
        except LLMTransportError:
            raise
        except Exception as error:
            raise LLMTransportError(f"Transport rejected the request: {error}") from error

        text = self._extract_completion_text(raw_response)
        if text is None:
            raise LLMResponseFormatError(f"{self._provider} response did not contain completion text.")
        return text

    def _http_transport(self, url: str, payload: Dict[str, Any]) -> str:
        """Default HTTP transport built on urllib."""
        import urllib.error
        import urllib.request

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        request = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Request to {url} timed out after {self._timeout}s.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise LLMTransportError(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Failed to reach {url}: {error.reason}") from error

        if status >= 400:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Unexpected HTTP status {status}")

        return raw.decode("utf-8")

    def _extract_completion_text(self, raw_response: str) -> Optional[str]:
        """Pull the generated text out of the provider's JSON envelope."""
        if not raw_response or not raw_response.strip():
            return None

        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError:
            return raw_response

        if not isinstance(data, dict):
            return None

        error = data.get("error")
        if error:
            detail = error.get("message") if isinstance(error, dict) else error
            raise LLMTransportError(f"Backend reported an error: {detail}")

        response_text = data.get("response")
        if isinstance(response_text, str) and response_text.strip():
            return response_text

        choices = data.get("choices")
        if isinstance(choices, list):
            for choice in choices:
                if not isinstance(choice, dict):
                    continue
                message = choice.get("message")
                if isinstance(message, dict):
                    content = message.get("content")
                    if isinstance(content, str) and content.strip():
                        return content
                text = choice.get("text")
                if isinstance(text, str) and text.strip():
                    return text

        # Ollama chat endpoint shape.
        message = data.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str) and content.strip():
                return content

        return None
