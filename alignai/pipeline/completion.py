"""Completion provider abstraction for AlignAI.

The CompletionProvider interface has two calls:

- complete(system_prompt, user_prompt, ...) -> str
- stream(system_prompt, user_prompt, ...)   -> async iterator of text fragments

AnthropicCompletionProvider implements both against the Anthropic Messages
API over httpx.  Every failure (missing key, timeout, transport error, HTTP
error status, response without a text block) is raised as LLMProviderError;
nothing is retried here; retry policy belongs to the caller.

Exports: CompletionProvider, AnthropicCompletionProvider, get_completion_provider
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator

import httpx

from alignai.errors import LLMProviderError

logger = logging.getLogger(__name__)

_ANTHROPIC_VERSION = "2023-06-01"


class CompletionProvider(ABC):
    """Abstract interface for text-completion providers.

    ``model``, ``max_tokens``, ``temperature`` and ``timeout`` default to the
    provider's configured values when None.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> str:
        ...

    @abstractmethod
    def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[str]:
        """Yield text fragments as they arrive.  The iterator cannot be restarted."""
        ...


class AnthropicCompletionProvider(CompletionProvider):
    """CompletionProvider backed by the Anthropic Messages API.

    Args:
        api_key:     Anthropic API key.  Empty → every call raises LLMProviderError.
        model:       Default model identifier.
        max_tokens:  Default max_tokens.
        temperature: Default sampling temperature.
        timeout:     Default per-request timeout in seconds.
        base_url:    API root, without trailing slash.
        transport:   Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 60.0,
        base_url: str = "https://api.anthropic.com/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise LLMProviderError("No LLM API key configured")
        return {
            "x-api-key": self._api_key,
            "anthropic-version": _ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def _payload(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str | None,
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict:
        return {
            "model": model or self._model,
            "max_tokens": max_tokens if max_tokens is not None else self._max_tokens,
            "temperature": temperature if temperature is not None else self._temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

    # ------------------------------------------------------------------
    # CompletionProvider interface
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> str:
        headers = self._headers()
        payload = self._payload(system_prompt, user_prompt, model, max_tokens, temperature)
        timeout = timeout if timeout is not None else self._timeout

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(f"{self._base_url}/messages", headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise LLMProviderError(f"LLM API call timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise LLMProviderError(f"LLM API error: {exc}") from exc
        except ValueError as exc:
            raise LLMProviderError(f"LLM API returned invalid JSON: {exc}") from exc

        # Anthropic messages API: content is a list of typed blocks
        for block in data.get("content") or []:
            if block.get("type") == "text":
                usage = data.get("usage") or {}
                logger.debug(
                    "LLM completion: model=%s input_tokens=%s output_tokens=%s",
                    payload["model"],
                    usage.get("input_tokens"),
                    usage.get("output_tokens"),
                )
                return block.get("text", "")
        raise LLMProviderError("No text content in LLM response")

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[str]:
        headers = self._headers()
        payload = self._payload(system_prompt, user_prompt, model, max_tokens, temperature)
        payload["stream"] = True
        timeout = timeout if timeout is not None else self._timeout

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST", f"{self._base_url}/messages", headers=headers, json=payload
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        # SSE framing: only "data:" lines carry event payloads
                        if not line.startswith("data:"):
                            continue
                        try:
                            event = json.loads(line[len("data:"):].strip())
                        except json.JSONDecodeError:
                            logger.warning("LLM stream: skipping undecodable event %.200s", line)
                            continue
                        if event.get("type") == "error":
                            raise LLMProviderError(f"LLM stream error: {event.get('error')}")
                        if event.get("type") == "content_block_delta":
                            delta = event.get("delta") or {}
                            if delta.get("type") == "text_delta":
                                yield delta.get("text", "")
                        elif event.get("type") == "message_stop":
                            return
        except httpx.TimeoutException as exc:
            raise LLMProviderError(f"LLM stream timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise LLMProviderError(f"LLM stream error: {exc}") from exc


# ---------------------------------------------------------------------------
# Module-level singleton accessor
# ---------------------------------------------------------------------------


class _CompletionSingleton:
    _instance: CompletionProvider | None = None


def get_completion_provider() -> CompletionProvider:
    """Return the process-wide completion provider, built from settings on first call."""
    if _CompletionSingleton._instance is None:
        from alignai.config import settings  # lazy import: avoid circular deps

        _CompletionSingleton._instance = AnthropicCompletionProvider(
            api_key=settings.anthropic_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
            base_url=settings.anthropic_base_url,
        )
    return _CompletionSingleton._instance
