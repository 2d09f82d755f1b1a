"""Anthropic messages backend."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, ClassVar

import httpx

from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ConfigurationError, ProviderError

from .base import DEFAULT_HTTP_TIMEOUT_SECONDS, HttpProvider

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


def to_wire_messages(messages: Sequence[Message]) -> tuple[str, list[dict[str, Any]]]:
    """Collapse system messages into one preamble; everything else becomes user/assistant blocks."""

    system = "\n".join(message.content for message in messages if message.role == "system")
    convo = [
        {
            "role": "assistant" if message.role == "assistant" else "user",
            "content": [{"type": "text", "text": message.content}],
        }
        for message in messages
        if message.role != "system"
    ]
    return system, convo


class AnthropicProvider(HttpProvider):
    """Anthropic ``/v1/messages``; only a single system slot is available."""

    name: ClassVar[str] = "anthropic"
    label: ClassVar[str] = "Anthropic"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str | None = None,
        base_url: str | None = None,
        version: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY required")
        super().__init__(
            model=model or DEFAULT_MODEL,
            base_url=base_url or DEFAULT_BASE_URL,
            client=client,
            timeout_seconds=timeout_seconds,
        )
        self._api_key = api_key
        self._version = version or DEFAULT_VERSION
        self._max_tokens = max_tokens

    async def complete(self, messages: Sequence[Message]) -> ProviderResponse:
        system, convo = to_wire_messages(messages)
        payload: dict[str, Any] = {"model": self.model, "max_tokens": self._max_tokens, "messages": convo}
        if system:
            payload["system"] = system
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": self._version,
        }
        data = await self._post_json("/v1/messages", payload, headers)
        parts = data.get("content") or []
        if not isinstance(parts, list):
            raise ProviderError("Anthropic error: malformed response body")
        text = next((part["text"] for part in parts if isinstance(part, dict) and part.get("text")), "")
        return ProviderResponse(content=text, done=True)
