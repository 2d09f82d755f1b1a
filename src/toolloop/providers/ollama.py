"""Ollama chat backend."""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

import httpx

from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ProviderError

from .base import DEFAULT_HTTP_TIMEOUT_SECONDS, HttpProvider

DEFAULT_MODEL = "mistral-small"
DEFAULT_HOST = "http://localhost:11434"


class OllamaProvider(HttpProvider):
    """Local Ollama server; system messages pass through unchanged."""

    name: ClassVar[str] = "ollama"
    label: ClassVar[str] = "Ollama"

    def __init__(
        self,
        *,
        model: str | None = None,
        host: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(
            model=model or DEFAULT_MODEL,
            base_url=host or DEFAULT_HOST,
            client=client,
            timeout_seconds=timeout_seconds,
        )

    async def complete(self, messages: Sequence[Message]) -> ProviderResponse:
        payload = {
            "model": self.model,
            "messages": [message.as_dict() for message in messages],
            "stream": False,
        }
        data = await self._post_json("/api/chat", payload, {"Content-Type": "application/json"})
        message = data.get("message")
        if message is not None and not isinstance(message, dict):
            raise ProviderError("Ollama error: malformed response body")
        content = (message or {}).get("content") or ""
        return ProviderResponse(content=str(content), done=bool(data.get("done", False)))
