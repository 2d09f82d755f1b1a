"""OpenAI chat-completions backend."""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

import httpx

from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ConfigurationError, ProviderError

from .base import DEFAULT_HTTP_TIMEOUT_SECONDS, HttpProvider

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com"


class OpenAIProvider(HttpProvider):
    """OpenAI-compatible ``/v1/chat/completions``; native system role."""

    name: ClassVar[str] = "openai"
    label: ClassVar[str] = "OpenAI"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY required")
        super().__init__(
            model=model or DEFAULT_MODEL,
            base_url=base_url or DEFAULT_BASE_URL,
            client=client,
            timeout_seconds=timeout_seconds,
        )
        self._api_key = api_key

    async def complete(self, messages: Sequence[Message]) -> ProviderResponse:
        payload = {
            "model": self.model,
            "messages": [message.as_dict() for message in messages],
            "stream": False,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        data = await self._post_json("/v1/chat/completions", payload, headers)
        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ProviderError("OpenAI error: malformed response body") from exc
        return ProviderResponse(content=content or "", done=True)
