"""Shared provider plumbing."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, ClassVar, Protocol

import httpx
from loguru import logger

from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ProviderError

DEFAULT_HTTP_TIMEOUT_SECONDS = 120.0
ERROR_BODY_PREVIEW_CHARS = 200


class Provider(Protocol):
    """One chat-completion backend."""

    name: str
    model: str

    async def complete(self, messages: Sequence[Message]) -> ProviderResponse: ...


class HttpProvider:
    """Base for providers that POST JSON to a chat endpoint."""

    name: ClassVar[str] = "http"
    label: ClassVar[str] = "HTTP"

    def __init__(
        self,
        *,
        model: str,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout_seconds = timeout_seconds

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, base_url={self.base_url!r})"

    async def _post_json(self, path: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("provider.request provider={} model={} url={}", self.name, self.model, url)
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.label} error: {exc!s}") from exc

        if not response.is_success:
            preview = response.text[:ERROR_BODY_PREVIEW_CHARS]
            raise ProviderError(f"{self.label} error: HTTP {response.status_code}: {preview}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"{self.label} error: malformed response body") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"{self.label} error: malformed response body")
        return data
