"""Chat-completion backends and provider selection."""

from __future__ import annotations

import re

import httpx

from toolloop.config import Settings
from toolloop.errors import ConfigurationError

from .anthropic import AnthropicProvider
from .base import HttpProvider, Provider
from .ollama import OllamaProvider
from .openai import OpenAIProvider

PROVIDERS = ("ollama", "openai", "anthropic")
DEFAULT_PROVIDER = "ollama"

OPENAI_MODEL_RE = re.compile(r"^(gpt-[345]|o[1-9])")
ANTHROPIC_MODEL_RE = re.compile(r"^claude|sonnet|haiku|opus")


def infer_provider(model: str | None) -> str | None:
    """Guess the backend family from a model name; None when nothing matches."""

    name = (model or "").strip().lower()
    if OPENAI_MODEL_RE.search(name):
        return "openai"
    if ANTHROPIC_MODEL_RE.search(name):
        return "anthropic"
    return None


def resolve_provider_name(provider: str | None, model: str | None) -> str:
    """Explicit provider wins, then inference from the model name, then the local default."""

    explicit = (provider or "").strip().lower()
    if explicit:
        if explicit not in PROVIDERS:
            raise ConfigurationError(f"Unknown provider: {provider} (expected one of {', '.join(PROVIDERS)})")
        return explicit
    return infer_provider(model) or DEFAULT_PROVIDER


def create_provider(
    settings: Settings,
    *,
    model: str | None = None,
    provider: str | None = None,
    openai_api_key: str | None = None,
    anthropic_api_key: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Provider:
    """Build the adapter for the selected backend; keyword arguments override settings."""

    model = model or settings.model
    name = resolve_provider_name(provider or settings.provider, model)
    timeout = settings.model_timeout_seconds
    if name == "openai":
        return OpenAIProvider(
            api_key=openai_api_key or settings.openai_api_key,
            model=model,
            base_url=settings.openai_base_url,
            client=client,
            timeout_seconds=timeout,
        )
    if name == "anthropic":
        return AnthropicProvider(
            api_key=anthropic_api_key or settings.anthropic_api_key,
            model=model,
            base_url=settings.anthropic_base_url,
            version=settings.anthropic_version,
            client=client,
            timeout_seconds=timeout,
        )
    return OllamaProvider(model=model, host=settings.ollama_host, client=client, timeout_seconds=timeout)


__all__ = [
    "PROVIDERS",
    "AnthropicProvider",
    "HttpProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "Provider",
    "create_provider",
    "infer_provider",
    "resolve_provider_name",
]
