import json

import httpx
import pytest

from toolloop.config import Settings
from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ConfigurationError, ProviderError
from toolloop.providers import (
    AnthropicProvider,
    OllamaProvider,
    OpenAIProvider,
    create_provider,
    infer_provider,
    resolve_provider_name,
)

CONVERSATION = [
    Message(role="system", content="be brief"),
    Message(role="user", content="hello"),
    Message(role="assistant", content="hi"),
    Message(role="user", content="again"),
]


def _client(handler, requests: list[httpx.Request]) -> httpx.AsyncClient:
    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(_record))


@pytest.mark.asyncio
async def test_ollama_passes_system_role_through() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "pong"}, "done": True})

    async with _client(handler, requests) as client:
        provider = OllamaProvider(model="llama3", host="http://ollama.test/", client=client)
        response = await provider.complete(CONVERSATION)

    assert response == ProviderResponse(content="pong", done=True)
    assert str(requests[0].url) == "http://ollama.test/api/chat"
    body = json.loads(requests[0].content)
    assert body["model"] == "llama3"
    assert body["stream"] is False
    assert body["messages"][0] == {"role": "system", "content": "be brief"}
    assert len(body["messages"]) == 4


@pytest.mark.asyncio
async def test_ollama_done_flag_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": {"content": "partial"}, "done": False})

    async with _client(handler, []) as client:
        response = await OllamaProvider(client=client).complete(CONVERSATION)

    assert response == ProviderResponse(content="partial", done=False)


@pytest.mark.asyncio
async def test_openai_request_shape_and_response() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "answer"}}]})

    async with _client(handler, requests) as client:
        provider = OpenAIProvider(api_key="sk-test", base_url="https://llm.test", client=client)
        response = await provider.complete(CONVERSATION)

    assert response == ProviderResponse(content="answer", done=True)
    request = requests[0]
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"] == [message.as_dict() for message in CONVERSATION]


@pytest.mark.asyncio
async def test_anthropic_collapses_system_messages() -> None:
    requests: list[httpx.Request] = []
    conversation = [Message(role="system", content="rule one"), *CONVERSATION]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": [{"type": "text", "text": "claude says"}]})

    async with _client(handler, requests) as client:
        provider = AnthropicProvider(api_key="ak", base_url="https://anthropic.test", client=client)
        response = await provider.complete(conversation)

    assert response == ProviderResponse(content="claude says", done=True)
    request = requests[0]
    assert str(request.url) == "https://anthropic.test/v1/messages"
    assert request.headers["x-api-key"] == "ak"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["system"] == "rule one\nbe brief"
    assert body["max_tokens"] == 4096
    assert [item["role"] for item in body["messages"]] == ["user", "assistant", "user"]
    assert body["messages"][0]["content"] == [{"type": "text", "text": "hello"}]


@pytest.mark.asyncio
async def test_non_success_status_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    async with _client(handler, []) as client:
        provider = OpenAIProvider(api_key="sk", client=client)
        with pytest.raises(ProviderError, match="OpenAI error: HTTP 500: upstream exploded"):
            await provider.complete(CONVERSATION)


@pytest.mark.asyncio
async def test_malformed_body_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    async with _client(handler, []) as client:
        with pytest.raises(ProviderError, match="malformed"):
            await OllamaProvider(client=client).complete(CONVERSATION)


@pytest.mark.asyncio
async def test_unexpected_json_shape_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    async with _client(handler, []) as client:
        with pytest.raises(ProviderError, match="malformed"):
            await OpenAIProvider(api_key="sk", client=client).complete(CONVERSATION)


@pytest.mark.asyncio
async def test_transport_failure_raises_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler, []) as client:
        with pytest.raises(ProviderError, match="Ollama error: connection refused"):
            await OllamaProvider(client=client).complete(CONVERSATION)


def test_missing_credentials_fail_before_any_request() -> None:
    requests: list[httpx.Request] = []
    client = _client(lambda request: httpx.Response(200, json={}), requests)

    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY required"):
        OpenAIProvider(api_key=None, client=client)
    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY required"):
        AnthropicProvider(api_key="", client=client)
    assert requests == []


@pytest.mark.parametrize(
    ("model", "expected"),
    [
        ("gpt-4o-mini", "openai"),
        ("GPT-5", "openai"),
        ("o1-mini", "openai"),
        ("o3", "openai"),
        ("claude-3-haiku", "anthropic"),
        ("my-sonnet-build", "anthropic"),
        ("claude-opus-4", "anthropic"),
        ("mistral-small", None),
        ("", None),
        (None, None),
    ],
)
def test_infer_provider(model: str | None, expected: str | None) -> None:
    assert infer_provider(model) == expected


def test_explicit_provider_overrides_inference() -> None:
    assert resolve_provider_name("ollama", "gpt-4o") == "ollama"
    assert resolve_provider_name(None, "gpt-4o") == "openai"
    assert resolve_provider_name(None, None) == "ollama"
    with pytest.raises(ConfigurationError, match="Unknown provider"):
        resolve_provider_name("bard", None)


def test_create_provider_uses_settings_and_overrides() -> None:
    settings = Settings(
        _env_file=None,
        openai_api_key="from-settings",
        openai_base_url="https://proxy.test",
        anthropic_api_key=None,
    )

    provider = create_provider(settings, model="gpt-4o")
    assert isinstance(provider, OpenAIProvider)
    assert provider.model == "gpt-4o"
    assert provider.base_url == "https://proxy.test"

    with pytest.raises(ConfigurationError):
        create_provider(settings, provider="anthropic")

    anthropic = create_provider(settings, provider="anthropic", anthropic_api_key="cli-key")
    assert isinstance(anthropic, AnthropicProvider)
    assert anthropic.model == "claude-sonnet-4-5-20250929"


def test_create_provider_defaults_to_local_backend() -> None:
    settings = Settings(_env_file=None, ollama_host="http://gpu-box:11434")

    provider = create_provider(settings)
    assert isinstance(provider, OllamaProvider)
    assert provider.model == "mistral-small"
    assert provider.base_url == "http://gpu-box:11434"
