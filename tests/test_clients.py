import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from suppscore.adapters.claude_client import ClaudeClient
from suppscore.adapters.functions_client import FunctionsClient
from suppscore.errors import LLMHTTPError


@pytest.mark.asyncio
async def test_functions_client_success(fetcher_factory):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"title": "Quattro Protein"})

    client = FunctionsClient(base_url="https://fn.example/api/", api_key="anon-key",
                             fetcher=fetcher_factory(handler))
    response = await client.invoke("extract", {"url": "https://shop.example/p"}, timeout=5)

    assert response.ok
    assert response.data == {"title": "Quattro Protein"}
    request = seen[0]
    assert str(request.url) == "https://fn.example/api/extract"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"
    assert json.loads(request.content) == {"url": "https://shop.example/p"}


@pytest.mark.asyncio
async def test_functions_client_error_status(fetcher_factory):
    def handler(request):
        return httpx.Response(503, json={"error": "openrouter_quota", "message": "quota"})

    client = FunctionsClient(base_url="https://fn.example/api", api_key="", fetcher=fetcher_factory(handler))
    response = await client.invoke("score", {"title": "x"}, timeout=5)

    assert not response.ok
    assert response.status_code == 503
    assert response.error == "openrouter_quota"


@pytest.mark.asyncio
async def test_functions_client_non_json_error(fetcher_factory):
    def handler(request):
        return httpx.Response(500, text="<html>Internal error</html>")

    client = FunctionsClient(base_url="https://fn.example/api", fetcher=fetcher_factory(handler))
    response = await client.invoke("score", {"title": "x"}, timeout=5)

    assert response.data is None
    assert response.error == "http_500"


@pytest.mark.asyncio
async def test_functions_client_timeout(fetcher_factory):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = FunctionsClient(base_url="https://fn.example/api", fetcher=fetcher_factory(handler))
    response = await client.invoke("extract", {"url": "u"}, timeout=5)

    assert not response.ok
    assert response.status_code is None
    assert response.error == "timeout"


class FakeMessages:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def fake_anthropic(outcome):
    return SimpleNamespace(messages=FakeMessages(outcome))


@pytest.mark.asyncio
async def test_claude_client_joins_text_blocks():
    message = SimpleNamespace(
        content=[SimpleNamespace(type="text", text='{"score": '), SimpleNamespace(type="text", text="70}")],
        usage=SimpleNamespace(input_tokens=120, output_tokens=8),
    )
    sdk = fake_anthropic(message)
    client = ClaudeClient(client=sdk, model="claude-test")

    response = await client.complete_json("system", "user")

    assert response.content == '{"score": 70}'
    assert response.model == "claude-test"
    assert sdk.messages.kwargs["temperature"] == 0
    assert sdk.messages.kwargs["messages"] == [{"role": "user", "content": "user"}]


@pytest.mark.asyncio
async def test_claude_client_maps_status_errors():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    error = anthropic.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)
    client = ClaudeClient(client=fake_anthropic(error))

    with pytest.raises(LLMHTTPError) as excinfo:
        await client.complete_json("system", "user")
    assert excinfo.value.status_code == 429


def test_claude_client_without_key_is_unavailable():
    assert ClaudeClient(api_key="").is_available() is False
