"""
Model Client and Provider Router Tests
--------------------------------------
Chat completion parsing, error mapping and provider configuration.
"""

import pytest
from pathlib import Path
import json
import sys

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.client import (
    ChatCompletionClient,
    ClientConfig,
    MockModelClient,
    ModelReply,
)
from core.errors import ConfigError, ModelError
from core.providers import LLMProviderRouter, Provider, ProviderConfig


def _client(handler, api_key="sk-test"):
    config = ClientConfig(name="test", base_url="https://llm.test/v1/", model="m-1", api_key=api_key)
    return ChatCompletionClient(config, transport=httpx.MockTransport(handler))


def _completion(message, model="m-1"):
    return {"model": model, "choices": [{"message": message}]}


class TestChatCompletionClient:
    @pytest.mark.asyncio
    async def test_request_body_and_headers(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion({"content": "hello"}))

        tools = [{"type": "function", "function": {"name": "echo", "description": "", "parameters": {}}}]
        reply = await _client(handler).complete("sys", "user", tools=tools, temperature=0.1, max_tokens=50)

        assert reply.text == "hello"
        assert reply.tool_calls == []
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert seen["body"]["tools"] == tools
        assert seen["body"]["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_no_key_no_auth_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=_completion({"content": "x"}))

        await _client(handler, api_key=None).complete("s", "u")

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_tool_calls_parsed(self):
        def handler(request):
            return httpx.Response(200, json=_completion({
                "content": None,
                "tool_calls": [
                    {"id": "c1", "type": "function",
                     "function": {"name": "read_file", "arguments": "{\"path\": \"a.txt\"}"}},
                    {"id": "c2", "type": "function",
                     "function": {"name": "list_directory", "arguments": ""}},
                ],
            }))

        reply = await _client(handler).complete("s", "u")

        assert reply.text == ""
        assert [(c.id, c.name, c.arguments) for c in reply.tool_calls] == [
            ("c1", "read_file", {"path": "a.txt"}),
            ("c2", "list_directory", {}),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,fragment", [
        (429, "rate limit"),
        (401, "authentication failed"),
        (403, "authentication failed"),
        (500, "unexpected status 500"),
    ])
    async def test_http_errors(self, status, fragment):
        def handler(request):
            return httpx.Response(status, json={"error": "nope"})

        with pytest.raises(ModelError, match=fragment) as exc_info:
            await _client(handler).complete("s", "u")
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        def handler(request):
            return httpx.Response(200, text="not json")

        with pytest.raises(ModelError, match="malformed"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(ModelError, match="no choices"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_non_object_arguments(self):
        def handler(request):
            return httpx.Response(200, json=_completion({"tool_calls": [
                {"function": {"name": "t", "arguments": "[1, 2]"}},
            ]}))

        with pytest.raises(ModelError, match="not an object"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_invalid_json_arguments(self):
        def handler(request):
            return httpx.Response(200, json=_completion({"tool_calls": [
                {"function": {"name": "t", "arguments": "{broken"}},
            ]}))

        with pytest.raises(ModelError, match="Invalid JSON"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ModelError, match="network error"):
            await _client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ModelError, match="timed out"):
            await _client(handler).complete("s", "u")


class TestMockModelClient:
    @pytest.mark.asyncio
    async def test_replies_in_order_then_repeat_last(self):
        client = MockModelClient([ModelReply(text="one"), ModelReply(text="two")])

        texts = [(await client.complete("s", "u")).text for _ in range(3)]

        assert texts == ["one", "two", "two"]
        assert len(client.requests) == 3

    @pytest.mark.asyncio
    async def test_records_tools(self):
        client = MockModelClient()
        await client.complete("s", "u", tools=[{"function": {"name": "x"}}])

        assert client.requests[0]["tools"] == [{"function": {"name": "x"}}]


class TestProviderRouter:
    def test_default_catalog(self):
        router = LLMProviderRouter()
        ids = [p.id for p in router.get_providers()]

        assert ids[0] == "openai"
        assert "ollama" in ids
        assert router.get_configured_providers() == []

    def test_configure_with_key(self):
        router = LLMProviderRouter()
        router.configure_provider("openai", ProviderConfig(name="openai", api_key="sk"))

        assert [p.id for p in router.get_configured_providers()] == ["openai"]

    def test_missing_key_leaves_unconfigured(self):
        router = LLMProviderRouter()
        router.configure_provider("openai", ProviderConfig(name="openai"))

        assert router.get_provider("openai").is_configured is False

    def test_keyless_provider(self):
        router = LLMProviderRouter()
        router.configure_provider("ollama", ProviderConfig(name="ollama"))

        client = router.create_client("ollama")

        assert client.config.base_url == "http://localhost:11434/v1"
        assert client.config.model == "llama3.2"

    def test_unknown_provider(self):
        with pytest.raises(ConfigError):
            LLMProviderRouter().configure_provider("nope", ProviderConfig(name="nope"))

    def test_create_client_requires_configuration(self):
        with pytest.raises(ConfigError, match="not configured"):
            LLMProviderRouter().create_client("openai")

    def test_create_client_overrides(self):
        router = LLMProviderRouter()
        router.configure_provider("openai", ProviderConfig(
            name="openai", api_key="sk", base_url="https://proxy.test/v1", model="gpt-4o"
        ))

        default = router.create_client("openai")
        explicit = router.create_client("openai", "gpt-4o-mini")

        assert default.config.base_url == "https://proxy.test/v1"
        assert default.config.model == "gpt-4o"
        assert explicit.config.model == "gpt-4o-mini"
        assert explicit.config.api_key == "sk"

    def test_no_model_available(self):
        router = LLMProviderRouter(providers=[Provider("bare", "Bare", "https://bare.test", models=[])])
        router.configure_provider("bare", ProviderConfig(name="bare", api_key="k"))

        with pytest.raises(ConfigError, match="No model"):
            router.create_client("bare")

    def test_routers_do_not_share_state(self):
        first = LLMProviderRouter()
        first.configure_provider("openai", ProviderConfig(name="openai", api_key="sk"))

        assert LLMProviderRouter().get_provider("openai").is_configured is False
