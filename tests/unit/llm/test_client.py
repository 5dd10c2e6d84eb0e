"""Tests for the completion client: request shape, error mapping, retries and timeouts."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest
from tenacity import wait_none

from llm.client import LLMClient
from llm.config import LLMConfig, normalize_base_url
from llm.errors import (
    CompletionError,
    CompletionHTTPError,
    CompletionTimeoutError,
    EmptyCompletionError,
    MissingCredentialsError,
)
from memory.schema import SystemMessage, UserMessage

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def sdk_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def status_error(cls, status, body):
    return cls("error", response=httpx.Response(status, request=REQUEST), body=body)


@pytest.fixture
def client(monkeypatch):
    c = LLMClient(LLMConfig(api_key="sk-test", model="gpt-test"))
    create = AsyncMock(return_value=completion("hello"))
    monkeypatch.setattr(c.client.chat.completions, "create", create)
    monkeypatch.setattr(LLMClient._create.retry, "wait", wait_none())
    return c


@pytest.fixture
def messages():
    return [SystemMessage("sys"), UserMessage("hi")]


class TestLLMConfig:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, "https://api.openai.com/v1"),
            ("https://proxy.local/", "https://proxy.local/v1"),
            ("https://proxy.local/v1/", "https://proxy.local/v1"),
        ],
    )
    def test_normalize_base_url(self, raw, expected):
        assert normalize_base_url(raw) == expected

    def test_from_env(self, tmp_paths, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "https://gateway.example.com")
        config = LLMConfig.from_env(tmp_paths)

        assert config.api_key == "sk-test"
        assert config.model == "gpt-test"
        assert config.base_url == "https://gateway.example.com/v1"
        assert config.timeout == 90


class TestComplete:
    async def test_sends_wire_messages_and_tools(self, client, messages):
        tools = [{"type": "function", "function": {"name": "list_drive_files", "parameters": {}}}]

        reply = await client.complete(messages, tools)

        assert reply.content == "hello"
        assert reply.tool_calls is None
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]
        assert kwargs["tools"] == tools

    async def test_omits_tools_when_empty(self, client, messages):
        await client.complete(messages, None)
        assert "tools" not in client.client.chat.completions.create.call_args.kwargs

    async def test_converts_tool_calls_in_order(self, client, messages):
        client.client.chat.completions.create.return_value = completion(
            None,
            [sdk_tool_call("c1", "search_drive_files", '{"query": "a"}'), sdk_tool_call("c2", "read_drive_file", None)],
        )

        reply = await client.complete(messages)

        assert reply.content is None
        assert [(tc.id, tc.name, tc.arguments) for tc in reply.tool_calls] == [
            ("c1", "search_drive_files", '{"query": "a"}'),
            ("c2", "read_drive_file", ""),
        ]

    async def test_missing_api_key(self, messages):
        client = LLMClient(LLMConfig(api_key=""))
        with pytest.raises(MissingCredentialsError, match="Missing API key"):
            await client.complete(messages)

    async def test_empty_choices(self, client, messages):
        client.client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with pytest.raises(EmptyCompletionError, match="No message in response."):
            await client.complete(messages)


class TestErrors:
    async def test_bad_request_is_not_retried(self, client, messages):
        create = client.client.chat.completions.create
        create.side_effect = status_error(openai.BadRequestError, 400, {"error": {"message": "Invalid tool schema"}})

        with pytest.raises(CompletionHTTPError) as excinfo:
            await client.complete(messages)

        assert excinfo.value.status == 400
        assert excinfo.value.message == "HTTP 400: Invalid tool schema"
        assert create.await_count == 1

    async def test_rate_limit_is_retried(self, client, messages):
        create = client.client.chat.completions.create
        create.side_effect = [
            status_error(openai.RateLimitError, 429, {"error": {"message": "slow down"}}),
            completion("after retry"),
        ]

        reply = await client.complete(messages)

        assert reply.content == "after retry"
        assert create.await_count == 2

    async def test_server_error_gives_up_after_three_attempts(self, client, messages):
        create = client.client.chat.completions.create
        create.side_effect = status_error(openai.InternalServerError, 503, None)

        with pytest.raises(CompletionHTTPError, match="HTTP 503: Request failed."):
            await client.complete(messages)
        assert create.await_count == 3

    async def test_connection_error(self, client, messages):
        client.client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(CompletionError, match="Connection error"):
            await client.complete(messages)

    async def test_timeout(self, client, messages):
        async def slow(**kwargs):
            await asyncio.sleep(5)

        client.config.timeout = 0.05
        client.client.chat.completions.create.side_effect = slow

        with pytest.raises(CompletionTimeoutError, match="Request timed out."):
            await client.complete(messages)
