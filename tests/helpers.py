"""Test doubles: scripted completion client, fake storage backend, tool-call builders."""

import json
from typing import Any, Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock

from memory.schema import AssistantMessage, Message, ToolCall
from storage.base import HttpResponse, StorageBackend


CONFIG_KEYS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "OPENAI_PROJECT",
    "OPENAI_ORGANIZATION",
    "GOOGLE_SERVICE_ACCOUNT_FILE",
    "GOOGLE_DRIVE_FOLDER_ID",
    "MICROSOFT_TENANT_ID",
    "MICROSOFT_CLIENT_ID",
    "MICROSOFT_CLIENT_SECRET",
    "MICROSOFT_DRIVE_ID",
    "MICROSOFT_SITE_ID",
    "MICROSOFT_USER_ID",
)


Reply = Union[AssistantMessage, Exception, Callable[[int], AssistantMessage]]


class ScriptedCompletionClient:
    """Returns queued replies in order; a callable default answers once the queue is empty."""

    def __init__(self, replies: Optional[List[Reply]] = None, default: Optional[Callable[[int], AssistantMessage]] = None):
        self.replies = list(replies or [])
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages: List[Message], tools=None) -> AssistantMessage:
        self.calls.append({"messages": [m.to_dict() for m in messages], "tools": tools})
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default(len(self.calls))
        else:
            raise AssertionError("no scripted reply left")
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeBackend(StorageBackend):
    """In-memory backend that records every call."""

    name = "fake"

    def __init__(self, configured: bool = True, error: Optional[Exception] = None, content: str = "hello"):
        super().__init__(http=AsyncMock())
        self.configured = configured
        self.error = error
        self.content = content
        self.calls: List[tuple] = []

    def is_configured(self) -> bool:
        return self.configured

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    async def list_files(self, folder_id=None, **options) -> str:
        self.calls.append(("list", folder_id, options))
        self._maybe_fail()
        return json.dumps({"files": [{"id": "f1", "name": "a.txt"}]})

    async def search_files(self, query, **options) -> str:
        self.calls.append(("search", query, options))
        self._maybe_fail()
        return json.dumps({"files": [{"id": "f2", "name": f"{query}.txt"}]})

    async def read_file(self, item_id, **options) -> str:
        self.calls.append(("read", item_id, options))
        self._maybe_fail()
        return json.dumps({"file": {"id": item_id}, "content": self.content})


def tool_call(call_id: str, name: str, arguments: Any = "") -> ToolCall:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return ToolCall(id=call_id, name=name, arguments=arguments)


def tool_reply(*calls: ToolCall, content: Optional[str] = None) -> AssistantMessage:
    return AssistantMessage(content=content, tool_calls=list(calls))


class FakeHttp:
    """
    URL-routed stand-in for http_request.

    Routes are (method, url fragment, response) tuples matched in order;
    a response may be an Exception to raise or a list consumed one item per call.
    """

    def __init__(self, routes=None):
        self.routes: List[tuple] = list(routes or [])
        self.requests: List[Dict[str, Any]] = []

    def add(self, method: str, fragment: str, response) -> "FakeHttp":
        self.routes.append((method, fragment, response))
        return self

    async def __call__(self, method, url, *, headers=None, data=None, json_body=None, timeout=None):
        self.requests.append({
            "method": method,
            "url": url,
            "headers": headers or {},
            "data": data,
            "json": json_body,
            "timeout": timeout,
        })
        for route_method, fragment, response in self.routes:
            if route_method == method and fragment in url:
                if isinstance(response, list):
                    response = response.pop(0) if len(response) > 1 else response[0]
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"unexpected request: {method} {url}")

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [r["url"] for r in self.requests if method is None or r["method"] == method]


def json_response(payload: Any, status: int = 200) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload).encode("utf-8"))
