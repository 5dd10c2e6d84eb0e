"""Tests for the HTTP and WebSocket routes."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agent.session import AgentSession
from api.routes import chat, guides, settings
from helpers import FakeBackend, ScriptedCompletionClient, tool_call, tool_reply
from llm.errors import CompletionError
from memory.schema import AssistantMessage


def build_app() -> FastAPI:
    app = FastAPI()
    app.include_router(chat.router, prefix="/api")
    app.include_router(guides.router, prefix="/api")
    app.include_router(settings.router, prefix="/api")
    return app


@pytest.fixture
def completion_client():
    return ScriptedCompletionClient(default=lambda n: AssistantMessage(content=f"answer {n}"))


@pytest.fixture
def session(tmp_paths, completion_client):
    s = AgentSession(
        tmp_paths,
        llm_client=completion_client,
        drive=FakeBackend(),
        onedrive=FakeBackend(configured=False),
    )
    s.restore()
    chat.set_session(s)
    yield s
    chat.set_session(None)


@pytest.fixture
def client(session):
    with TestClient(build_app()) as c:
        yield c


class TestChatRoutes:
    def test_chat(self, client, session):
        response = client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 200
        assert response.json() == {"response": "answer 1", "chat_id": session.chat_id}

    def test_empty_message(self, client):
        response = client.post("/api/chat", json={"message": "   "})
        assert response.status_code == 400

    def test_busy(self, client, session):
        session._in_flight = True
        response = client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 409
        assert response.json()["detail"] == "Previous request still running."

    def test_completion_failure(self, client, completion_client):
        completion_client.replies.append(CompletionError("HTTP 401: Incorrect API key provided"))

        response = client.post("/api/chat", json={"message": "hello"})

        assert response.status_code == 502
        assert response.json()["detail"] == "HTTP 401: Incorrect API key provided"

    def test_new_chat_and_history(self, client, session):
        client.post("/api/chat", json={"message": "first question"})
        old_id = session.chat_id

        response = client.post("/api/chat/new")

        body = response.json()
        assert body["chat_id"] != old_id
        assert body["welcome_message"].startswith("Welcome to ApertureAI")
        chats = client.get("/api/chat/history").json()["chats"]
        assert [(c["id"], c["title"], c["isCurrent"]) for c in chats] == [(old_id, "first question", False)]

    def test_load_chat(self, client, session):
        client.post("/api/chat", json={"message": "alpha"})
        alpha_id = session.chat_id
        client.post("/api/chat/new")

        response = client.post(f"/api/chat/load/{alpha_id}")

        assert response.status_code == 200
        assert response.json()["display_messages"] == [
            {"text": "alpha", "isUser": True},
            {"text": "answer 1", "isUser": False},
        ]

    def test_load_unknown_chat(self, client):
        assert client.post("/api/chat/load/nope").status_code == 404


class TestGuideAndSettingsRoutes:
    def test_list_guides(self, client):
        guides_list = client.get("/api/guides").json()["guides"]
        assert guides_list[0]["id"] == "factory_reset_windows_pc"
        assert client.get("/api/guides", params={"q": "printer"}).json() == {"guides": []}

    def test_apply_and_clear_guide(self, client, session):
        response = client.post("/api/guides/apply", json={"guide_id": "factory_reset_windows_pc"})
        assert response.json() == {"ok": True, "applied": True}
        assert session.messages[1].content.startswith("[ApertureAI Guide Context]")

        response = client.post("/api/guides/apply", json={})
        assert response.json() == {"ok": True, "applied": False}
        assert len(session.messages) == 1

    def test_apply_guide_while_busy(self, client, session):
        session._in_flight = True
        response = client.post("/api/guides/apply", json={"guide_id": "factory_reset_windows_pc"})
        assert response.status_code == 409

    def test_settings(self, client):
        body = client.get("/api/settings").json()
        assert body["hasApiKey"] is True
        assert body["hasDrive"] is True
        assert body["hasOneDrive"] is False
        assert body["model"] == "gpt-test"
        assert "OPENAI_API_KEY" not in str(body)


class TestWebSocket:
    def test_ping(self, client):
        with client.websocket_connect("/api/ws/chat") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_progress_then_done(self, client, session, completion_client):
        completion_client.replies.extend([
            tool_reply(tool_call("c1", "search_drive_files", {"query": "plan"})),
            AssistantMessage(content="Found it."),
        ])

        with client.websocket_connect("/api/ws/chat") as ws:
            ws.send_json({"type": "message", "content": "find the plan", "request_id": "r1"})
            events = [ws.receive_json() for _ in range(3)]

        assert events == [
            {"type": "thinking", "text": "Searching Drive...", "request_id": "r1"},
            {"type": "thinking", "text": "Thinking...", "request_id": "r1"},
            {"type": "done", "response": "Found it.", "chat_id": session.chat_id, "request_id": "r1"},
        ]

    def test_error_event(self, client):
        with client.websocket_connect("/api/ws/chat") as ws:
            ws.send_json({"type": "message", "content": "", "request_id": "r2"})
            event = ws.receive_json()

        assert event == {"type": "error", "message": "Message is empty.", "request_id": "r2"}

    def test_busy_rejection(self, client, session):
        session._in_flight = True
        with client.websocket_connect("/api/ws/chat") as ws:
            ws.send_json({"type": "message", "content": "hello", "request_id": "r3"})
            event = ws.receive_json()

        assert event == {"type": "error", "message": "Previous request still running", "request_id": "r3"}


class StalledSession:
    """Session stand-in whose turn never finishes on its own."""

    chat_id = "c-stalled"

    def __init__(self):
        self.started = asyncio.Event()

    async def send(self, text, notifier=None):
        notifier("Searching Drive...")
        self.started.set()
        await asyncio.Event().wait()


class TestProcessOneMessage:
    async def test_cancel_stops_progress_forwarder(self):
        session = StalledSession()
        events = []

        async def send_json(event):
            events.append(event)

        task = asyncio.create_task(chat.process_one_message(session, {"content": "hi", "request_id": "r9"}, send_json))
        await session.started.wait()
        await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)

        assert [t for t in asyncio.all_tasks() if t.get_name() == "ws-progress-r9"] == []
        assert all(e["type"] == "thinking" for e in events)

    async def test_done_after_progress(self):
        async def send(text, notifier=None):
            notifier("Reading file...")
            return "Done reading."

        session = AsyncMock()
        session.send.side_effect = send
        session.chat_id = "c1"
        events = []

        async def send_json(event):
            events.append(event)

        await chat.process_one_message(session, {"content": "read it", "request_id": "r10"}, send_json)

        assert events == [
            {"type": "thinking", "text": "Reading file...", "request_id": "r10"},
            {"type": "done", "response": "Done reading.", "chat_id": "c1", "request_id": "r10"},
        ]
