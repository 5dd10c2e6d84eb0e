"""Tests for message wire format and tool call parsing."""

import pytest

from memory.schema import (
    AssistantMessage,
    ChatRecord,
    ChatState,
    Message,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)


class TestToolCall:
    @pytest.mark.parametrize("raw", ["", "not json", "[1, 2]", "42"])
    def test_invalid_arguments_parse_to_empty_dict(self, raw):
        assert ToolCall(id="c", name="t", arguments=raw).parse_arguments() == {}

    def test_parse_arguments(self):
        tc = ToolCall(id="c", name="search_drive_files", arguments='{"query": "q3"}')
        assert tc.parse_arguments() == {"query": "q3"}

    def test_from_dict_accepts_flat_and_object_arguments(self):
        tc = ToolCall.from_dict({"id": "c1", "name": "read_drive_file", "arguments": {"file_id": "f"}})
        assert tc.name == "read_drive_file"
        assert tc.parse_arguments() == {"file_id": "f"}


class TestMessage:
    def test_assistant_with_tool_calls_omits_content(self):
        msg = AssistantMessage(tool_calls=[ToolCall(id="c1", name="list_drive_files", arguments="{}")])
        data = msg.to_dict()

        assert "content" not in data
        assert data["tool_calls"][0] == {
            "id": "c1",
            "type": "function",
            "function": {"name": "list_drive_files", "arguments": "{}"},
        }

    def test_tool_message_carries_call_id(self):
        assert ToolMessage("out", "c1").to_dict() == {"role": "tool", "content": "out", "tool_call_id": "c1"}

    def test_from_dict_dispatches_by_role(self):
        assert isinstance(Message.from_dict({"role": "system", "content": "s"}), SystemMessage)
        assert isinstance(Message.from_dict({"role": "user", "content": "u"}), UserMessage)
        restored = Message.from_dict({
            "role": "assistant",
            "content": None,
            "tool_calls": [{"id": "c1", "type": "function", "function": {"name": "x", "arguments": ""}}],
        })
        assert isinstance(restored, AssistantMessage)
        assert restored.tool_calls[0].id == "c1"

    def test_copy_with_leaves_original(self):
        original = UserMessage("before")
        clone = original.copy_with("after")

        assert original.content == "before"
        assert clone.content == "after"
        assert isinstance(clone, UserMessage)

    def test_text_of_missing_content(self):
        assert AssistantMessage(content=None).text == ""


class TestChatState:
    def test_round_trip_keys(self):
        state = ChatState(
            current_chat_id="abc",
            messages=[SystemMessage("s"), UserMessage("u")],
            chat_history=[ChatRecord(id="old", title="t", timestamp=1.0, messages=[UserMessage("x")])],
        )
        data = state.to_dict()

        assert data["version"] == 1
        assert data["currentChatId"] == "abc"
        restored = ChatState.from_dict(data)
        assert restored.messages[1].content == "u"
        assert restored.chat_history[0].messages[0].content == "x"

    def test_from_dict_tolerates_bad_fields(self):
        state = ChatState.from_dict({"currentConversationMessages": "nope", "chatHistory": None})
        assert state.messages == []
        assert state.chat_history == []
