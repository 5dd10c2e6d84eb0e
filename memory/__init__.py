"""
Memory 模块 - 会话数据与上下文管理

结构：
- schema.py: 数据模型（Message, ToolCall, ChatRecord, ChatState, TurnState）
- compressor.py: 上下文压缩器（头尾截断 + 按阈值重建会话）
- journal.py: 记忆日志（有界先进先出的问答摘要）
- manager.py: 聊天状态持久化（chat_state.json）
"""
from memory.schema import (
    Message,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
    ToolCall,
    ChatRecord,
    ChatState,
    AgentStatus,
    TurnState,
)
from memory.compressor import CompactionPolicy, Compressor, compress_text
from memory.journal import MemoryJournal
from memory.manager import ChatStateManager, archive_chat

__all__ = [
    # 数据模型
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolCall",
    "ChatRecord",
    "ChatState",
    "AgentStatus",
    "TurnState",
    # 压缩与记忆
    "CompactionPolicy",
    "Compressor",
    "compress_text",
    "MemoryJournal",
    # 持久化
    "ChatStateManager",
    "archive_chat",
]
