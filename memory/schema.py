"""
会话数据结构模块

该模块定义消息、工具调用、聊天归档与单轮运行状态的数据模型
消息的 to_dict 结果即补全接口所需的 wire 格式 可直接发送与持久化
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

ROLES = ("system", "user", "assistant", "tool")


@dataclass
class ToolCall:
    """
    模型发起的单次工具调用

    Args:
        id (str): 调用 ID 工具结果消息通过 tool_call_id 回指该值
        name (str): 工具名称
        arguments (str): JSON 编码的参数字符串 可能非法

    Examples:
        >>> tc = ToolCall(id="call_1", name="search_drive_files", arguments='{"query": "q"}')
        >>> tc.parse_arguments()
        {'query': 'q'}
    """
    id: str
    name: str
    arguments: str = ""

    def parse_arguments(self) -> Dict[str, Any]:
        """
        解析参数字符串

        空串 非法 JSON 或解析结果不是对象时 一律返回空字典 不抛出异常

        Returns:
            Dict[str, Any]: 参数字典
        """
        if not self.arguments:
            return {}
        try:
            parsed = json.loads(self.arguments)
        except (TypeError, ValueError):
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        """
        从 wire 格式字典恢复工具调用

        同时兼容嵌套 function 结构与扁平 name/arguments 结构

        Args:
            data (Dict[str, Any]): 原始字典

        Returns:
            ToolCall: 工具调用对象
        """
        function = data.get("function") or {}
        name = function.get("name", data.get("name")) or ""
        arguments = function.get("arguments", data.get("arguments")) or ""
        if isinstance(arguments, (dict, list)):
            arguments = json.dumps(arguments, ensure_ascii=False)
        return cls(id=data.get("id") or "", name=name, arguments=arguments)


@dataclass
class Message:
    """
    消息基础模型

    Args:
        role (str): system / user / assistant / tool
        content (Optional[str]): 文本内容 assistant 携带工具调用时可为 None
        tool_calls (Optional[List[ToolCall]]): 仅 assistant 消息使用 保持模型给出的顺序
        tool_call_id (Optional[str]): 仅 tool 消息使用 指向发起调用的 ToolCall.id

    Examples:
        >>> msg = Message(role="user", content="hello")
        >>> msg.to_dict()
        {'role': 'user', 'content': 'hello'}
    """
    role: str
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    @property
    def text(self) -> str:
        """content 的字符串视图 None 视为空串"""
        return self.content if isinstance(self.content, str) else ""

    def copy_with(self, content: Optional[str]) -> "Message":
        """
        返回替换了 content 的浅拷贝 原消息不受影响

        Args:
            content (Optional[str]): 新内容

        Returns:
            Message: 同类型的新消息对象
        """
        clone = copy.copy(self)
        clone.content = content
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """
        序列化为补全接口的 wire 格式

        - assistant 消息携带 tool_calls 且无文本时省略 content
        - tool 消息总是携带 tool_call_id

        Returns:
            Dict[str, Any]: JSON 兼容字典
        """
        message: Dict[str, Any] = {"role": self.role}
        if self.content is not None or not self.tool_calls:
            message["content"] = self.content
        if self.role == "assistant" and self.tool_calls:
            message["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.role == "tool":
            message["tool_call_id"] = self.tool_call_id or ""
        return message

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """
        从字典反序列化消息对象 按 role 分发到对应子类

        Args:
            data (Dict[str, Any]): 包含 role 字段的消息字典

        Returns:
            Message: 对应子类实例 未知角色回退到基类
        """
        role = data.get("role") or ""
        content = data.get("content")
        if isinstance(content, (dict, list)):
            content = json.dumps(content, ensure_ascii=False)

        if role == "system":
            return SystemMessage(content=content or "")
        if role == "user":
            return UserMessage(content=content or "")
        if role == "assistant":
            raw_calls = data.get("tool_calls") or []
            tool_calls = [ToolCall.from_dict(tc) for tc in raw_calls if isinstance(tc, dict)]
            return AssistantMessage(content=content, tool_calls=tool_calls or None)
        if role == "tool":
            return ToolMessage(content=content or "", tool_call_id=data.get("tool_call_id") or "")
        return cls(role=role, content=content)


@dataclass
class SystemMessage(Message):
    """系统消息"""
    role: str = field(default="system", init=False)

    def __init__(self, content: str):
        super().__init__(role="system", content=content)


@dataclass
class UserMessage(Message):
    """用户消息"""
    role: str = field(default="user", init=False)

    def __init__(self, content: str):
        super().__init__(role="user", content=content)


@dataclass
class AssistantMessage(Message):
    """助手消息 可携带工具调用列表"""
    role: str = field(default="assistant", init=False)

    def __init__(self, content: Optional[str] = None, tool_calls: Optional[List[ToolCall]] = None):
        super().__init__(role="assistant", content=content, tool_calls=tool_calls)


@dataclass
class ToolMessage(Message):
    """工具结果消息"""
    role: str = field(default="tool", init=False)

    def __init__(self, content: str, tool_call_id: str):
        super().__init__(role="tool", content=content, tool_call_id=tool_call_id)


@dataclass
class ChatRecord:
    """
    归档的历史聊天

    Args:
        id (str): 聊天 ID
        title (str): 标题 取首条用户消息
        timestamp (float): 归档时间 Unix 秒
        messages (List[Message]): 完整消息序列
    """
    id: str
    title: str = "New Chat"
    timestamp: float = 0.0
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "timestamp": self.timestamp,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatRecord":
        raw_messages = data.get("messages") if isinstance(data.get("messages"), list) else []
        return cls(
            id=data.get("id") or "",
            title=data.get("title") or "Chat",
            timestamp=float(data.get("timestamp") or 0),
            messages=[Message.from_dict(m) for m in raw_messages if isinstance(m, dict)],
        )


@dataclass
class ChatState:
    """
    持久化的整体聊天状态

    Args:
        current_chat_id (str): 当前聊天 ID
        messages (List[Message]): 当前聊天的消息序列
        chat_history (List[ChatRecord]): 归档列表 最新在前
    """
    current_chat_id: str
    messages: List[Message] = field(default_factory=list)
    chat_history: List[ChatRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": 1,
            "currentChatId": self.current_chat_id or "",
            "currentConversationMessages": [m.to_dict() for m in self.messages],
            "chatHistory": [c.to_dict() for c in self.chat_history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatState":
        messages = data.get("currentConversationMessages")
        history = data.get("chatHistory")
        return cls(
            current_chat_id=data.get("currentChatId") or "",
            messages=[Message.from_dict(m) for m in messages if isinstance(m, dict)] if isinstance(messages, list) else [],
            chat_history=[ChatRecord.from_dict(c) for c in history if isinstance(c, dict)] if isinstance(history, list) else [],
        )


class AgentStatus(str, Enum):
    """
    单轮运行状态

    Examples:
        >>> AgentStatus.IDLE.value
        'idle'
    """
    IDLE = "idle"
    THINKING = "thinking"
    ACTING = "acting"
    FINISHED = "finished"
    ERROR = "error"


@dataclass
class TurnState:
    """
    一轮对话内 AgentLoop 的运行状态

    不持久化 仅用于流程控制 日志与调试

    Args:
        max_iterations (int): 迭代预算
        iteration (int): 已开始的迭代次数
        status (AgentStatus): 当前状态
        tool_results (List[Dict]): 每次工具调用的名称 调用 ID 与是否成功
        final_answer (str): 最终回答
        error (Optional[str]): 失败原因
    """
    max_iterations: int
    iteration: int = 0
    status: AgentStatus = AgentStatus.IDLE
    tool_results: List[Dict[str, Any]] = field(default_factory=list)
    final_answer: str = ""
    error: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> float:
        """运行耗时(秒) 未结束时以当前时间计算"""
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def is_finished(self) -> bool:
        return self.status in (AgentStatus.FINISHED, AgentStatus.ERROR)
