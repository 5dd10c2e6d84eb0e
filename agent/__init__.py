"""
Agent 模块入口

该模块导出 AgentLoop 与 AgentSession 供外部统一导入
主要用于 HTTP WS CLI 场景下的实例化
"""

from .errors import (
    AgentError,
    ChatBusyError,
    ChatNotFoundError,
    EmptyMessageError,
    MaxIterationsExceeded,
)
from .loop import AgentLoop
from .session import AgentSession

__all__ = [
    "AgentLoop",
    "AgentSession",
    "AgentError",
    "ChatBusyError",
    "ChatNotFoundError",
    "EmptyMessageError",
    "MaxIterationsExceeded",
]

__version__ = "0.1.0"
