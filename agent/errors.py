"""
Agent 层异常定义
"""


class AgentError(Exception):
    """Agent 运行失败的基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MaxIterationsExceeded(AgentError):
    """迭代预算耗尽仍未得到不含工具调用的回答"""

    def __init__(self, max_iterations: int = 8):
        super().__init__("Agent reached maximum iterations without a final response.")
        self.max_iterations = max_iterations


class ChatBusyError(AgentError):
    """已有请求在处理中 新请求被立即拒绝"""

    def __init__(self, message: str = "Previous request still running."):
        super().__init__(message)


class ChatNotFoundError(AgentError):
    """历史记录中不存在指定会话"""

    def __init__(self, chat_id: str):
        super().__init__(f"Chat not found: {chat_id}")
        self.chat_id = chat_id


class EmptyMessageError(AgentError):
    """用户输入为空"""

    def __init__(self, message: str = "Message is empty."):
        super().__init__(message)
