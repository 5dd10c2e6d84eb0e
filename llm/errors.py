"""
补全服务异常定义

这些异常对当前这一轮对话是致命的 由 AgentLoop 原样上抛给调用方
"""


class CompletionError(Exception):
    """补全请求失败的基类"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingCredentialsError(CompletionError):
    """未配置 OPENAI_API_KEY"""

    def __init__(self, message: str = "Missing API key. Add OPENAI_API_KEY to apertureai.env."):
        super().__init__(message)


class CompletionHTTPError(CompletionError):
    """补全服务返回非成功状态码"""

    def __init__(self, status: int, detail: str):
        super().__init__(f"HTTP {status}: {detail or 'Request failed.'}")
        self.status = status
        self.detail = detail


class EmptyCompletionError(CompletionError):
    """响应中没有可用的消息"""

    def __init__(self, message: str = "No message in response."):
        super().__init__(message)


class CompletionTimeoutError(CompletionError):
    """请求超过总超时时间"""

    def __init__(self, message: str = "Request timed out."):
        super().__init__(message)
