"""
LLM 模块 - 补全服务客户端

LLMClient: 补全客户端
LLMConfig: 补全配置
"""
from .client import LLMClient
from .config import LLMConfig
from .errors import (
    CompletionError,
    CompletionHTTPError,
    CompletionTimeoutError,
    EmptyCompletionError,
    MissingCredentialsError,
)

__all__ = [
    "LLMClient",
    "LLMConfig",
    "CompletionError",
    "CompletionHTTPError",
    "CompletionTimeoutError",
    "EmptyCompletionError",
    "MissingCredentialsError",
]
