"""
Describe:
该模块封装异步补全客户端 向上提供单一的 complete 能力:
输入完整消息列表与可选工具定义 返回下一条助手消息(可能携带 tool_calls).

1. 基于 `AsyncOpenAI` 兼容接口接入补全服务.
2. 整个请求(含重试)受 90 秒总超时约束 超时即取消.
3. 将 SDK 异常归类为 llm.errors 中的致命异常 便于上层统一处理.
"""
import asyncio
from typing import Any, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from .config import LLMConfig
from .errors import (
    CompletionError,
    CompletionHTTPError,
    CompletionTimeoutError,
    EmptyCompletionError,
    MissingCredentialsError,
)
from memory.schema import AssistantMessage, Message, ToolCall
from utils.logger import logger


def _status_error_detail(error: APIStatusError) -> str:
    """
    从 SDK 状态异常中提取服务端给出的错误描述

    Args:
        error (APIStatusError): SDK 异常

    Returns:
        str: 错误描述 取不到时为 "Request failed."
    """
    body = error.body
    if isinstance(body, dict):
        nested = body.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return str(nested["message"])
        if body.get("message"):
            return str(body["message"])
    return "Request failed."


class LLMClient:
    """
    补全服务客户端

    无状态的请求/响应桥 一次 complete 调用对应一次补全请求

    Args:
        config (LLMConfig): 运行时配置

    Examples:
    >>> client = LLMClient(LLMConfig(api_key="sk-xxx"))
    >>> msg = await client.complete([SystemMessage("hi")], tools=None)
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        # 重试交给 tenacity 统一处理 SDK 自身不再重试
        self.client = AsyncOpenAI(
            api_key=config.api_key or "missing",
            base_url=config.base_url,
            project=config.project,
            organization=config.organization,
            timeout=config.timeout,
            max_retries=0,
        )
        logger.info(f"LLM client initialized: {config.model} | {config.base_url}")

    @retry(
        wait=wait_random_exponential(min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type((RateLimitError, InternalServerError)),
        reraise=True,
    )
    async def _create(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]]):
        """
        发起一次补全请求 仅对限流与 5xx 错误重试

        Args:
            messages (List[Dict[str, Any]]): wire 格式消息
            tools (Optional[List[Dict[str, Any]]]): 工具定义 为空时不传 tools 字段

        Returns:
            ChatCompletionMessage: 首个候选消息
        """
        params: Dict[str, Any] = {"model": self.config.model, "messages": messages}
        if tools:
            params["tools"] = tools

        completion = await self.client.chat.completions.create(**params)
        if not completion.choices or completion.choices[0].message is None:
            raise EmptyCompletionError()
        return completion.choices[0].message

    async def complete(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AssistantMessage:
        """
        请求下一条助手消息

        Args:
            messages (List[Message]): 完整有序的会话消息
            tools (Optional[List[Dict[str, Any]]]): 当前可用的工具定义

        Returns:
            AssistantMessage: 助手消息 tool_calls 保持服务端给出的顺序

        Raises:
            MissingCredentialsError: 未配置密钥
            CompletionHTTPError: 服务端返回非成功状态
            EmptyCompletionError: 响应中没有消息
            CompletionTimeoutError: 超过总超时
            CompletionError: 网络连接失败
        """
        if not self.config.api_key:
            raise MissingCredentialsError()

        payload = [m.to_dict() for m in messages]
        try:
            raw = await asyncio.wait_for(self._create(payload, tools), timeout=self.config.timeout)
        except (asyncio.TimeoutError, APITimeoutError):
            logger.error(f"补全请求超时 ({self.config.timeout}s)")
            raise CompletionTimeoutError()
        except APIStatusError as e:
            detail = _status_error_detail(e)
            logger.error(f"补全请求失败: HTTP {e.status_code} {detail}")
            raise CompletionHTTPError(e.status_code, detail) from e
        except APIConnectionError as e:
            logger.error(f"补全服务连接失败: {e}")
            raise CompletionError(f"Connection error: {e}") from e

        return self._to_message(raw)

    @staticmethod
    def _to_message(raw: Any) -> AssistantMessage:
        """
        将 SDK 消息对象转换为内部 AssistantMessage

        缺失的 id / name / arguments 以空串补齐

        Args:
            raw (Any): ChatCompletionMessage 或同构对象

        Returns:
            AssistantMessage: 内部消息对象
        """
        tool_calls: List[ToolCall] = []
        for tc in getattr(raw, "tool_calls", None) or []:
            function = getattr(tc, "function", None)
            tool_calls.append(ToolCall(
                id=getattr(tc, "id", None) or "",
                name=getattr(function, "name", None) or "",
                arguments=getattr(function, "arguments", None) or "",
            ))
        content = getattr(raw, "content", None) or None
        return AssistantMessage(content=content, tool_calls=tool_calls or None)

    def __repr__(self) -> str:
        return f"LLMClient(model={self.config.model}, base_url={self.config.base_url})"
