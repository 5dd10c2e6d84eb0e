"""
AgentLoop 核心模块

该模块实现一轮对话内的 压缩 → 补全 → 工具调用 循环
直到模型给出不含工具调用的回答 或迭代预算耗尽
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .errors import MaxIterationsExceeded
from llm.client import LLMClient
from memory.compressor import Compressor, compress_text
from memory.schema import AgentStatus, AssistantMessage, Message, ToolMessage, TurnState
from tools.registry import Notifier, ToolRegistry, notify
from utils.logger import logger

MAX_ITERATIONS = 8
TOOL_RESULT_MAX_CHARS = 9000
NO_RESPONSE_TEXT = "No response text returned."
THINKING_TEXT = "Thinking..."


class AgentLoop:
    """
    工具调用循环执行器

    不持有会话状态 会话消息与记忆日志由调用方传入并在原处修改

    Args:
        llm_client (LLMClient): 补全客户端
        registry (ToolRegistry): 工具注册表
        compressor (Optional[Compressor]): 会话压缩器
        max_iterations (int): 迭代预算

    Examples:
        >>> loop = AgentLoop(client, ToolRegistry.for_backends(drive, onedrive))
        >>> answer = await loop.run(messages, journal, notifier=print)
    """

    def __init__(
        self,
        llm_client: LLMClient,
        registry: ToolRegistry,
        compressor: Optional[Compressor] = None,
        max_iterations: int = MAX_ITERATIONS,
    ):
        self.llm_client = llm_client
        self.registry = registry
        self.compressor = compressor or Compressor()
        self.max_iterations = max_iterations
        self.last_state: Optional[TurnState] = None

    async def run(
        self,
        messages: List[Message],
        journal: Sequence[str],
        notifier: Optional[Notifier] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        """
        执行一轮对话

        Args:
            messages (List[Message]): 会话消息 原地修改
            journal (Sequence[str]): 记忆日志 只读
            notifier (Optional[Notifier]): 进度回调
            tools (Optional[List[Dict[str, Any]]]): 工具定义 为空时取注册表当前可用的工具

        Returns:
            str: 最终回答文本

        Raises:
            MaxIterationsExceeded: 迭代预算耗尽
            CompletionError: 补全请求失败 原样上抛
        """
        if tools is None:
            tools = self.registry.to_params()
        state = TurnState(max_iterations=self.max_iterations)
        self.last_state = state

        try:
            while state.iteration < state.max_iterations:
                state.iteration += 1
                logger.info(f"步骤 {state.iteration}/{state.max_iterations}")

                self._compact(messages, journal)

                state.status = AgentStatus.THINKING
                reply = await self.llm_client.complete(messages, tools or None)

                if not reply.tool_calls:
                    state.final_answer = reply.content or NO_RESPONSE_TEXT
                    state.status = AgentStatus.FINISHED
                    logger.info(f"生成最终回答 ({len(state.final_answer)} 字符)")
                    return state.final_answer

                state.status = AgentStatus.ACTING
                await self._act(reply, messages, state, notifier)
                notify(notifier, THINKING_TEXT)

            state.status = AgentStatus.ERROR
            state.error = "max iterations"
            logger.error(f"达到最大迭代次数 {state.max_iterations} 仍未得到最终回答")
            raise MaxIterationsExceeded(state.max_iterations)

        except MaxIterationsExceeded:
            raise
        except Exception as e:
            state.status = AgentStatus.ERROR
            state.error = str(e)
            logger.error(f"Agent 执行失败: {e}")
            raise
        finally:
            state.end_time = datetime.now()
            logger.info(f"本轮结束 状态 {state.status.value} 耗时 {state.duration:.2f}s")

    def _compact(self, messages: List[Message], journal: Sequence[str]) -> None:
        """压缩结果与原列表不同则原地替换内容"""
        compacted = self.compressor.compact(messages, journal)
        if compacted is not messages:
            messages[:] = compacted

    async def _act(
        self,
        reply: AssistantMessage,
        messages: List[Message],
        state: TurnState,
        notifier: Optional[Notifier],
    ) -> None:
        """
        写入助手消息 然后按收到的顺序逐个执行工具调用

        每个结果截断到 9000 字符后以 tool 消息写回
        """
        messages.append(AssistantMessage(content=reply.content, tool_calls=list(reply.tool_calls)))

        for tool_call in reply.tool_calls:
            logger.info(f"执行工具: {tool_call.name}")
            result = await self.registry.execute(tool_call.name, tool_call.parse_arguments(), notifier)
            messages.append(ToolMessage(
                content=compress_text(result or "", TOOL_RESULT_MAX_CHARS),
                tool_call_id=tool_call.id,
            ))
            state.tool_results.append({
                "tool_name": tool_call.name,
                "tool_call_id": tool_call.id,
                "success": not result.startswith(("Error:", "Unknown tool:")),
            })
