"""
上下文压缩器模块

该模块负责在每次请求补全接口之前 判断会话是否超出上下文预算
超出时丢弃较早的原始消息 以记忆日志摘要加最近消息重建会话

压缩是纯函数 不发起网络请求 也不会失败
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from memory.schema import Message, SystemMessage
from utils.logger import logger

MEMORY_SUMMARY_HEADER = "Conversation memory summary from earlier turns:"

# 截断标记 形如 "\n\n...[truncated 123 chars]...\n\n"
TRUNCATION_MARKER_TEMPLATE = "\n\n...[truncated {omitted} chars]...\n\n"
TRUNCATION_MARKER_PATTERN = re.compile(r"\n\n\.\.\.\[truncated \d+ chars\]\.\.\.\n\n")

# 低于该上限时不做头尾截断
MIN_COMPRESS_CHARS = 32


def compress_text(text: Optional[str], max_chars: int) -> str:
    """
    头尾保留式截断

    文本不超过上限或上限小于 32 时原样返回
    否则保留前 70% 与末尾剩余部分 中间以截断标记连接 标记记录被省略的字符数

    已经按同一上限截断过的文本不会被再次截断

    Args:
        text (Optional[str]): 原始文本 非字符串视为空串
        max_chars (int): 保留的字符数上限 不含标记本身

    Returns:
        str: 截断后的文本

    Examples:
        >>> compress_text("abc", 10)
        'abc'
        >>> out = compress_text("x" * 100, 40)
        >>> "[truncated 60 chars]" in out
        True
    """
    if not isinstance(text, str):
        return ""
    if len(text) <= max_chars or max_chars < MIN_COMPRESS_CHARS:
        return text

    # 已截断文本: 去掉标记后的正文仍在上限内时保持不变
    marker = TRUNCATION_MARKER_PATTERN.search(text)
    if marker and len(text) - len(marker.group(0)) <= max_chars:
        return text

    head_len = int(max_chars * 0.7)
    if head_len >= len(text):
        head_len = max_chars // 2
    tail_len = max_chars - head_len

    omitted = len(text) - max_chars
    head = text[:head_len]
    tail = text[len(text) - tail_len:] if tail_len > 0 else ""
    return head + TRUNCATION_MARKER_TEMPLATE.format(omitted=omitted) + tail


def total_content_chars(messages: Sequence[Message]) -> int:
    """统计所有消息中字符串 content 的总长度"""
    return sum(len(m.content) for m in messages if isinstance(m.content, str))


@dataclass(frozen=True)
class CompactionPolicy:
    """
    压缩阈值配置

    Args:
        min_messages (int): 消息数不超过该值时永不压缩
        max_messages (int): 消息数超过该值时必定压缩
        max_total_chars (int): 总字符数达到该值时压缩
        keep_recent (int): 重建时从尾部取的消息条数
        memory_max_chars (int): 记忆摘要消息的字符上限
        tool_max_chars (int): tool 消息重建时的字符上限
        message_max_chars (int): 其他消息重建时的字符上限
    """
    min_messages: int = 24
    max_messages: int = 34
    max_total_chars: int = 52000
    keep_recent: int = 22
    memory_max_chars: int = 5000
    tool_max_chars: int = 5000
    message_max_chars: int = 7000


DEFAULT_POLICY = CompactionPolicy()


class Compressor:
    """
    上下文压缩器

    用消息数与总字符数两个独立条件判断是否需要压缩
    需要压缩时保留首条系统消息 注入记忆摘要 并只保留最近若干条非系统消息

    Args:
        policy (CompactionPolicy): 阈值配置

    Examples:
        >>> compressor = Compressor()
        >>> msgs = [SystemMessage("sys")]
        >>> compressor.compact(msgs, []) is msgs
        True
    """

    def __init__(self, policy: CompactionPolicy = DEFAULT_POLICY):
        self.policy = policy

    def should_compact(self, messages: Sequence[Message]) -> bool:
        """
        判断当前会话是否需要压缩

        - 消息数 <= min_messages: 不压缩
        - 消息数 > max_messages: 压缩
        - 其余情况 总字符数 >= max_total_chars 时压缩

        Args:
            messages (Sequence[Message]): 会话消息

        Returns:
            bool: 是否需要压缩
        """
        count = len(messages)
        if count <= self.policy.min_messages:
            return False
        if count > self.policy.max_messages:
            return True
        return total_content_chars(messages) >= self.policy.max_total_chars

    def compact(self, messages: List[Message], journal: Sequence[str]) -> List[Message]:
        """
        按需压缩会话

        不需要压缩时返回同一个列表对象 调用方可用 `is` 判断是否发生了重建

        Args:
            messages (List[Message]): 会话消息 不会被修改
            journal (Sequence[str]): 记忆日志条目 旧的在前

        Returns:
            List[Message]: 原列表或重建后的新列表
        """
        if not self.should_compact(messages):
            return messages

        rebuilt = self.rebuild(messages, journal)
        logger.info(f"📦 会话压缩: {len(messages)} 条 → {len(rebuilt)} 条")
        return rebuilt

    def rebuild(self, messages: Sequence[Message], journal: Sequence[str]) -> List[Message]:
        """
        重建会话

        结构: [首条消息] + [记忆摘要系统消息] + 最近 keep_recent 条中的非系统消息
        更早的中间消息被永久丢弃

        Args:
            messages (Sequence[Message]): 原始消息
            journal (Sequence[str]): 记忆日志条目

        Returns:
            List[Message]: 新的消息列表 消息对象为拷贝
        """
        policy = self.policy
        rebuilt: List[Message] = []

        if messages:
            rebuilt.append(messages[0])

        memory_message = self.build_memory_message(journal)
        if memory_message is not None:
            rebuilt.append(memory_message)

        start = max(len(messages) - policy.keep_recent, 1 if messages else 0)
        for original in messages[start:]:
            if original.role == "system":
                continue
            if original.text:
                limit = policy.tool_max_chars if original.role == "tool" else policy.message_max_chars
                rebuilt.append(original.copy_with(compress_text(original.text, limit)))
            else:
                rebuilt.append(original.copy_with(original.content))

        return rebuilt

    def build_memory_message(self, journal: Sequence[str]) -> Optional[SystemMessage]:
        """
        将记忆日志渲染为一条系统消息

        Args:
            journal (Sequence[str]): 记忆日志条目

        Returns:
            Optional[SystemMessage]: 日志为空时返回 None
        """
        if not journal:
            return None
        summary = MEMORY_SUMMARY_HEADER + "\n" + "\n\n".join(journal)
        return SystemMessage(content=compress_text(summary, self.policy.memory_max_chars))
