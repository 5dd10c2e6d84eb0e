"""
记忆日志模块

记忆日志是一个容量固定的先进先出列表 每条记录是一轮问答的浓缩文本
当会话压缩丢弃原始消息后 由它为模型提供更早轮次的上下文
"""

from typing import Iterable, Iterator, List, Optional

from memory.compressor import compress_text

JOURNAL_CAPACITY = 18
QUESTION_MAX_CHARS = 260
ANSWER_MAX_CHARS = 360


class MemoryJournal:
    """
    有界滚动记忆日志

    Args:
        entries (Optional[Iterable[str]]): 初始条目 超出容量时只保留最新的部分
        capacity (int): 最大条目数

    Examples:
        >>> journal = MemoryJournal()
        >>> journal.append_exchange("hi", "hello")
        True
        >>> journal.entries
        ['Q: hi\\nA: hello']
    """

    def __init__(self, entries: Optional[Iterable[str]] = None, capacity: int = JOURNAL_CAPACITY):
        self.capacity = capacity
        self._entries: List[str] = []
        for entry in entries or []:
            self.append(entry)

    @property
    def entries(self) -> List[str]:
        """条目副本 旧的在前"""
        return list(self._entries)

    def append(self, entry: str) -> None:
        """
        追加一条原始条目 超出容量时从头部淘汰

        Args:
            entry (str): 条目文本
        """
        self._entries.append(entry)
        while len(self._entries) > self.capacity:
            self._entries.pop(0)

    def append_exchange(self, question: Optional[str], answer: Optional[str]) -> bool:
        """
        记录一轮完成的问答

        问题与回答先去除首尾空白 再分别截断到 260 / 360 字符
        两者都为空时不记录

        Args:
            question (Optional[str]): 用户问题
            answer (Optional[str]): 最终回答

        Returns:
            bool: 是否追加了新条目
        """
        q = compress_text((question or "").strip(), QUESTION_MAX_CHARS)
        a = compress_text((answer or "").strip(), ANSWER_MAX_CHARS)
        if not q and not a:
            return False
        self.append(f"Q: {q}\nA: {a}")
        return True

    def reset(self) -> None:
        """清空日志 新建或切换聊天时调用"""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"MemoryJournal(entries={len(self._entries)}, capacity={self.capacity})"
