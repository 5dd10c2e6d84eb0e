"""
聊天状态管理器模块

该模块负责当前聊天与历史归档的读写
状态整体保存在单个 JSON 文件中 读写失败只记录日志 不会阻断对话流程
"""

import json
import time
from pathlib import Path
from typing import List, Optional

from memory.schema import ChatRecord, ChatState, Message
from utils.logger import logger

MAX_HISTORY_ENTRIES = 50
TITLE_MAX_CHARS = 55
DEFAULT_TITLE = "New Chat"


def build_chat_title(messages: List[Message]) -> str:
    """
    用首条非空用户消息生成聊天标题 超过 55 字符时截断并追加省略号

    Args:
        messages (List[Message]): 聊天消息

    Returns:
        str: 标题 无用户消息时为 "New Chat"

    Examples:
        >>> from memory.schema import UserMessage
        >>> build_chat_title([UserMessage("hello")])
        'hello'
    """
    for msg in messages:
        if msg.role == "user" and msg.text:
            text = msg.text
            return text[:TITLE_MAX_CHARS] + "…" if len(text) > TITLE_MAX_CHARS else text
    return DEFAULT_TITLE


def archive_chat(
    chat_id: str,
    messages: List[Message],
    history: List[ChatRecord],
    now: Optional[float] = None,
) -> List[ChatRecord]:
    """
    把当前聊天写入归档列表

    - 没有任何用户消息的聊天不归档 原样返回 history
    - 同 ID 的旧归档被替换 新归档插到最前
    - 归档总数上限 50 超出时丢弃最旧的

    Args:
        chat_id (str): 当前聊天 ID
        messages (List[Message]): 当前聊天消息
        history (List[ChatRecord]): 已有归档 最新在前
        now (Optional[float]): 归档时间戳 为空时取当前时间

    Returns:
        List[ChatRecord]: 新的归档列表
    """
    if not any(m.role == "user" for m in messages):
        return history

    filtered = [c for c in history if c.id != chat_id]
    filtered.insert(0, ChatRecord(
        id=chat_id,
        title=build_chat_title(messages),
        timestamp=time.time() if now is None else now,
        messages=list(messages),
    ))
    return filtered[:MAX_HISTORY_ENTRIES]


class ChatStateManager:
    """
    聊天状态持久化

    Args:
        state_file (Path): chat_state.json 路径

    Examples:
        >>> manager = ChatStateManager(Path("./data/chat_state.json"))
    """

    def __init__(self, state_file: Path):
        if state_file is None:
            raise ValueError("必须提供 state_file 参数")
        self.state_file = Path(state_file)

    def load(self) -> Optional[ChatState]:
        """
        读取持久化状态

        文件不存在 内容不是对象 或解析失败时返回 None

        Returns:
            Optional[ChatState]: 聊天状态
        """
        if not self.state_file.exists():
            return None
        try:
            payload = json.loads(self.state_file.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                logger.warning("⚠️ 聊天状态文件格式无效 已忽略")
                return None
            state = ChatState.from_dict(payload)
        except (OSError, AttributeError, TypeError, ValueError) as e:
            logger.error(f"❌ 读取聊天状态失败: {e}")
            return None

        logger.info(f"📂 加载聊天状态: {state.current_chat_id} ({len(state.messages)} 条消息, {len(state.chat_history)} 条归档)")
        return state

    def save(self, state: ChatState) -> bool:
        """
        写入持久化状态

        Args:
            state (ChatState): 待保存状态

        Returns:
            bool: 是否写入成功 失败时只记录日志
        """
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(
                json.dumps(state.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"❌ 保存聊天状态失败: {e}")
            return False

        logger.debug(f"💾 保存聊天状态: {state.current_chat_id}")
        return True
