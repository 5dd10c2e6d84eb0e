"""
AgentSession 会话宿主模块

该模块持有一个进程内的对话会话: 当前消息序列 记忆日志 历史归档 与处理中标记
并向 HTTP / WS / CLI 提供发送消息 新建与切换聊天 引导手册注入 等操作
"""

import uuid
from typing import Any, Dict, List, Optional

from .errors import ChatBusyError, ChatNotFoundError, EmptyMessageError
from .loop import AgentLoop
from llm.client import LLMClient
from llm.config import LLMConfig
from memory.journal import MemoryJournal
from memory.manager import ChatStateManager, archive_chat
from memory.schema import AssistantMessage, ChatRecord, ChatState, Message, SystemMessage, UserMessage
from prompts.agent_system_prompt import MISSING_API_KEY_HINT, build_system_prompt, build_welcome_message
from prompts.guides import build_guide_context, get_guide, is_guide_context
from storage.base import StorageBackend
from storage.google_drive import GoogleDriveBackend
from storage.onedrive import OneDriveBackend
from tools.registry import Notifier, ToolRegistry
from utils.logger import logger


def new_chat_id() -> str:
    return str(uuid.uuid4())


def build_display_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    """
    从会话消息中提取可展示的部分: 用户消息 与 非空的助手消息

    Args:
        messages (List[Message]): 会话消息

    Returns:
        List[Dict[str, Any]]: [{"text": ..., "isUser": bool}, ...]
    """
    display: List[Dict[str, Any]] = []
    for msg in messages:
        if msg.role == "user":
            display.append({"text": msg.text, "isUser": True})
        elif msg.role == "assistant" and msg.content:
            display.append({"text": msg.content, "isUser": False})
    return display


class AgentSession:
    """
    单会话宿主

    同一时刻只允许一轮对话在处理 新请求在处理中标记置位时立即被拒绝
    Token 缓存随后端实例归属于本对象

    Args:
        paths (PathConfig): 路径与配置
        llm_client (Optional[LLMClient]): 补全客户端 默认按配置创建
        drive (Optional[StorageBackend]): Google Drive 后端 默认按配置创建
        onedrive (Optional[StorageBackend]): OneDrive 后端 默认按配置创建
        state_manager (Optional[ChatStateManager]): 持久化管理器

    Examples:
        >>> session = AgentSession(get_paths())
        >>> session.restore()
        >>> answer = await session.send("What is in the Q3 folder?")
    """

    def __init__(
        self,
        paths,
        llm_client: Optional[LLMClient] = None,
        drive: Optional[StorageBackend] = None,
        onedrive: Optional[StorageBackend] = None,
        state_manager: Optional[ChatStateManager] = None,
    ):
        self.paths = paths
        self.llm_config = LLMConfig.from_env(paths)
        self.llm_client = llm_client or LLMClient(self.llm_config)
        self.drive = drive if drive is not None else GoogleDriveBackend.from_paths(paths)
        self.onedrive = onedrive if onedrive is not None else OneDriveBackend.from_paths(paths)
        self.registry = ToolRegistry.for_backends(self.drive, self.onedrive)
        self.loop = AgentLoop(self.llm_client, self.registry)
        self.state_manager = state_manager or ChatStateManager(paths.chat_state_file)

        self.chat_id: str = new_chat_id()
        self.messages: List[Message] = []
        self.chat_history: List[ChatRecord] = []
        self.journal = MemoryJournal()
        self._in_flight = False

        logger.info(f"会话初始化完成 Drive={self.has_drive} OneDrive={self.has_onedrive}")

    @property
    def has_drive(self) -> bool:
        return self.drive.is_configured()

    @property
    def has_onedrive(self) -> bool:
        return self.onedrive.is_configured()

    @property
    def has_api_key(self) -> bool:
        return self.llm_config.has_api_key

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    def system_prompt(self) -> str:
        return build_system_prompt(
            self.has_drive,
            self.has_onedrive,
            self.paths.get_config_value("GOOGLE_DRIVE_FOLDER_ID") if self.has_drive else None,
        )

    def persist(self) -> bool:
        """归档当前聊天并保存状态 失败只记录日志"""
        self.chat_history = archive_chat(self.chat_id, self.messages, self.chat_history)
        return self.state_manager.save(ChatState(
            current_chat_id=self.chat_id,
            messages=self.messages,
            chat_history=self.chat_history,
        ))

    def _reset_conversation(self) -> None:
        self.messages = [SystemMessage(self.system_prompt())]
        self.chat_id = new_chat_id()
        self.journal.reset()

    def restore(self) -> Dict[str, Any]:
        """
        启动时恢复上次的会话

        有持久化状态时恢复消息与归档 并保证首条是 system 消息
        否则新建会话并写入欢迎语

        Returns:
            Dict[str, Any]: 启动信息 包含 displayMessages / hasApiKey / hasDrive / hasOneDrive / model / status
        """
        state = self.state_manager.load()
        display: List[Dict[str, Any]]

        if state is not None and state.messages:
            self.chat_id = state.current_chat_id or new_chat_id()
            self.messages = list(state.messages)
            self.chat_history = list(state.chat_history)
            if not self.messages or self.messages[0].role != "system":
                self.messages.insert(0, SystemMessage(self.system_prompt()))
            self.journal.reset()
            display = build_display_messages(self.messages)
            logger.info(f"📂 恢复会话 {self.chat_id} ({len(self.messages)} 条消息)")
        else:
            if state is not None:
                self.chat_history = list(state.chat_history)
            self._reset_conversation()
            display = [{"text": build_welcome_message(self.has_drive, self.has_onedrive), "isUser": False}]
            if not self.has_api_key:
                display.append({"text": MISSING_API_KEY_HINT, "isUser": False})
            self.persist()
            logger.info(f"🆕 新建会话 {self.chat_id}")

        return {
            "displayMessages": display,
            "hasApiKey": self.has_api_key,
            "hasDrive": self.has_drive,
            "hasOneDrive": self.has_onedrive,
            "model": self.llm_config.model,
            "status": "Ready" if self.has_api_key else "No API key",
        }

    async def send(self, text: str, notifier: Optional[Notifier] = None) -> str:
        """
        处理一条用户消息

        Args:
            text (str): 用户输入
            notifier (Optional[Notifier]): 进度回调

        Returns:
            str: 最终回答

        Raises:
            ChatBusyError: 上一轮仍在处理
            EmptyMessageError: 输入为空
            CompletionError / MaxIterationsExceeded: 本轮失败 状态仍会保存
        """
        if self._in_flight:
            raise ChatBusyError()
        question = (text or "").strip()
        if not question:
            raise EmptyMessageError()

        self._in_flight = True
        try:
            self.messages.append(UserMessage(question))
            self.persist()
            try:
                answer = await self.loop.run(self.messages, self.journal, notifier)
            except Exception:
                self.persist()
                raise

            self.messages.append(AssistantMessage(content=answer))
            self.journal.append_exchange(question, answer)
            self.persist()
            return answer
        finally:
            self._in_flight = False

    def new_chat(self) -> str:
        """
        归档当前聊天并新建 返回欢迎语

        Raises:
            ChatBusyError: 有请求在处理中
        """
        if self._in_flight:
            raise ChatBusyError("Cannot create new chat while request is in flight.")

        self.chat_history = archive_chat(self.chat_id, self.messages, self.chat_history)
        self._reset_conversation()
        self.persist()
        logger.info(f"🆕 新建会话 {self.chat_id}")
        return build_welcome_message(self.has_drive, self.has_onedrive)

    def load_chat(self, chat_id: str) -> List[Dict[str, Any]]:
        """
        切换到历史聊天

        Args:
            chat_id (str): 归档中的聊天 ID

        Returns:
            List[Dict[str, Any]]: 可展示的消息

        Raises:
            ChatBusyError: 有请求在处理中
            ChatNotFoundError: 归档中没有该聊天
        """
        if self._in_flight:
            raise ChatBusyError("Cannot switch chat while request is in flight.")

        record = next((c for c in self.chat_history if c.id == chat_id), None)
        if record is None:
            raise ChatNotFoundError(chat_id)

        self.chat_history = archive_chat(self.chat_id, self.messages, self.chat_history)
        self.messages = list(record.messages)
        self.chat_id = record.id
        self.journal.reset()
        self.persist()
        logger.info(f"📂 切换到会话 {self.chat_id}")
        return build_display_messages(self.messages)

    def history(self) -> List[Dict[str, Any]]:
        """归档列表 按时间倒序 标记当前聊天"""
        ordered = sorted(self.chat_history, key=lambda c: c.timestamp or 0, reverse=True)
        return [
            {
                "id": c.id,
                "title": c.title or "Chat",
                "timestamp": c.timestamp or 0,
                "isCurrent": c.id == self.chat_id,
            }
            for c in ordered
        ]

    def settings(self) -> Dict[str, Any]:
        return {
            "hasApiKey": self.has_api_key,
            "model": self.llm_config.model,
            "baseUrl": self.llm_config.base_url,
            "hasDrive": self.has_drive,
            "hasOneDrive": self.has_onedrive,
            "configPath": str(self.paths.env_file),
        }

    def apply_guide(self, guide_id: Optional[str]) -> bool:
        """
        注入引导手册上下文

        先移除所有带手册前缀的 system 消息 再把选中手册插到首条 system 消息之后
        guide_id 为空或不存在时只做移除

        Returns:
            bool: 是否插入了手册上下文

        Raises:
            ChatBusyError: 有请求在处理中
        """
        if self._in_flight:
            raise ChatBusyError("Cannot change guide context while request is in flight.")

        self.messages[:] = [
            m for m in self.messages
            if not (m.role == "system" and is_guide_context(m.content))
        ]

        guide = get_guide(guide_id)
        inserted = False
        if guide is not None and guide.get("system_prompt"):
            first_system = next((i for i, m in enumerate(self.messages) if m.role == "system"), -1)
            self.messages.insert(first_system + 1, SystemMessage(build_guide_context(guide)))
            inserted = True
            logger.info(f"📘 注入引导手册: {guide_id}")
        elif guide_id:
            logger.warning(f"⚠️ 未知引导手册: {guide_id}")

        self.persist()
        return inserted

    def __repr__(self) -> str:
        return f"AgentSession(chat_id={self.chat_id}, messages={len(self.messages)}, busy={self._in_flight})"
