from typing import List

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """HTTP 聊天请求体"""

    message: str


class ChatResponse(BaseModel):
    """HTTP 聊天响应体"""

    response: str
    chat_id: str


class DisplayMessage(BaseModel):
    """
    可展示的消息

    - text (str): 消息文本
    - isUser (bool): 是否为用户消息
    """

    text: str
    isUser: bool


class NewChatResponse(BaseModel):
    """新建聊天响应体"""

    welcome_message: str
    chat_id: str


class LoadChatResponse(BaseModel):
    """切换聊天响应体"""

    chat_id: str
    display_messages: List[DisplayMessage]


class ChatHistoryItem(BaseModel):
    """
    归档聊天条目

    - id (str): 聊天 ID
    - title (str): 标题
    - timestamp (float): 归档时间 Unix 秒
    - isCurrent (bool): 是否为当前聊天
    """

    id: str
    title: str
    timestamp: float
    isCurrent: bool


class ChatHistoryResponse(BaseModel):
    """归档列表 按时间倒序"""

    chats: List[ChatHistoryItem]
