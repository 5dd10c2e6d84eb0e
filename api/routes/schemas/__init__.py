from .chat import (
    ChatHistoryItem,
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    DisplayMessage,
    LoadChatResponse,
    NewChatResponse,
)
from .guides import ApplyGuideRequest, ApplyGuideResponse, GuideInfo, GuideListResponse
from .settings import SettingsResponse

__all__ = [
    "ChatHistoryItem",
    "ChatHistoryResponse",
    "ChatRequest",
    "ChatResponse",
    "DisplayMessage",
    "LoadChatResponse",
    "NewChatResponse",
    "ApplyGuideRequest",
    "ApplyGuideResponse",
    "GuideInfo",
    "GuideListResponse",
    "SettingsResponse",
]
