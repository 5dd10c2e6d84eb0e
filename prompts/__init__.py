"""
Prompts 模块 - 系统提示与引导手册
"""
from .agent_system_prompt import MISSING_API_KEY_HINT, build_system_prompt, build_welcome_message
from .guides import (
    GUIDE_CONTEXT_PREFIX,
    GUIDES,
    build_guide_context,
    get_guide,
    is_guide_context,
    search_guides,
)

__all__ = [
    "build_system_prompt",
    "build_welcome_message",
    "MISSING_API_KEY_HINT",
    "GUIDE_CONTEXT_PREFIX",
    "GUIDES",
    "build_guide_context",
    "get_guide",
    "is_guide_context",
    "search_guides",
]
