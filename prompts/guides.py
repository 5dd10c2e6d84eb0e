"""
引导手册目录

选中的手册以带固定前缀的 system 消息注入会话
"""
from typing import Any, Dict, List, Optional

GUIDE_CONTEXT_PREFIX = "[ApertureAI Guide Context]"

GUIDES: List[Dict[str, Any]] = [
    {
        "id": "factory_reset_windows_pc",
        "title": "Factory resetting your PC",
        "keywords": "windows reset remove everything local reinstall erase wipe",
        "system_prompt": (
            "You are helping with a Windows factory reset workflow. Keep instructions concrete and safe. "
            "This guide is for Windows PCs and for removing everything with a local reinstall. "
            "Before destructive actions, remind the user about backups and BitLocker recovery keys. "
            "Use short numbered steps and ask one diagnostic question at a time if they are stuck."
        ),
        "quick_steps": [
            "Open Settings and go to Recovery",
            "Choose Reset this PC",
            "Select Remove everything",
            "Choose Local reinstall",
            "Review reset options and confirm",
            "Run Windows Update after setup",
        ],
        "content": (
            "Diagnosis: This guide is for Windows PCs only.\n"
            "Use this when you want to delete everything from the computer and do a local reinstall of Windows.\n\n"
            "Before you start:\n"
            "1. Plug the PC into power.\n"
            "2. Back up anything you need (Desktop, Documents, browser passwords, 2FA backup codes).\n"
            "3. If BitLocker is enabled, make sure you have your recovery key.\n"
            "4. Sign in with an administrator account.\n\n"
            "Reset steps (Windows 11 / Windows 10):\n"
            "1. Open Settings.\n"
            "2. Windows 11: System > Recovery.\n"
            "   Windows 10: Update & Security > Recovery.\n"
            "3. Under Reset this PC, click Reset PC (or Get started).\n"
            "4. Choose Remove everything.\n"
            "5. Choose Local reinstall.\n"
            "6. Review Additional settings. If this PC is staying with you, keep clean-data off for speed. "
            "If giving away, enable clean-data.\n"
            "7. Click Next, then Reset.\n"
            "8. Wait while Windows restarts several times.\n\n"
            "After reset:\n"
            "1. Complete setup.\n"
            "2. Run Windows Update.\n"
            "3. Reinstall drivers and apps.\n"
            "4. Restore your backups.\n\n"
            "If reset fails:\n"
            "- Open Command Prompt (Admin) and run: sfc /scannow\n"
            "- Then run: DISM /Online /Cleanup-Image /RestoreHealth\n"
            "- Retry the reset.\n\n"
            "Use Back to Chat if you want live help with any step."
        ),
    },
]


def get_guide(guide_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not guide_id:
        return None
    for guide in GUIDES:
        if guide["id"] == guide_id:
            return guide
    return None


def search_guides(query: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    按标题或关键词过滤手册 大小写不敏感 空查询返回全部

    Examples:
        >>> [g["id"] for g in search_guides("BitLocker")]
        []
        >>> [g["id"] for g in search_guides("wipe")]
        ['factory_reset_windows_pc']
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(GUIDES)
    return [
        guide for guide in GUIDES
        if needle in guide["title"].lower() or needle in guide["keywords"].lower()
    ]


def build_guide_context(guide: Dict[str, Any]) -> str:
    return f"{GUIDE_CONTEXT_PREFIX}\n{guide['system_prompt']}"


def is_guide_context(content: Optional[str]) -> bool:
    return isinstance(content, str) and content.startswith(GUIDE_CONTEXT_PREFIX)
