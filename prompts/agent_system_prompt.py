"""
系统提示词

根据已配置的存储后端拼装默认系统提示 以及新会话的欢迎语
"""
from typing import List, Optional

ASSISTANT_NAME = "ApertureAI"


def build_system_prompt(has_drive: bool, has_onedrive: bool, drive_folder_id: Optional[str] = None) -> str:
    """
    构建默认系统提示

    Args:
        has_drive (bool): Google Drive 是否已配置
        has_onedrive (bool): OneDrive 是否已配置
        drive_folder_id (Optional[str]): Drive 根目录 ID

    Returns:
        str: 单行系统提示

    Examples:
        >>> build_system_prompt(False, False)
        'You are ApertureAI, a helpful AI assistant. Be concise and helpful. Summarize data clearly.'
    """
    parts: List[str] = [f"You are {ASSISTANT_NAME}, a helpful AI assistant."]
    has_storage = has_drive or has_onedrive

    if has_storage:
        parts.append(
            "You have tools to browse and read files from the user's cloud storage. When the user asks about "
            "their files or data, USE YOUR TOOLS to look up the actual content, do not guess or make things up "
            "from file names alone."
        )

    if has_drive:
        if drive_folder_id:
            parts.append(
                f"For Google Drive: The root folder ID is {drive_folder_id}. "
                "When listing files, start with that root folder ID."
            )
        else:
            parts.append(
                "For Google Drive: Use list_drive_files with no folder_id to see all accessible files, "
                "or use search_drive_files to find files by name."
            )
        parts.append(
            "For Google Docs/Sheets/Slides, use export mode. For PDF and DOCX files, use read_drive_file for extracted text."
        )

    if has_onedrive:
        parts.append(
            "For Microsoft OneDrive/SharePoint: Use list_onedrive_files to browse files, search_onedrive_files "
            "to find files by name, and read_onedrive_file to read content. If a result includes driveId, pass "
            "it as drive_id in follow-up calls."
        )
        parts.append(
            "If no default OneDrive context is configured, start with list_onedrive_files (without folder_id) "
            "to discover accessible drives/sites."
        )

    if has_storage:
        parts.append(
            "When you cite a file, include its full URL so the user can open it directly. If you quote or "
            "summarize specific file content, mention the exact source file name and link."
        )

    parts.append("Be concise and helpful. Summarize data clearly.")
    return " ".join(parts)


def build_welcome_message(has_drive: bool, has_onedrive: bool) -> str:
    """
    新会话欢迎语

    Examples:
        >>> build_welcome_message(True, True)
        'Welcome to ApertureAI. I can browse and read your Google Drive and OneDrive files. Ask me anything!'
    """
    sources = []
    if has_drive:
        sources.append("Google Drive")
    if has_onedrive:
        sources.append("OneDrive")
    if sources:
        return f"Welcome to {ASSISTANT_NAME}. I can browse and read your {' and '.join(sources)} files. Ask me anything!"
    return f"Welcome to {ASSISTANT_NAME}. Cloud storage access is not configured yet."


MISSING_API_KEY_HINT = "Put your API key in apertureai.env (OPENAI_API_KEY=...) then restart the app."
