"""
Google Drive 工具: list_drive_files / search_drive_files / read_drive_file
"""
from typing import Any, Dict, Optional

from .base import StorageTool, string_argument
from ..base import ToolKind


class ListDriveFilesTool(StorageTool):
    """列出 Drive 目录"""

    kind: ToolKind = ToolKind.LIST_DRIVE_FILES
    name: str = "list_drive_files"
    description: str = (
        "List files and folders in a Google Drive folder. If no folder_id is provided, lists all files "
        "the service account can access (including files inside shared folders). Returns file names, IDs, "
        "types, parent IDs, and webViewLink URLs."
    )
    parameters: dict = {
        "type": "object",
        "properties": {
            "folder_id": {
                "type": "string",
                "description": "Optional. The Google Drive folder ID to list contents of. If omitted, lists all accessible files.",
            }
        },
    }
    progress_text: str = "Browsing Drive files..."

    async def call_backend(self, folder_id: Optional[str] = None, **kwargs) -> str:
        return await self.backend.list_files(string_argument({"folder_id": folder_id}, "folder_id"))


class SearchDriveFilesTool(StorageTool):
    """按文件名搜索 Drive"""

    kind: ToolKind = ToolKind.SEARCH_DRIVE_FILES
    name: str = "search_drive_files"
    description: str = "Search Google Drive files by name and return IDs, metadata, and webViewLink URLs."
    parameters: dict = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search text to match against file names."}
        },
        "required": ["query"],
    }
    progress_text: str = "Searching Drive..."

    def check_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        if not string_argument(arguments, "query"):
            return "Missing required query."
        return None

    async def call_backend(self, query: str = "", **kwargs) -> str:
        return await self.backend.search_files(str(query).strip())


class ReadDriveFileTool(StorageTool):
    """读取 Drive 文件正文"""

    kind: ToolKind = ToolKind.READ_DRIVE_FILE
    name: str = "read_drive_file"
    description: str = (
        "Read text content from a Google Drive file. Returns JSON with file metadata (including webViewLink) "
        "plus extracted content. Supports Google Docs/Sheets export, plain text files, PDF text extraction, "
        "and DOCX text extraction."
    )
    parameters: dict = {
        "type": "object",
        "properties": {
            "file_id": {"type": "string", "description": "The file ID to read."},
            "export": {
                "type": "boolean",
                "description": "Optional hint. If true, prefer Drive export mode. If false, prefer direct "
                               "download mode. The app may auto-select based on file type.",
            },
        },
        "required": ["file_id"],
    }
    progress_text: str = "Reading file..."

    def check_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        if not string_argument(arguments, "file_id"):
            return "Missing required file_id."
        return None

    async def call_backend(self, file_id: str = "", export: Any = False, **kwargs) -> str:
        return await self.backend.read_file(str(file_id).strip(), export=bool(export))
