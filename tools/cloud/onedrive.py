"""
OneDrive / SharePoint 工具: list_onedrive_files / search_onedrive_files / read_onedrive_file

三个工具都接受可选的 drive_id / site_id / user_id 用于定位驱动器
"""
from typing import Any, Dict, Optional

from .base import StorageTool, string_argument
from ..base import ToolKind


def _location_properties(drive_desc: str, site_desc: str, user_desc: str) -> Dict[str, Any]:
    return {
        "drive_id": {"type": "string", "description": drive_desc},
        "site_id": {"type": "string", "description": site_desc},
        "user_id": {"type": "string", "description": user_desc},
    }


def location_arguments(arguments: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    提取驱动器定位参数

    Examples:
        >>> location_arguments({"drive_id": "b!x", "site_id": ""})
        {'drive_id': 'b!x', 'site_id': None, 'user_id': None}
    """
    return {key: string_argument(arguments, key) for key in ("drive_id", "site_id", "user_id")}


class ListOneDriveFilesTool(StorageTool):
    """列出 OneDrive 目录 或可访问的站点与驱动器"""

    kind: ToolKind = ToolKind.LIST_ONEDRIVE_FILES
    name: str = "list_onedrive_files"
    description: str = (
        "List files and folders in Microsoft OneDrive/SharePoint. If no folder_id is provided, lists "
        "root-level files for the selected drive/site/user context."
    )
    parameters: dict = {
        "type": "object",
        "properties": {
            "folder_id": {
                "type": "string",
                "description": "Optional. The OneDrive folder/item ID to list contents of. If omitted, lists root-level items.",
            },
            **_location_properties(
                "Optional. The drive ID to browse. Use this when search results include driveId.",
                "Optional. SharePoint site ID. If provided, the tool browses that site drive.",
                "Optional. Microsoft user principal name or user ID for OneDrive for Business.",
            ),
        },
    }
    progress_text: str = "Browsing OneDrive files..."

    async def call_backend(self, **kwargs) -> str:
        return await self.backend.list_files(string_argument(kwargs, "folder_id"), **location_arguments(kwargs))


class SearchOneDriveFilesTool(StorageTool):
    """按名称或内容搜索 OneDrive"""

    kind: ToolKind = ToolKind.SEARCH_ONEDRIVE_FILES
    name: str = "search_onedrive_files"
    description: str = (
        "Search Microsoft OneDrive/SharePoint files by name or content. Returns file IDs, names, URLs, and metadata."
    )
    parameters: dict = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search text to match against file names and content."},
            **_location_properties(
                "Optional. Restrict search to a specific drive.",
                "Optional. Restrict search to a SharePoint site drive.",
                "Optional. Restrict search to a specific user drive.",
            ),
        },
        "required": ["query"],
    }
    progress_text: str = "Searching OneDrive..."

    def check_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        if not string_argument(arguments, "query"):
            return "Missing required query."
        return None

    async def call_backend(self, **kwargs) -> str:
        return await self.backend.search_files(string_argument(kwargs, "query"), **location_arguments(kwargs))


class ReadOneDriveFileTool(StorageTool):
    """读取 OneDrive 文件正文"""

    kind: ToolKind = ToolKind.READ_ONEDRIVE_FILE
    name: str = "read_onedrive_file"
    description: str = (
        "Read text content from a Microsoft OneDrive/SharePoint file. Returns JSON with file metadata "
        "(including webUrl) plus extracted content."
    )
    parameters: dict = {
        "type": "object",
        "properties": {
            "item_id": {"type": "string", "description": "The OneDrive item ID to read."},
            **_location_properties(
                "Optional. The drive ID if the file is on a specific drive (returned by search results).",
                "Optional. SharePoint site ID to resolve the file from.",
                "Optional. User ID/UPN to resolve the file from.",
            ),
        },
        "required": ["item_id"],
    }
    progress_text: str = "Reading OneDrive file..."

    def check_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        if not string_argument(arguments, "item_id"):
            return "Missing required item_id."
        return None

    async def call_backend(self, **kwargs) -> str:
        return await self.backend.read_file(string_argument(kwargs, "item_id"), **location_arguments(kwargs))
