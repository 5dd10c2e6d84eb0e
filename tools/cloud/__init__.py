"""
云存储工具

Google Drive 与 OneDrive 各三个工具 均通过 StorageTool 绑定到对应后端
"""
from .base import StorageTool, string_argument
from .google_drive import ListDriveFilesTool, ReadDriveFileTool, SearchDriveFilesTool
from .onedrive import ListOneDriveFilesTool, ReadOneDriveFileTool, SearchOneDriveFilesTool

__all__ = [
    "StorageTool",
    "string_argument",
    "ListDriveFilesTool",
    "SearchDriveFilesTool",
    "ReadDriveFileTool",
    "ListOneDriveFilesTool",
    "SearchOneDriveFilesTool",
    "ReadOneDriveFileTool",
]
