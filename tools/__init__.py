"""
Tools 模块 - 工具系统

提供：
- BaseTool: 工具基类
- ToolKind: 已知工具种类
- ToolResult: 工具执行结果
- ToolRegistry: 工具注册与分发
- 云存储工具: Google Drive / OneDrive 各三个
"""

from .base import BaseTool, ToolFailure, ToolKind, ToolResult
from .registry import Notifier, ToolRegistry

from .cloud import (
    ListDriveFilesTool,
    ListOneDriveFilesTool,
    ReadDriveFileTool,
    ReadOneDriveFileTool,
    SearchDriveFilesTool,
    SearchOneDriveFilesTool,
    StorageTool,
)

__all__ = [
    # 基础类
    "BaseTool",
    "ToolKind",
    "ToolResult",
    "ToolFailure",
    "ToolRegistry",
    "Notifier",

    # 云存储工具
    "StorageTool",
    "ListDriveFilesTool",
    "SearchDriveFilesTool",
    "ReadDriveFileTool",
    "ListOneDriveFilesTool",
    "SearchOneDriveFilesTool",
    "ReadOneDriveFileTool",
]
