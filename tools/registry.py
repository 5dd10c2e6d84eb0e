"""
工具注册表

根据后端配置状态给出当前可用的工具定义
并把模型发起的工具调用分发到对应后端 分发本身从不抛出异常
"""
from typing import Any, Callable, Dict, Iterator, List, Optional

from .base import BaseTool, ToolKind
from .cloud import (
    ListDriveFilesTool,
    ListOneDriveFilesTool,
    ReadDriveFileTool,
    ReadOneDriveFileTool,
    SearchDriveFilesTool,
    SearchOneDriveFilesTool,
)
from storage.base import StorageBackend
from utils.logger import logger

Notifier = Callable[[str], None]


def notify(notifier: Optional[Notifier], text: str) -> None:
    """
    发送进度提示 回调异常只记录不外抛
    """
    if notifier is None:
        return
    try:
        notifier(text)
    except Exception as e:
        logger.warning(f"进度回调失败: {e}")


class ToolRegistry:
    """
    工具注册表

    以 ToolKind 为键的处理表 未知名称统一落到 ToolKind.UNKNOWN

    Args:
        *tools (BaseTool): 注册的工具 同一种类后注册者覆盖先注册者

    Examples:
        >>> registry = ToolRegistry.for_backends(drive, onedrive)
        >>> registry.to_params()          # 仅包含已配置后端的工具
        >>> await registry.execute("search_drive_files", {"query": "q3"})
    """

    def __init__(self, *tools: BaseTool):
        self._handlers: Dict[ToolKind, BaseTool] = {}
        for tool in tools:
            self.add_tool(tool)

    @classmethod
    def for_backends(
        cls,
        drive: Optional[StorageBackend] = None,
        onedrive: Optional[StorageBackend] = None,
    ) -> "ToolRegistry":
        """
        为两个存储后端构建标准的六个工具

        Args:
            drive (Optional[StorageBackend]): Google Drive 后端
            onedrive (Optional[StorageBackend]): OneDrive 后端
        """
        tools: List[BaseTool] = []
        if drive is not None:
            tools += [
                ListDriveFilesTool(backend=drive),
                SearchDriveFilesTool(backend=drive),
                ReadDriveFileTool(backend=drive),
            ]
        if onedrive is not None:
            tools += [
                ListOneDriveFilesTool(backend=onedrive),
                SearchOneDriveFilesTool(backend=onedrive),
                ReadOneDriveFileTool(backend=onedrive),
            ]
        return cls(*tools)

    def add_tool(self, tool: BaseTool) -> "ToolRegistry":
        if tool.kind is ToolKind.UNKNOWN:
            raise ValueError(f"工具 {tool.name} 未声明有效的 kind")
        self._handlers[tool.kind] = tool
        return self

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, name: str) -> Optional[BaseTool]:
        return self._handlers.get(ToolKind.from_name(name))

    def available_tools(self) -> List[BaseTool]:
        return [tool for tool in self._handlers.values() if tool.is_available()]

    def to_params(self) -> List[Dict[str, Any]]:
        """
        当前可提供给模型的工具定义 后端未配置的工具不出现
        """
        return [tool.to_param() for tool in self.available_tools()]

    async def execute(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        notifier: Optional[Notifier] = None,
    ) -> str:
        """
        执行单个工具调用

        参数校验失败与后端异常都转换为 "Error: <message>"
        未知工具返回 "Unknown tool: <name>"

        Args:
            name (str): 工具名称
            arguments (Optional[Dict[str, Any]]): 已解析的参数
            notifier (Optional[Notifier]): 进度回调

        Returns:
            str: 写回会话的工具结果文本
        """
        kind = ToolKind.from_name(name)
        tool = self._handlers.get(kind)
        if tool is None:
            logger.warning(f"❓ 未知工具: {name}")
            return f"Unknown tool: {name}"

        args = arguments if isinstance(arguments, dict) else {}
        problem = tool.check_arguments(args)
        if problem:
            logger.warning(f"⚠️ 工具 {name} 参数不合法: {problem}")
            return f"Error: {problem}"

        notify(notifier, tool.progress_text)
        try:
            result = await tool(**args)
        except Exception as e:
            # 分发层兜底 任何异常都反馈给模型
            logger.error(f"❌ 工具 {name} 执行异常: {e}")
            return f"Error: {e}"

        logger.info(f"🔧 工具 {name} 完成 ({'ok' if result.ok else 'err'})")
        return str(result)

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={[tool.name for tool in self]})"
