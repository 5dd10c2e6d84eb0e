"""
云存储工具基类

把工具调用桥接到 StorageBackend 后端异常在这里转换为失败结果
"""
from typing import Any, Dict, Optional

from ..base import BaseTool, ToolResult
from storage.base import StorageBackend, StorageError
from utils.logger import logger


def string_argument(arguments: Dict[str, Any], key: str) -> Optional[str]:
    """
    读取字符串参数 去除首尾空白 缺失或为空时返回 None

    Examples:
        >>> string_argument({"query": "  q3 report "}, "query")
        'q3 report'
        >>> string_argument({"query": ""}, "query") is None
        True
    """
    value = arguments.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


class StorageTool(BaseTool):
    """
    绑定到某个存储后端的工具

    Args:
        backend (StorageBackend): 实际执行调用的后端
    """

    backend: StorageBackend

    def is_available(self) -> bool:
        return self.backend.is_configured()

    async def execute(self, **kwargs) -> ToolResult:
        try:
            output = await self.call_backend(**kwargs)
        except StorageError as e:
            logger.warning(f"⚠️ 工具 {self.name} 调用失败: {e.message}")
            return self.fail_response(e.message)
        return self.success_response(output)

    async def call_backend(self, **kwargs) -> str:
        raise NotImplementedError
