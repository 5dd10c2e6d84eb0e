import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolKind(str, Enum):
    """已知工具种类 未识别的名称统一归为 UNKNOWN"""

    LIST_DRIVE_FILES = "list_drive_files"
    SEARCH_DRIVE_FILES = "search_drive_files"
    READ_DRIVE_FILE = "read_drive_file"
    LIST_ONEDRIVE_FILES = "list_onedrive_files"
    SEARCH_ONEDRIVE_FILES = "search_onedrive_files"
    READ_ONEDRIVE_FILE = "read_onedrive_file"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "ToolKind":
        """
        Examples:
            >>> ToolKind.from_name("read_drive_file")
            <ToolKind.READ_DRIVE_FILE: 'read_drive_file'>
            >>> ToolKind.from_name("rm_rf")
            <ToolKind.UNKNOWN: 'unknown'>
        """
        if not name or name == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


class ToolResult(BaseModel):
    """工具结果定义"""

    output: str = Field(default="")
    error: Optional[str] = Field(default=None)

    @field_validator('output', mode='before')
    @classmethod
    def ensure_string_output(cls, v: Any) -> str:
        """确保 output 总是字符串"""
        if v is None:
            return ""
        if isinstance(v, str):
            return v
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False)
        return str(v)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        # 写回会话的文本形式
        return f"Error: {self.error}" if self.error is not None else self.output


class ToolFailure(ToolResult):
    """A ToolResult that represents a failure."""


class BaseTool(ABC, BaseModel):
    """
    工具基类定义

    子类声明 kind / name / description / parameters / progress_text
    并实现 execute 参数校验放在 check_arguments 中 在发出进度提示前完成
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ToolKind
    name: str
    description: str
    parameters: Optional[Dict] = None
    progress_text: str = ""

    async def __call__(self, **kwargs) -> ToolResult:
        """执行工具"""
        return await self.execute(**kwargs)

    def is_available(self) -> bool:
        """工具当前是否应当暴露给模型"""
        return True

    def check_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        """
        校验参数

        Returns:
            Optional[str]: 错误描述 参数合法时为 None
        """
        return None

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """Execute the tool with given parameters."""

    def to_param(self) -> Dict[str, Any]:
        """Convert tool to function call format.

        Returns:
            Dictionary with tool metadata in OpenAI function calling format
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def success_response(self, data: Union[Dict[str, Any], str, Any]) -> ToolResult:
        """Create a successful tool result - 自动转换为字符串"""
        return ToolResult(output=data)

    def fail_response(self, msg: str) -> ToolResult:
        """Create a failed tool result"""
        return ToolFailure(error=msg, output="")
